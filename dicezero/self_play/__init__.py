"""
Self-play data generation and evaluation matches.
"""

from .runner import MemoryFragment, run_self_play
from .versus import Agent, MatchResult, Player, play

__all__ = ["Agent", "MatchResult", "MemoryFragment", "Player", "play", "run_self_play"]
