"""
Game capability and reference games.

Search code depends only on `LearnableGame`; `Backgammon` is the reference
stochastic game with its fixed 1352-entry action space.
"""

from .base import LearnableGame, Move
from .backgammon import Backgammon, Board

__all__ = ["Backgammon", "Board", "LearnableGame", "Move"]
