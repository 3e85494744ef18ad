"""
dicezero: Monte-Carlo Tree Search for self-play in stochastic board games.

Subpackages:
    game       game capability and the Backgammon reference game
    mcts       node arena, PUCT search, batched scheduler, rollout search
    net        predictor contract and adapters
    self_play  self-play data generation and evaluation matches
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "game",
    "mcts",
    "net",
    "self_play",
]
