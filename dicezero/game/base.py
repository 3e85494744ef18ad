"""
Abstract game capability consumed by the search code.

Search never looks at a concrete board; everything it needs (legal moves,
transitions, terminal test, features and the move <-> index mapping) goes
through this interface.
"""

from __future__ import annotations

import abc
from typing import Any, Hashable, List, Optional

import torch

Move = Hashable


class LearnableGame(abc.ABC):
    ACTION_SPACE_SIZE: int = 0
    EMPTY_MOVE: Any = None
    IS_DETERMINISTIC: bool = True
    N_INPUT_CHANNELS: int = 0

    def __init__(self) -> None:
        self._id = 0

    @abc.abstractmethod
    def copy(self) -> "LearnableGame":
        """Return an independent copy; later mutations must not leak."""

    @abc.abstractmethod
    def get_valid_moves(self) -> List[Move]:
        """Legal moves for the side to move. Empty means the side must pass."""

    @abc.abstractmethod
    def apply_move(self, move: Move) -> None:
        """Play `move`, advance the turn and redraw any chance elements."""

    @abc.abstractmethod
    def skip_turn(self) -> None:
        """Pass the turn without moving."""

    @abc.abstractmethod
    def check_winner(self) -> Optional[int]:
        """Winning player (+1/-1) or None while the game is running."""

    @abc.abstractmethod
    def encode(self, move: Move) -> int:
        ...

    @abc.abstractmethod
    def decode(self, index: int) -> Move:
        ...

    @abc.abstractmethod
    def as_tensor(self) -> torch.Tensor:
        """Features shaped (1, C, H, W), float32."""

    @property
    @abc.abstractmethod
    def player(self) -> int:
        """Side to move, +1 or -1."""

    def is_terminal(self) -> bool:
        return self.check_winner() is not None

    def roll_die(self) -> None:
        if self.IS_DETERMINISTIC:
            raise NotImplementedError(f"{type(self).__name__} has no chance element")
        raise NotImplementedError

    def get_id(self) -> int:
        return self._id

    def set_id(self, value: int) -> None:
        self._id = value


__all__ = ["LearnableGame", "Move"]
