"""
Backgammon rules: the reference stochastic game for the search engine.

Board convention: 24 points, negative counts belong to player -1, positive
counts to player +1. Player -1 moves from point 23 towards 0 and bears off
below 0; player +1 moves from 0 towards 23. Bar and borne-off counters are
pairs ordered (player -1, player +1). A transition is `(from, to)` where
`from == -1` enters from the bar and `to == -1` bears off.

Doubles are played as two consecutive two-transition turns by the same player;
`is_second_play` marks the second half.
"""

from __future__ import annotations

import random
from typing import Iterable, List, NamedTuple, Optional, Tuple

import torch

from .base import LearnableGame
from .move_encoder import (
    ACTION_SPACE_SIZE,
    EMPTY_MOVE,
    OFF_BOARD,
    BackgammonMove,
    Transition,
    decode_index,
    encode_move,
)

INITIAL_POINTS: Tuple[int, ...] = (
    2, 0, 0, 0, 0, -5, 0, -3, 0, 0, 0, 5, -5, 0, 0, 0, 3, 0, 5, 0, 0, 0, 0, -2,
)
CHECKERS_PER_PLAYER = 15


class Board(NamedTuple):
    points: Tuple[int, ...]
    hit: Tuple[int, int]
    collected: Tuple[int, int]


INITIAL_BOARD = Board(INITIAL_POINTS, (0, 0), (0, 0))


def _side(player: int) -> int:
    return 0 if player == -1 else 1


# ---------------------------------------------------------------------------
# Pure board helpers
# ---------------------------------------------------------------------------


def get_next_state(board: Board, move: Iterable[Transition], player: int) -> Board:
    """Apply the transitions of `move` for `player` and return the new board."""
    points = list(board.points)
    hit = list(board.hit)
    collected = list(board.collected)
    own, opp = _side(player), 1 - _side(player)

    for src, dst in move:
        if dst == OFF_BOARD:
            points[src] -= player
            collected[own] += 1
            continue
        if src == OFF_BOARD:
            if points[dst] == -player:
                points[dst] = player
                hit[opp] += 1
            else:
                points[dst] += player
            hit[own] -= 1
        elif points[dst] == -player:
            points[dst] = player
            points[src] -= player
            hit[opp] += 1
        else:
            points[dst] += player
            points[src] -= player

    return Board(tuple(points), (hit[0], hit[1]), (collected[0], collected[1]))


def is_collectible(board: Board, player: int) -> bool:
    """True when every checker of `player` is in the home board."""
    if board.hit[_side(player)] != 0:
        return False
    if player == -1:
        return all(n >= 0 for n in board.points[6:])
    return all(n <= 0 for n in board.points[:18])


def _entry_actions(dice: List[int], board: Board, player: int) -> List[Tuple[int, Transition]]:
    actions = []
    for die in dice:
        if player == -1:
            point = 24 - die
            if board.points[point] < 2:
                actions.append((die, (OFF_BOARD, point)))
        else:
            point = die - 1
            if board.points[point] > -2:
                actions.append((die, (OFF_BOARD, point)))
    return actions


def _normal_actions(dice: List[int], board: Board, player: int) -> List[Tuple[int, Transition]]:
    points = board.points
    actions = []

    if is_collectible(board, player):
        for die in dice:
            if player == -1:
                point = die - 1
                if points[point] < 0:
                    actions.append((die, (point, OFF_BOARD)))
                # a larger die bears off the highest checker when none of ours sits above it
                for idx in reversed(range(point)):
                    if points[idx] < 0 and not any(n < 0 for n in points[idx + 1:6]):
                        actions.append((die, (idx, OFF_BOARD)))
                        break
            else:
                point = 24 - die
                if points[point] > 0:
                    actions.append((die, (point, OFF_BOARD)))
                for idx in range(point, 24):
                    if points[idx] > 0 and not any(n > 0 for n in points[18:idx]):
                        actions.append((die, (idx, OFF_BOARD)))
                        break

    for die in dice:
        for point, count in enumerate(points):
            if player == -1:
                target = point - die
                if count <= -1 and target >= 0 and points[target] <= 1:
                    actions.append((die, (point, target)))
            else:
                target = point + die
                if count >= 1 and target <= 23 and points[target] >= -1:
                    actions.append((die, (point, target)))
    return actions


def _sequences(dice: List[int], board: Board, player: int) -> List[BackgammonMove]:
    if board.hit[_side(player)] > 0:
        actions = _entry_actions(dice, board, player)
    else:
        actions = _normal_actions(dice, board, player)

    sequences: List[BackgammonMove] = []
    for die, transition in sorted(set(actions)):
        remaining = list(dice)
        remaining.remove(die)
        next_board = get_next_state(board, (transition,), player)
        tails = _sequences(remaining, next_board, player) or [EMPTY_MOVE]
        sequences.extend((transition,) + tail for tail in tails)
    return sequences


def legal_moves(board: Board, roll: Tuple[int, int], player: int) -> List[BackgammonMove]:
    """All distinct move sequences for `roll`, one per resulting position."""
    high, low = max(roll), min(roll)
    seen = set()
    unique: List[BackgammonMove] = []
    for sequence in _sequences([high, low], board, player):
        result = get_next_state(board, sequence, player)
        if result not in seen:
            seen.add(result)
            unique.append(sequence)
    return unique


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------


class Backgammon(LearnableGame):
    ACTION_SPACE_SIZE = ACTION_SPACE_SIZE
    EMPTY_MOVE = EMPTY_MOVE
    IS_DETERMINISTIC = False
    N_INPUT_CHANNELS = 6

    def __init__(
        self,
        board: Optional[Board] = None,
        player: int = -1,
        roll: Tuple[int, int] = (0, 0),
        is_second_play: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__()
        if player not in (-1, 1):
            raise ValueError(f"player must be -1 or 1, got {player}")
        self.board = board if board is not None else INITIAL_BOARD
        self._player = player
        self.roll = tuple(roll)
        self.is_second_play = is_second_play
        # dice source; copies share it, None means the global `random` module
        self.rng = rng

    @classmethod
    def from_points(
        cls,
        points: Iterable[int],
        player: int = -1,
        roll: Tuple[int, int] = (0, 0),
        hit: Tuple[int, int] = (0, 0),
        collected: Tuple[int, int] = (0, 0),
    ) -> "Backgammon":
        points = tuple(points)
        if len(points) != 24:
            raise ValueError(f"Expected 24 points, got {len(points)}")
        return cls(Board(points, tuple(hit), tuple(collected)), player=player, roll=roll)

    @property
    def player(self) -> int:
        return self._player

    def copy(self) -> "Backgammon":
        # Board is immutable, so sharing it is safe.
        clone = Backgammon(self.board, self._player, self.roll, self.is_second_play, self.rng)
        clone.set_id(self.get_id())
        return clone

    def roll_die(self) -> Tuple[int, int]:
        source = self.rng if self.rng is not None else random
        self.roll = (source.randint(1, 6), source.randint(1, 6))
        return self.roll

    def _require_roll(self) -> None:
        if self.roll == (0, 0):
            raise ValueError("Dice have not been rolled")

    def get_valid_moves(self) -> List[BackgammonMove]:
        self._require_roll()
        return legal_moves(self.board, self.roll, self._player)

    def apply_move(self, move: BackgammonMove) -> None:
        self.board = get_next_state(self.board, move, self._player)
        if self.roll[0] == self.roll[1] and not self.is_second_play:
            self.is_second_play = True
        else:
            self.is_second_play = False
            self._player = -self._player
            self.roll_die()

    def skip_turn(self) -> None:
        self.is_second_play = False
        self._player = -self._player
        self.roll_die()

    def check_winner(self) -> Optional[int]:
        if self.board.collected[0] == CHECKERS_PER_PLAYER:
            return -1
        if self.board.collected[1] == CHECKERS_PER_PLAYER:
            return 1
        return None

    def encode(self, move: BackgammonMove) -> int:
        return encode_move(move, self.roll, self._player)

    def decode(self, index: int) -> BackgammonMove:
        return decode_index(index, self.roll, self._player)

    def as_tensor(self) -> torch.Tensor:
        """Six 4x6 feature planes: board, player, bar, borne off, roll, second play."""
        self._require_roll()
        board = self.board

        def halves(first: int, second: int) -> torch.Tensor:
            return torch.tensor([float(first)] * 12 + [float(second)] * 12).view(4, 6)

        planes = [
            torch.tensor(board.points, dtype=torch.float32).view(4, 6),
            torch.full((4, 6), float(self._player)),
            halves(*board.hit),
            halves(*board.collected),
            halves(*self.roll),
            torch.full((4, 6), 1.0 if self.is_second_play else 0.0),
        ]
        return torch.stack(planes, dim=0).unsqueeze(0).to(torch.float32)

    def __repr__(self) -> str:
        return (
            f"Backgammon(player={self._player}, roll={self.roll}, "
            f"second_play={self.is_second_play}, hit={self.board.hit}, "
            f"collected={self.board.collected})"
        )


__all__ = [
    "Backgammon",
    "Board",
    "INITIAL_BOARD",
    "INITIAL_POINTS",
    "get_next_state",
    "is_collectible",
    "legal_moves",
]
