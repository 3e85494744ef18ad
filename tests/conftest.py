"""
Shared fixtures: a tiny deterministic game and recording predictors.
"""

import random

import numpy as np
import pytest
import torch

from dicezero.game.backgammon import Backgammon, Board
from dicezero.game.base import LearnableGame
from dicezero.net.predictor import UniformPredictor


SEED = 0x42


class NimGame(LearnableGame):
    """Take one or two stones; whoever takes the last stone wins."""

    ACTION_SPACE_SIZE = 3
    EMPTY_MOVE = 0
    IS_DETERMINISTIC = True
    N_INPUT_CHANNELS = 1

    def __init__(self, pile=5, player=1):
        super().__init__()
        self.pile = pile
        self._player = player

    @property
    def player(self):
        return self._player

    def copy(self):
        clone = NimGame(self.pile, self._player)
        clone.set_id(self.get_id())
        return clone

    def get_valid_moves(self):
        if self.pile == 0:
            return []
        return [take for take in (1, 2) if take <= self.pile]

    def apply_move(self, move):
        self.pile -= move
        self._player = -self._player

    def skip_turn(self):
        self._player = -self._player

    def check_winner(self):
        if self.pile == 0:
            return -self._player
        return None

    def encode(self, move):
        return int(move)

    def decode(self, index):
        return int(index)

    def as_tensor(self):
        return torch.tensor([[[[float(self.pile), float(self._player)]]]])


class FailingPredictor:
    def __call__(self, batch):
        raise RuntimeError("predictor exploded")


@pytest.fixture(autouse=True)
def _seed_everything():
    random.seed(SEED)
    np.random.seed(SEED)
    torch.manual_seed(SEED)


@pytest.fixture
def nim():
    return NimGame


@pytest.fixture
def uniform():
    return UniformPredictor(Backgammon.ACTION_SPACE_SIZE)


@pytest.fixture
def nim_uniform():
    return UniformPredictor(NimGame.ACTION_SPACE_SIZE)


@pytest.fixture
def opening():
    """Opening position, player -1 to move with 6-5."""
    return Backgammon(player=-1, roll=(6, 5))


@pytest.fixture
def blocked():
    """Player -1 has a checker on the bar and every entry point is closed."""
    points = [0] * 24
    points[0] = -14
    for point in range(18, 24):
        points[point] = 2
    return Backgammon(Board(tuple(points), (1, 0), (0, 3)), player=-1, roll=(4, 2))


@pytest.fixture
def finished():
    points = [0] * 24
    points[23] = 5
    return Backgammon(Board(tuple(points), (0, 0), (15, 10)), player=1, roll=(3, 1))


@pytest.fixture
def failing():
    return FailingPredictor()
