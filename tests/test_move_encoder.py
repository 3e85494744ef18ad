"""
Pytest tests for the Backgammon move <-> action index mapping.

Usage:
  pytest tests/test_move_encoder.py -q
"""

import itertools

import pytest

from dicezero.game.backgammon import Backgammon
from dicezero.game.move_encoder import (
    ACTION_SPACE_SIZE,
    EMPTY_MOVE,
    EMPTY_MOVE_INDEX,
    HALF_ACTION_SPACE,
    decode_index,
    encode_move,
)


ALL_ROLLS = [(a, b) for a in range(1, 7) for b in range(1, a + 1)]


def _empty_board(player, roll):
    return Backgammon.from_points([0] * 24, player=player, roll=roll)


def _assert_round_trip(player, roll, move):
    game = _empty_board(player, roll)
    index = game.encode(move)
    assert 0 <= index < ACTION_SPACE_SIZE
    assert game.decode(index) == move


# ---------------------------------------------------------------------------
# Known moves on an empty board
# ---------------------------------------------------------------------------


SINGLE_CASES = [
    ((2, 1), -1, ()),
    ((2, 1), -1, ((4, 2),)),
    ((2, 1), -1, ((4, 3),)),
    ((2, 1), -1, ((-1, 22),)),
    ((2, 1), -1, ((-1, 23),)),
    ((2, 1), -1, ((1, -1),)),
    ((2, 1), -1, ((0, -1),)),
    ((6, 3), -1, ((1, -1),)),
    ((6, 3), -1, ((2, -1),)),
    ((2, 1), 1, ((19, 21),)),
    ((2, 1), 1, ((19, 20),)),
    ((2, 1), 1, ((-1, 1),)),
    ((2, 1), 1, ((-1, 0),)),
    ((2, 1), 1, ((22, -1),)),
    ((2, 1), 1, ((23, -1),)),
    ((6, 3), 1, ((22, -1),)),
    ((6, 3), 1, ((21, -1),)),
]

DOUBLE_CASES = [
    ((2, 1), -1, ((23, 21), (5, 4))),
    ((2, 1), -1, ((-1, 22), (-1, 23))),
    ((2, 1), -1, ((1, -1), (0, -1))),
    ((2, 1), -1, ((5, 4), (23, 21))),
    ((2, 1), -1, ((-1, 23), (-1, 22))),
    ((2, 1), -1, ((0, -1), (1, -1))),
    ((4, 6), -1, ((1, -1), (0, -1))),
    ((4, 6), -1, ((0, -1), (1, -1))),
    ((2, 1), 1, ((1, 3), (21, 22))),
    ((2, 1), 1, ((-1, 1), (-1, 0))),
    ((2, 1), 1, ((22, -1), (23, -1))),
    ((2, 1), 1, ((4, 5), (21, 23))),
    ((2, 1), 1, ((-1, 0), (-1, 1))),
    ((2, 1), 1, ((23, -1), (22, -1))),
    ((4, 6), 1, ((22, -1), (23, -1))),
    ((4, 6), 1, ((23, -1), (22, -1))),
]

TIE_BREAK_CASES = [
    ((6, 1), -1, ((-1, 18), (18, 17))),
    ((6, 1), -1, ((-1, 23), (23, 17))),
    ((6, 5), -1, ((6, 0), (3, -1))),
    ((6, 5), -1, ((6, 1), (3, -1))),
    ((6, 1), 1, ((-1, 5), (5, 6))),
    ((6, 1), 1, ((-1, 0), (0, 6))),
    ((6, 1), 1, ((21, -1),)),
    ((6, 5), 1, ((17, 23), (20, -1))),
    ((6, 5), 1, ((17, 22), (20, -1))),
    ((4, 5), -1, ((0, -1), (0, -1))),
    ((2, 1), -1, ((0, -1), (0, -1))),
]


@pytest.mark.parametrize("roll, player, move", SINGLE_CASES)
def test_single_transition_round_trip(roll, player, move):
    _assert_round_trip(player, roll, move)


@pytest.mark.parametrize("roll, player, move", DOUBLE_CASES)
def test_two_transition_round_trip(roll, player, move):
    _assert_round_trip(player, roll, move)


@pytest.mark.parametrize("roll, player, move", TIE_BREAK_CASES)
def test_order_tie_breaks_round_trip(roll, player, move):
    _assert_round_trip(player, roll, move)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def test_empty_move_sentinel():
    assert ACTION_SPACE_SIZE == 1352
    assert encode_move(EMPTY_MOVE, (3, 2), -1) == EMPTY_MOVE_INDEX == 1351
    assert decode_index(EMPTY_MOVE_INDEX, (3, 2), 1) == ()


def test_halves_follow_die_order():
    # 4 -> 2 uses the high die first, 4 -> 3 the low die
    assert encode_move(((4, 2),), (2, 1), -1) < HALF_ACTION_SPACE
    assert encode_move(((4, 3),), (2, 1), -1) >= HALF_ACTION_SPACE
    assert encode_move(((23, 21), (5, 4)), (2, 1), -1) == 23 + 26 * 5
    assert encode_move(((5, 4), (23, 21)), (2, 1), -1) == 5 + 26 * 23 + HALF_ACTION_SPACE


def test_sentinel_differs_from_every_legal_move():
    # player 1 stacking two checkers from point 0 used to collide with a 676 sentinel
    game = Backgammon.from_points([2] + [0] * 23, player=1, roll=(6, 5))
    indices = {game.encode(move) for move in game.get_valid_moves()}
    assert EMPTY_MOVE_INDEX not in indices


def test_too_many_transitions_rejected():
    with pytest.raises(ValueError):
        encode_move(((1, 0), (2, 1), (3, 2)), (1, 1), -1)


@pytest.mark.parametrize("index", [-1, ACTION_SPACE_SIZE, 25, 25 + 26 * 3 + HALF_ACTION_SPACE])
def test_invalid_index_rejected(index):
    with pytest.raises(ValueError):
        decode_index(index, (3, 1), -1)


# ---------------------------------------------------------------------------
# Legal moves from the opening
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("roll, player", list(itertools.product(ALL_ROLLS, (-1, 1))))
def test_opening_moves_are_injective_and_invertible(roll, player):
    game = Backgammon(player=player, roll=roll)
    moves = game.get_valid_moves()
    assert moves
    indices = [game.encode(move) for move in moves]
    assert len(set(indices)) == len(indices)
    for move, index in zip(moves, indices):
        assert game.decode(index) == move
