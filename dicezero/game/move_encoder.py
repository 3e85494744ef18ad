"""
Bijective mapping between Backgammon moves and flat action indices.

Layout (1352 entries):

    index = origin1 + 26 * origin2            high die played first
    index = origin1 + 26 * origin2 + 676      low die played first

Origin codes: 0-23 board points, 24 the bar, 25 "no second transition".
Destinations are never stored; decoding recomputes them from the origin, the
die and the direction of the player, clamping anything off the board to the
bear-off sentinel -1. The empty move (pass) owns index 1351, whose first origin
code 25 no real move can produce.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

Transition = Tuple[int, int]
BackgammonMove = Tuple[Transition, ...]

ORIGIN_RADIX = 26
HALF_ACTION_SPACE = ORIGIN_RADIX * ORIGIN_RADIX
ACTION_SPACE_SIZE = 2 * HALF_ACTION_SPACE
BAR_CODE = 24
SINGLE_MOVE_CODE = 25
OFF_BOARD = -1
EMPTY_MOVE: BackgammonMove = ()
EMPTY_MOVE_INDEX = ACTION_SPACE_SIZE - 1


def _min_distance(transition: Transition) -> int:
    """Smallest die that can play `transition`."""
    src, dst = transition
    if src == OFF_BOARD:
        if dst < 6:
            return dst + 1
        if dst > 17:
            return 24 - dst
    elif dst == OFF_BOARD:
        if src < 6:
            return src + 1
        if src > 17:
            return 24 - src
    return abs(src - dst)


def encode_move(move: Sequence[Transition], roll: Tuple[int, int], player: int) -> int:
    """
    Map `move` (0-2 transitions) played with `roll` by `player` to its index.

    `player` only matters for decoding; it is accepted here so both directions
    share one signature.
    """
    if len(move) > 2:
        raise ValueError(f"A move has at most two transitions, got {len(move)}: {move!r}")
    if len(move) == 0:
        return EMPTY_MOVE_INDEX

    low = min(roll)
    distances: List[int] = [_min_distance(t) for t in move]
    if len(move) == 1:
        distances.append(0)

    code = 0
    low_flags = [False, False]
    for i, (src, dst) in enumerate(move):
        weight = 1 if i == 0 else ORIGIN_RADIX
        if src == OFF_BOARD:
            code += BAR_CODE * weight
            low_flags[i] = distances[i] == low
        elif dst == OFF_BOARD:
            # bear-offs may use a larger die, so they never pin the order
            code += src * weight
        else:
            code += src * weight
            low_flags[i] = distances[i] == low

    if len(move) == 1:
        low_flags[0] = False
        code += ORIGIN_RADIX * SINGLE_MOVE_CODE

    if low_flags[0]:
        high_first = False
    elif low_flags[1]:
        high_first = True
    elif distances[1] != 0:
        high_first = distances[0] >= distances[1]
    else:
        high_first = distances[0] > low

    return code if high_first else code + HALF_ACTION_SPACE


def decode_index(index: int, roll: Tuple[int, int], player: int) -> BackgammonMove:
    """Inverse of `encode_move` for the same roll and player."""
    if not 0 <= index < ACTION_SPACE_SIZE:
        raise ValueError(f"Action index {index} outside [0, {ACTION_SPACE_SIZE})")
    if index == EMPTY_MOVE_INDEX:
        return EMPTY_MOVE

    high_first = index < HALF_ACTION_SPACE
    base = index if high_first else index - HALF_ACTION_SPACE
    src1 = base % ORIGIN_RADIX
    src2 = base // ORIGIN_RADIX
    if src1 == SINGLE_MOVE_CODE:
        raise ValueError(f"Action index {index} does not encode a move")

    high, low = max(roll), min(roll)
    first_die, second_die = (high, low) if high_first else (low, high)

    origins = [src1] if src2 == SINGLE_MOVE_CODE else [src1, src2]
    dice = [first_die, second_die]
    transitions: List[Transition] = []
    for origin, die in zip(origins, dice):
        if origin == BAR_CODE and player == 1:
            origin = OFF_BOARD
        dst = origin + die * player
        if dst >= 24 or dst <= OFF_BOARD:
            dst = OFF_BOARD
        if origin == BAR_CODE:
            origin = OFF_BOARD
        transitions.append((origin, dst))
    return tuple(transitions)


__all__ = [
    "ACTION_SPACE_SIZE",
    "BAR_CODE",
    "BackgammonMove",
    "EMPTY_MOVE",
    "EMPTY_MOVE_INDEX",
    "HALF_ACTION_SPACE",
    "OFF_BOARD",
    "SINGLE_MOVE_CODE",
    "Transition",
    "decode_index",
    "encode_move",
]
