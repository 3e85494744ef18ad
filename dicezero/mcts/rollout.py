"""
Classic UCT with random playouts.

No predictor involved: nodes are expanded one random move at a time and
leaves are scored by playing random moves until the game ends or the playout
limit is hit. Used as a baseline opponent in evaluation matches.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from ..config import ForcedOutcome, MCTSConfig
from ..game.base import LearnableGame, Move
from .node_store import NodeStore
from .search import is_searchable

logger = logging.getLogger(__name__)


def _select_leaf(store: NodeStore, idx: int, c: float) -> int:
    while True:
        node = store[idx]
        if node.is_leaf() or node.expandable_moves:
            return idx
        idx = max(node.children, key=lambda child: store[child].ucb(store, c))


def _expand_one(store: NodeStore, idx: int, rng: random.Random) -> int:
    node = store[idx]
    move = node.expandable_moves.pop(rng.randrange(len(node.expandable_moves)))
    child_state = node.state.copy()
    if move == child_state.EMPTY_MOVE:
        child_state.skip_turn()
    else:
        child_state.apply_move(move)
    if not node.expandable_moves:
        node.expanded = True
    return store.add_node(child_state, idx, move, 0.0)


def simulate(
    state: LearnableGame,
    player: int,
    round_limit: int,
    forced_outcome: ForcedOutcome = ForcedOutcome.RANDOM,
    rng: Optional[random.Random] = None,
) -> float:
    """Random playout from `state`; +1 if `player` wins, -1 if they lose."""
    rng = rng or random.Random()
    game = state.copy()
    for _ in range(round_limit):
        winner = game.check_winner()
        if winner is not None:
            return 1.0 if winner == player else -1.0
        moves = game.get_valid_moves()
        if moves:
            game.apply_move(rng.choice(moves))
        else:
            game.skip_turn()
    winner = game.check_winner()
    if winner is not None:
        return 1.0 if winner == player else -1.0
    if forced_outcome is ForcedOutcome.RANDOM:
        return rng.choice((-1.0, 1.0))
    return 0.0


def rollout_search(
    state: LearnableGame,
    config: Optional[MCTSConfig] = None,
    rng: Optional[random.Random] = None,
) -> Move:
    """Return the most visited root move after `config.iterations` UCT iterations."""
    cfg = config or MCTSConfig()
    if not isinstance(cfg.iterations, int):
        raise ValueError("rollout_search() needs a single iteration budget")
    rng = rng or random.Random()

    store = NodeStore()
    root_idx = store.add_node(state.copy())
    if not is_searchable(store, root_idx):
        logger.debug("rollout root is terminal or has no legal moves")
        return state.EMPTY_MOVE
    player = state.player

    for _ in range(cfg.iterations):
        leaf_idx = _select_leaf(store, root_idx, cfg.c)
        leaf = store[leaf_idx]
        winner = leaf.state.check_winner()
        if winner is not None:
            store.backpropagate(leaf_idx, 1.0 if winner == player else -1.0, player,
                                cfg.value_perspective)
            continue
        child_idx = _expand_one(store, leaf_idx, rng)
        value = simulate(store[child_idx].state, player, cfg.simulate_round_limit,
                         cfg.forced_outcome, rng)
        store.backpropagate(child_idx, value, player, cfg.value_perspective)

    root = store[root_idx]
    if not root.children:
        return state.EMPTY_MOVE
    best = max(root.children, key=lambda child: store[child].visits)
    store.log_tree(root_idx, depth=1, c=cfg.c)
    return store[best].move


__all__ = ["rollout_search", "simulate"]
