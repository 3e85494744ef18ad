"""
Single-tree PUCT search guided by a policy/value predictor.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from ..config import MCTSConfig
from ..game.base import LearnableGame
from ..net.predictor import Predictor, evaluate_states
from .node_store import NodeStore
from .noise import apply_dirichlet

logger = logging.getLogger(__name__)


# ---- Helpers ---------------------------------------------------------------


def is_searchable(store: NodeStore, idx: int) -> bool:
    """A root is searchable when it is not terminal and has real legal moves."""
    node = store[idx]
    moves = node.expandable_moves
    return bool(moves) and moves != [node.state.EMPTY_MOVE]


def root_policy(store: NodeStore, idx: int) -> np.ndarray:
    """
    Visit counts of the children of `idx` scattered at their encoded indices
    and normalised. Without any child visits the priors are used instead.
    """
    node = store[idx]
    probs = np.zeros(node.state.ACTION_SPACE_SIZE, dtype=np.float64)
    children = [store[c] for c in node.children]
    indices = [node.state.encode(child.move) for child in children]
    weights = np.array([child.visits for child in children], dtype=np.float64)
    if weights.sum() <= 0:
        weights = np.array([child.prior for child in children], dtype=np.float64)
    np.add.at(probs, indices, weights)
    total = probs.sum()
    if total > 0:
        probs /= total
    return probs.astype(np.float32)


def log_root(store: NodeStore, idx: int, c: float) -> None:
    node = store[idx]
    rows = []
    for child_idx in node.children:
        child = store[child_idx]
        q_value = child.value()
        u_value = child.puct(store, c) - q_value
        rows.append((child.visits, q_value, child.prior, u_value, child.move))
    rows.sort(key=lambda row: row[0], reverse=True)
    logger.info(
        "root player=%d visits=%d children=%d", node.state.player, node.visits, len(node.children)
    )
    for visits, q_value, prior, u_value, move in rows:
        logger.info(
            "  N=%5d Q=%+.3f P=%.3f U=%.3f Q+U=%+.3f move=%r",
            visits, q_value, prior, u_value, q_value + u_value, move,
        )


# ---- Search ----------------------------------------------------------------


def expand_and_backpropagate(
    store: NodeStore,
    leaves: List[int],
    policy: np.ndarray,
    values: np.ndarray,
    config: MCTSConfig,
) -> None:
    """Expand leaves[i] with row i of the predictor output and back it up."""
    for row, leaf_idx in enumerate(leaves):
        store.expand(leaf_idx, policy[row])
        player = store[leaf_idx].state.player
        store.backpropagate(leaf_idx, float(values[row]), player, config.value_perspective)


def search(
    state: LearnableGame,
    predictor: Predictor,
    config: Optional[MCTSConfig] = None,
    *,
    iterations: Optional[int] = None,
    add_noise: Optional[bool] = None,
    store: Optional[NodeStore] = None,
) -> Optional[np.ndarray]:
    """
    Run PUCT search from `state` and return the root visit distribution over
    the action space, or None when the root is terminal or must pass.

    The root is expanded and backed up first, so after N iterations it has
    N + 1 visits.
    """
    cfg = config or MCTSConfig()
    if iterations is None:
        if not isinstance(cfg.iterations, int):
            raise ValueError("search() needs a single iteration budget")
        iterations = cfg.iterations
    if add_noise is None:
        add_noise = cfg.add_dirichlet_noise
    if store is None:
        store = NodeStore()

    root_idx = store.add_node(state.copy())
    if not is_searchable(store, root_idx):
        logger.debug("root %d is terminal or has no legal moves", root_idx)
        return None

    policy, values = evaluate_states(predictor, [store[root_idx].state])
    expand_and_backpropagate(store, [root_idx], policy, values, cfg)
    if add_noise:
        apply_dirichlet(store, root_idx, cfg.dirichlet_alpha, cfg.dirichlet_epsilon)

    for _ in range(iterations):
        leaf_idx = store.select_leaf(root_idx, cfg.c)
        if store[leaf_idx].is_terminal():
            store.backpropagate_terminal(leaf_idx, cfg.value_perspective)
            continue
        policy, values = evaluate_states(predictor, [store[leaf_idx].state])
        expand_and_backpropagate(store, [leaf_idx], policy, values, cfg)

    if cfg.verbose:
        log_root(store, root_idx, cfg.c)
    store.log_tree(root_idx, depth=1, c=cfg.c)
    return root_policy(store, root_idx)


__all__ = ["expand_and_backpropagate", "is_searchable", "root_policy", "search"]
