"""
Lockstep scheduler running many independent search trees in one NodeStore.

Every round each active tree descends to one leaf; all non-terminal leaves
are evaluated together with a single predictor call and the output rows are
handed back in the order the leaves were collected. Trees never share nodes,
so nothing has to be locked.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..config import Budget, BudgetMode, ForcedOutcome, MCTSConfig
from ..game.base import LearnableGame
from ..net.predictor import Predictor, evaluate_states
from .node_store import NodeStore
from .noise import apply_dirichlet
from .search import expand_and_backpropagate, is_searchable, log_root, root_policy

logger = logging.getLogger(__name__)


@dataclass
class TreeResult:
    root_idx: int
    # None when the root is terminal or the side to move has to pass
    policy: Optional[np.ndarray]
    iterations: int = 0
    forced: bool = False
    forced_value: Optional[float] = None


def _budgets(iterations: Budget, count: int, mode: BudgetMode) -> List[int]:
    if isinstance(iterations, int):
        budgets = [iterations] * count
    else:
        budgets = [int(b) for b in iterations]
        if len(budgets) != count:
            raise ValueError(f"Got {len(budgets)} iteration budgets for {count} trees")
    if any(b < 0 for b in budgets):
        raise ValueError(f"Iteration budgets must be non-negative, got {budgets}")
    if mode is BudgetMode.GLOBAL and budgets:
        budgets = [max(budgets)] * count
    return budgets


def _forced_value(outcome: ForcedOutcome) -> float:
    if outcome is ForcedOutcome.RANDOM:
        return random.choice((-1.0, 1.0))
    return 0.0


def batched_search(
    store: NodeStore,
    states: Sequence[LearnableGame],
    predictor: Predictor,
    config: Optional[MCTSConfig] = None,
    *,
    iterations: Optional[Budget] = None,
    round_limit: Optional[int] = None,
    add_noise: Optional[bool] = None,
) -> List[TreeResult]:
    """
    Search every state in `states` and return one TreeResult per input, in order.

    Roots are appended to `store` in input order. In `PER_TREE` mode a tree
    leaves the active set once its own budget is spent; in `GLOBAL` mode all
    trees run until the largest budget is reached. A terminal leaf is backed up
    immediately and counts as that tree's iteration for the round. When
    `round_limit` rounds have run, trees still active are cut off and report
    the configured forced outcome, which is not backed up.
    """
    cfg = config or MCTSConfig()
    if iterations is None:
        iterations = cfg.iterations
    if round_limit is None:
        round_limit = cfg.round_limit
    if add_noise is None:
        add_noise = cfg.add_dirichlet_noise

    count = len(states)
    budgets = _budgets(iterations, count, cfg.budget_mode)
    roots = [store.add_node(state.copy()) for state in states]
    results = [TreeResult(root_idx=idx, policy=None) for idx in roots]

    searchable = [i for i in range(count) if is_searchable(store, roots[i])]
    if searchable:
        root_states = [store[roots[i]].state for i in searchable]
        policy, values = evaluate_states(predictor, root_states)
        expand_and_backpropagate(store, [roots[i] for i in searchable], policy, values, cfg)
        if add_noise:
            for i in searchable:
                apply_dirichlet(store, roots[i], cfg.dirichlet_alpha, cfg.dirichlet_epsilon)

    active = [i for i in searchable if budgets[i] > 0]
    done = [0] * count
    rounds = 0
    while active:
        if round_limit is not None and rounds >= round_limit:
            for i in active:
                results[i].forced = True
                results[i].forced_value = _forced_value(cfg.forced_outcome)
            logger.debug("round limit %d reached, %d trees forced", round_limit, len(active))
            break

        leaves: List[int] = []
        for i in active:
            leaf_idx = store.select_leaf(roots[i], cfg.c)
            if store[leaf_idx].is_terminal():
                store.backpropagate_terminal(leaf_idx, cfg.value_perspective)
            else:
                leaves.append(leaf_idx)
            done[i] += 1

        if leaves:
            policy, values = evaluate_states(predictor, [store[idx].state for idx in leaves])
            expand_and_backpropagate(store, leaves, policy, values, cfg)

        rounds += 1
        logger.debug("round %d: active=%d batch=%d", rounds, len(active), len(leaves))
        active = [i for i in active if done[i] < budgets[i]]

    for i in searchable:
        results[i].iterations = done[i]
        results[i].policy = root_policy(store, roots[i])
        if cfg.verbose:
            log_root(store, roots[i], cfg.c)
    return results


__all__ = ["TreeResult", "batched_search"]
