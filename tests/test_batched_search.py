"""
Pytest tests for the lockstep batched scheduler.

Usage:
  pytest tests/test_batched_search.py -q
"""

import random

import numpy as np
import pytest

from dicezero.config import BudgetMode, ForcedOutcome, MCTSConfig
from dicezero.game.backgammon import Backgammon
from dicezero.mcts.batched import batched_search
from dicezero.mcts.node_store import NodeStore
from dicezero.mcts.search import search
from dicezero.net.predictor import UniformPredictor


SEED = 0x42


def _config(**overrides):
    values = dict(iterations=8, add_dirichlet_noise=False)
    values.update(overrides)
    return MCTSConfig(**values)


def _openings(rolls):
    return [Backgammon(player=-1, roll=roll) for roll in rolls]


def test_single_tree_matches_plain_search(opening):
    random.seed(SEED)
    single_store = NodeStore()
    single = search(opening, UniformPredictor(opening.ACTION_SPACE_SIZE), _config(),
                    store=single_store)

    random.seed(SEED)
    batch_store = NodeStore()
    (result,) = batched_search(batch_store, [opening], UniformPredictor(opening.ACTION_SPACE_SIZE),
                               _config())

    np.testing.assert_allclose(result.policy, single)
    assert len(batch_store) == len(single_store)
    assert [n.visits for n in batch_store] == [n.visits for n in single_store]


@pytest.mark.parametrize("iterations", [8, 60])
def test_single_tree_matches_plain_search_with_noise(opening, iterations):
    cfg = _config(iterations=iterations, add_dirichlet_noise=True)

    random.seed(SEED)
    np.random.seed(SEED)
    single_store = NodeStore()
    single = search(opening, UniformPredictor(opening.ACTION_SPACE_SIZE), cfg, store=single_store)

    random.seed(SEED)
    np.random.seed(SEED)
    batch_store = NodeStore()
    (result,) = batched_search(batch_store, [opening], UniformPredictor(opening.ACTION_SPACE_SIZE),
                               cfg)

    np.testing.assert_allclose(result.policy, single)
    root_children = batch_store[result.root_idx].children
    assert [batch_store[c].prior for c in root_children] == pytest.approx(
        [single_store[c].prior for c in single_store[0].children]
    )
    assert [n.visits for n in batch_store] == [n.visits for n in single_store]


def test_one_predictor_call_per_round(uniform):
    states = _openings([(6, 5), (3, 1), (4, 2)])
    store = NodeStore()
    results = batched_search(store, states, uniform, _config(iterations=5))
    # one call for the roots, then one per round
    assert uniform.calls == 6
    assert uniform.batch_sizes == [3] * 6
    assert [r.root_idx for r in results] == [0, 1, 2]
    assert store.root_indices() == [0, 1, 2]
    for result, state in zip(results, states):
        legal = {state.encode(move) for move in state.get_valid_moves()}
        assert set(np.flatnonzero(result.policy)) <= legal
        assert result.policy.sum() == pytest.approx(1.0, abs=1e-5)
        assert result.iterations == 5


def test_per_tree_budgets(uniform):
    store = NodeStore()
    batched_search(store, _openings([(6, 5), (3, 1)]), uniform, _config(), iterations=[3, 6])
    assert [store[0].visits, store[1].visits] == [4, 7]
    assert uniform.batch_sizes == [2, 2, 2, 2, 1, 1, 1]


def test_global_budget_runs_every_tree_to_the_largest(uniform):
    store = NodeStore()
    cfg = _config(budget_mode=BudgetMode.GLOBAL)
    batched_search(store, _openings([(6, 5), (3, 1)]), uniform, cfg, iterations=[3, 6])
    assert [store[0].visits, store[1].visits] == [7, 7]


def test_budget_count_must_match_states(uniform):
    with pytest.raises(ValueError):
        batched_search(NodeStore(), _openings([(6, 5)]), uniform, _config(), iterations=[1, 2])


def test_unsearchable_roots_finish_immediately(opening, finished, blocked, uniform):
    results = batched_search(NodeStore(), [finished, opening, blocked], uniform, _config())
    assert results[0].policy is None
    assert results[2].policy is None
    assert results[1].policy is not None
    assert set(uniform.batch_sizes) == {1}


def test_nothing_to_search(finished, uniform):
    results = batched_search(NodeStore(), [finished], uniform, _config())
    assert results[0].policy is None
    assert uniform.calls == 0


def test_terminal_leaves_do_not_join_the_batch(nim, nim_uniform):
    store = NodeStore()
    results = batched_search(store, [nim(pile=1), nim(pile=5)], nim_uniform, _config(iterations=4))
    assert nim_uniform.batch_sizes[0] == 2
    assert all(size == 1 for size in nim_uniform.batch_sizes[1:])
    assert store[results[0].root_idx].visits == 5
    assert store[results[1].root_idx].visits == 5


def test_round_limit_forces_neutral_outcome(uniform):
    store = NodeStore()
    cfg = _config(iterations=10, round_limit=2)
    results = batched_search(store, _openings([(6, 5), (2, 1)]), uniform, cfg)
    for result in results:
        assert result.forced
        assert result.forced_value == 0.0
        assert result.iterations == 2
        # forced outcomes are reported, not backed up
        assert store[result.root_idx].visits == 3
        assert result.policy.sum() == pytest.approx(1.0, abs=1e-5)


def test_round_limit_forces_random_outcome(uniform):
    cfg = _config(iterations=10, forced_outcome=ForcedOutcome.RANDOM)
    results = batched_search(NodeStore(), _openings([(6, 5), (5, 5)]), uniform, cfg,
                             round_limit=1)
    assert all(r.forced for r in results)
    assert {r.forced_value for r in results} <= {-1.0, 1.0}


def test_trees_within_budget_are_not_forced(uniform):
    cfg = _config(iterations=2, round_limit=5)
    results = batched_search(NodeStore(), _openings([(6, 5)]), uniform, cfg)
    assert not results[0].forced
    assert results[0].forced_value is None
