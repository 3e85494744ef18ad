"""
Self-play data generation.

Games advance in lockstep: every turn one batched search covers all running
games, each game samples its move from the root visit distribution and the
position is recorded for training. Results stay in memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import torch

from ..config import SelfPlayConfig
from ..game.backgammon import Backgammon
from ..mcts.batched import batched_search
from ..mcts.node_store import NodeStore
from ..net.policy_decoder import apply_temperature, sample_actions
from ..net.predictor import Predictor

logger = logging.getLogger(__name__)


@dataclass
class MemoryFragment:
    outcome: float  # +1 if the player to move here won, -1 if they lost, 0 if cut off
    policy: np.ndarray  # (A,) tempered root visit distribution
    state: torch.Tensor  # (1, C, H, W) features


@dataclass
class _Sample:
    player: int
    policy: np.ndarray
    state: torch.Tensor


def _label(samples: List[_Sample], winner: Optional[int]) -> List[MemoryFragment]:
    fragments = []
    for sample in samples:
        if winner is None:
            outcome = 0.0
        else:
            outcome = 1.0 if sample.player == winner else -1.0
        fragments.append(MemoryFragment(outcome, sample.policy, sample.state))
    return fragments


def run_self_play(
    predictor: Predictor,
    config: Optional[SelfPlayConfig] = None,
    initial_states: Optional[Sequence[Backgammon]] = None,
) -> List[MemoryFragment]:
    """
    Play `config.num_games` games of Backgammon against itself.

    `initial_states` replaces the standard opening (and the game count) when
    given; unrolled states get their dice rolled first. A game that reaches
    `config.max_turns` turns is abandoned and all of its samples are
    labelled 0.
    """
    cfg = config or SelfPlayConfig()
    if initial_states is None:
        starts = [Backgammon() for _ in range(cfg.num_games)]
    else:
        starts = [state.copy() for state in initial_states]

    games: Dict[int, Backgammon] = {}
    for game_id, game in enumerate(starts):
        game.set_id(game_id)
        if game.roll == (0, 0):
            game.roll_die()
        games[game_id] = game

    history: Dict[int, List[_Sample]] = {game_id: [] for game_id in games}
    turns: Dict[int, int] = {game_id: 0 for game_id in games}
    memory: List[MemoryFragment] = []
    searches = 0

    while games:
        finished: List[int] = []
        for game_id, game in games.items():
            if game.is_terminal():
                memory.extend(_label(history[game_id], game.check_winner()))
                finished.append(game_id)
            elif turns[game_id] >= cfg.max_turns:
                logger.debug("game %d hit the turn limit", game_id)
                memory.extend(_label(history[game_id], None))
                finished.append(game_id)
        for game_id in finished:
            del games[game_id]
        if not games:
            break

        order = list(games)
        store = NodeStore()
        results = batched_search(store, [games[g] for g in order], predictor, cfg.mcts)
        searches += 1

        action_size = Backgammon.ACTION_SPACE_SIZE
        probs = torch.zeros((len(order), action_size), dtype=torch.float32)
        for row, result in enumerate(results):
            if result.policy is not None:
                probs[row] = torch.from_numpy(result.policy)
        tempered = apply_temperature(probs, cfg.temperature)
        actions = sample_actions(probs, cfg.temperature)

        finished = []
        for row, game_id in enumerate(order):
            game = games[game_id]
            turns[game_id] += 1
            action = int(actions[row])
            if action < 0:
                logger.debug("game %d: no legal move, skipping turn", game_id)
                game.skip_turn()
                continue

            history[game_id].append(
                _Sample(game.player, tempered[row].numpy().copy(), game.as_tensor())
            )
            game.apply_move(game.decode(action))

            winner = game.check_winner()
            if winner is not None:
                logger.debug("game %d won by %d after %d turns", game_id, winner, turns[game_id])
                memory.extend(_label(history[game_id], winner))
                finished.append(game_id)
        for game_id in finished:
            del games[game_id]

    logger.info("self-play finished: %d samples from %d searches", len(memory), searches)
    return memory


__all__ = ["MemoryFragment", "run_self_play"]
