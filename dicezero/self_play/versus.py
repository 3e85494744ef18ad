"""
Evaluation matches between two agents.

Player 1 always plays side -1. Half of the games start with player 2 to move.
Model agents search all of their pending positions with one batched search;
random and rollout agents work on independent game copies in a thread pool.
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import torch

from ..config import ForcedOutcome, MCTSConfig
from ..game.backgammon import Backgammon
from ..game.move_encoder import BackgammonMove
from ..mcts.batched import batched_search
from ..mcts.node_store import NodeStore
from ..mcts.rollout import rollout_search
from ..net.policy_decoder import sample_actions
from ..net.predictor import Predictor

logger = logging.getLogger(__name__)

PLAYER1_SIDE = -1


class Agent(str, Enum):
    RANDOM = "random"
    ROLLOUT = "rollout"
    MODEL = "model"


@dataclass
class Player:
    agent: Agent
    predictor: Optional[Predictor] = None
    temperature: float = 1.0

    def __post_init__(self) -> None:
        self.agent = Agent(self.agent)
        if self.agent is Agent.MODEL and self.predictor is None:
            raise ValueError("A model agent needs a predictor")


@dataclass
class Turn:
    roll: Tuple[int, int]
    action: BackgammonMove
    agent: Agent


@dataclass
class GameRecord:
    game_id: int
    player1: Agent
    player2: Agent
    initial_state: Backgammon
    turns: List[Turn] = field(default_factory=list)
    # side that won (-1 is player 1), None for a drawn or unfinished game
    winner: Optional[int] = None


@dataclass
class MatchResult:
    player1: Agent
    player2: Agent
    wins_p1: float
    wins_p2: float
    n_games: int
    games: List[GameRecord]

    @property
    def winrate(self) -> float:
        return self.wins_p1 / self.n_games if self.n_games else 0.0

    def __str__(self) -> str:
        return (
            f"Player 1: {self.player1.value}\n"
            f"Player 2: {self.player2.value}\n"
            f"Wins Player 1: {self.wins_p1}\n"
            f"Wins Player 2: {self.wins_p2}\n"
            f"Number of Games: {self.n_games}\n"
            f"Winrate: {self.winrate:.2%}"
        )


# ---- Agents ----------------------------------------------------------------


def _random_action(game: Backgammon, rng: random.Random) -> BackgammonMove:
    moves = game.get_valid_moves()
    if not moves:
        return Backgammon.EMPTY_MOVE
    return rng.choice(moves)


def _model_actions(
    player: Player, games: List[Backgammon], config: MCTSConfig
) -> Dict[int, BackgammonMove]:
    store = NodeStore()
    results = batched_search(store, games, player.predictor, config)
    probs = torch.zeros((len(games), Backgammon.ACTION_SPACE_SIZE), dtype=torch.float32)
    for row, result in enumerate(results):
        if result.policy is not None:
            probs[row] = torch.from_numpy(result.policy)
    chosen = sample_actions(probs, player.temperature)

    actions: Dict[int, BackgammonMove] = {}
    for row, game in enumerate(games):
        index = int(chosen[row])
        actions[game.get_id()] = Backgammon.EMPTY_MOVE if index < 0 else game.decode(index)
    return actions


def _pooled_actions(
    player: Player,
    games: List[Backgammon],
    config: MCTSConfig,
    workers: Optional[int],
    seed: Optional[int],
    round_count: int,
) -> Dict[int, BackgammonMove]:
    def task(game: Backgammon) -> BackgammonMove:
        rng = random.Random() if seed is None else random.Random(
            seed * 10007 + round_count * 9973 + game.get_id()
        )
        if player.agent is Agent.RANDOM:
            return _random_action(game, rng)
        return rollout_search(game, config, rng)

    actions: Dict[int, BackgammonMove] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dz-versus") as pool:
        future_map = {pool.submit(task, game.copy()): game.get_id() for game in games}
        for future in as_completed(future_map):
            game_id = future_map[future]
            try:
                actions[game_id] = future.result()
            except Exception as exc:
                raise RuntimeError(
                    f"{player.agent.value} agent failed on game={game_id}"
                ) from exc
    return actions


def get_actions(
    player: Player,
    games: List[Backgammon],
    config: MCTSConfig,
    workers: Optional[int] = None,
    seed: Optional[int] = None,
    round_count: int = 0,
) -> Dict[int, BackgammonMove]:
    """Compute one action per game, keyed by `game.get_id()`."""
    if not games:
        return {}
    if player.agent is Agent.MODEL:
        return _model_actions(player, games, config)
    return _pooled_actions(player, games, config, workers, seed, round_count)


# ---- Matches ---------------------------------------------------------------


def play(
    player1: Player,
    player2: Player,
    num_games: int = 100,
    config: Optional[MCTSConfig] = None,
    max_turns: int = 400,
    workers: Optional[int] = None,
    seed: Optional[int] = None,
) -> MatchResult:
    """
    Play `num_games` games between `player1` (side -1) and `player2` (side +1).

    Games still running after `max_turns` rounds are decided by
    `config.forced_outcome`: a random winner, or a draw worth half a win to
    each player.

    `seed` fixes the dice of every game, the moves of random and rollout
    agents and forced winners. Model agents also draw from the global numpy
    and torch generators (root noise, action sampling); seed those as well to
    replay a match with them.
    """
    cfg = config or MCTSConfig()
    if num_games <= 0:
        raise ValueError(f"num_games must be positive, got {num_games}")

    match_rng = random.Random(seed)
    games: Dict[int, Tuple[Backgammon, GameRecord]] = {}
    for game_id in range(num_games):
        game = Backgammon(rng=random.Random(match_rng.getrandbits(64)))
        record = GameRecord(game_id, player1.agent, player2.agent, game.copy())
        if game_id >= num_games // 2:
            game.skip_turn()
        else:
            game.roll_die()
        game.set_id(game_id)
        games[game_id] = (game, record)

    finished: List[GameRecord] = []
    wins_p1 = 0.0
    round_count = 0
    while games:
        side1 = [g for g, _ in games.values() if g.player == PLAYER1_SIDE]
        side2 = [g for g, _ in games.values() if g.player != PLAYER1_SIDE]
        actions = get_actions(player1, side1, cfg, workers, seed, round_count)
        actions.update(get_actions(player2, side2, cfg, workers, seed, round_count))
        round_count += 1

        done: List[int] = []
        for game_id in sorted(actions):
            action = actions[game_id]
            game, record = games[game_id]
            agent = player1.agent if game.player == PLAYER1_SIDE else player2.agent
            record.turns.append(Turn(game.roll, action, agent))

            if action == Backgammon.EMPTY_MOVE:
                game.skip_turn()
            else:
                if action not in game.get_valid_moves():
                    raise RuntimeError(f"{agent.value} agent played illegal move {action!r}")
                game.apply_move(action)

            winner = game.check_winner()
            if winner is not None:
                record.winner = winner
                if winner == PLAYER1_SIDE:
                    wins_p1 += 1.0
                done.append(game_id)
            elif round_count >= max_turns:
                if cfg.forced_outcome is ForcedOutcome.RANDOM:
                    record.winner = match_rng.choice((-1, 1))
                    if record.winner == PLAYER1_SIDE:
                        wins_p1 += 1.0
                else:
                    wins_p1 += 0.5
                done.append(game_id)

        for game_id in done:
            finished.append(games.pop(game_id)[1])
        logger.debug("round %d: %d games left", round_count, len(games))

    finished.sort(key=lambda record: record.game_id)
    result = MatchResult(
        player1=player1.agent,
        player2=player2.agent,
        wins_p1=wins_p1,
        wins_p2=num_games - wins_p1,
        n_games=num_games,
        games=finished,
    )
    logger.info("match finished: %s vs %s winrate=%.3f", player1.agent.value,
                player2.agent.value, result.winrate)
    return result


__all__ = ["Agent", "GameRecord", "MatchResult", "Player", "Turn", "get_actions", "play"]
