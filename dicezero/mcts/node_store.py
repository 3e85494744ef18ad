"""
Append-only node arena shared by single and batched search.

A store lives for one search episode. Nodes are addressed by their index,
appended in O(1) and never removed; the whole store is dropped afterwards.
Tree operations (expand, select, backpropagate) live here because they only
need index arithmetic over the arena.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

import numpy as np

from ..config import ValuePerspective
from ..game.base import LearnableGame, Move
from .node import Node

logger = logging.getLogger(__name__)


def _expandable_moves(state: LearnableGame) -> List[Move]:
    if state.is_terminal():
        return []
    moves = state.get_valid_moves()
    if not moves:
        # side to move must pass: a single edge that skips the turn
        return [state.EMPTY_MOVE]
    return list(moves)


class NodeStore:
    def __init__(self) -> None:
        self._nodes: List[Node] = []

    # ---- Arena access ----------------------------------------------------

    def add_node(
        self,
        state: LearnableGame,
        parent: Optional[int] = None,
        move: Optional[Move] = None,
        prior: float = 0.0,
    ) -> int:
        idx = len(self._nodes)
        if parent is None:
            mover = state.player
        else:
            mover = self._nodes[parent].state.player
        node = Node(
            state=state,
            idx=idx,
            parent=parent,
            move=move,
            prior=float(prior),
            mover=mover,
            expandable_moves=_expandable_moves(state),
        )
        self._nodes.append(node)
        if parent is not None:
            self._nodes[parent].children.append(idx)
        return idx

    def __getitem__(self, idx: int) -> Node:
        return self._nodes[idx]

    def __setitem__(self, idx: int, node: Node) -> None:
        if node.idx != idx:
            raise RuntimeError(f"Node index {node.idx} does not match slot {idx}")
        self._nodes[idx] = node

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def root_indices(self) -> List[int]:
        return [node.idx for node in self.get_root_nodes()]

    def get_root_nodes(self) -> List[Node]:
        return [node for node in self._nodes if node.is_root()]

    # ---- Tree operations -------------------------------------------------

    def expand(self, idx: int, policy: np.ndarray) -> None:
        """
        Create one child per expandable move of node `idx`.

        Priors are `policy` restricted to the encoded legal indices and
        renormalised; a zero or non-finite legal mass falls back to uniform.
        """
        node = self._nodes[idx]
        if node.expanded:
            raise RuntimeError(f"Node {idx} is already expanded")
        moves = node.expandable_moves
        if not moves:
            raise RuntimeError(f"Node {idx} has no moves to expand")

        indices = [node.state.encode(move) for move in moves]
        priors = np.asarray(policy, dtype=np.float64)[indices]
        total = float(priors.sum())
        if not np.isfinite(total) or total <= 0.0 or not np.all(np.isfinite(priors)):
            priors = np.full(len(moves), 1.0 / len(moves))
        else:
            priors = priors / total

        for move, prior in zip(moves, priors):
            child_state = node.state.copy()
            if move == node.state.EMPTY_MOVE:
                child_state.skip_turn()
            else:
                child_state.apply_move(move)
            self.add_node(child_state, idx, move, float(prior))

        node.expandable_moves = []
        node.expanded = True

    def select_child(self, idx: int, c: float) -> int:
        node = self._nodes[idx]
        if not node.children:
            raise ValueError("Node has no children")
        best_idx = node.children[0]
        best_score = -np.inf
        for child_idx in node.children:
            score = self._nodes[child_idx].puct(self, c)
            if score > best_score:
                best_score = score
                best_idx = child_idx
        return best_idx

    def select_leaf(self, idx: int, c: float) -> int:
        """Descend from `idx` by maximum PUCT until a node without children."""
        while not self._nodes[idx].is_leaf():
            idx = self.select_child(idx, c)
        return idx

    def backpropagate(
        self,
        idx: int,
        value: float,
        player: int,
        perspective: ValuePerspective = ValuePerspective.MOVER,
    ) -> None:
        """
        Add one visit and `value` (seen by `player`) to `idx` and its ancestors.
        """
        current: Optional[int] = idx
        while current is not None:
            node = self._nodes[current]
            node.visits += 1
            if perspective is ValuePerspective.ABSOLUTE:
                node.value_sum += value * player
            elif node.mover == player:
                node.value_sum += value
            else:
                node.value_sum -= value
            current = node.parent

    def backpropagate_terminal(
        self, idx: int, perspective: ValuePerspective = ValuePerspective.MOVER
    ) -> None:
        winner = self._nodes[idx].state.check_winner()
        if winner is None:
            raise RuntimeError(f"Node {idx} is not terminal")
        self.backpropagate(idx, 1.0, winner, perspective)

    # ---- Debugging -------------------------------------------------------

    def format_tree(self, idx: int = 0, depth: int = 2, c: float = 1.0) -> str:
        lines: List[str] = []

        def visit(node_idx: int, prefix: str, level: int) -> None:
            node = self._nodes[node_idx]
            score = node.puct(self, c)
            lines.append(
                f"{prefix}[{node.idx}] move={node.move!r} N={node.visits} "
                f"Q={node.value():+.3f} P={node.prior:.3f} S={score:.3f}"
            )
            if level >= depth:
                return
            for child_idx in node.children:
                visit(child_idx, prefix + "  ", level + 1)

        visit(idx, "", 0)
        return "\n".join(lines)

    def log_tree(self, idx: int = 0, depth: int = 2, c: float = 1.0) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("tree rooted at %d:\n%s", idx, self.format_tree(idx, depth, c))


__all__ = ["NodeStore"]
