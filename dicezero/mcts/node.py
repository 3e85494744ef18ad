"""
Search tree node.

Nodes never hold references to each other; `parent` and `children` are
indices into the owning `NodeStore`, so the tree is a flat arena.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..game.base import LearnableGame, Move

if TYPE_CHECKING:
    from .node_store import NodeStore


@dataclass
class Node:
    state: LearnableGame
    idx: int
    parent: Optional[int] = None
    move: Optional[Move] = None
    prior: float = 0.0
    # player who made the move into this node (the side to move for a root)
    mover: int = 1
    children: List[int] = field(default_factory=list)
    visits: int = 0
    value_sum: float = 0.0
    expandable_moves: List[Move] = field(default_factory=list)
    expanded: bool = False

    def value(self) -> float:
        if self.visits == 0:
            return 0.0
        return self.value_sum / self.visits

    def is_root(self) -> bool:
        return self.parent is None

    def is_terminal(self) -> bool:
        return self.state.check_winner() is not None

    def is_leaf(self) -> bool:
        return not self.children

    def puct(self, store: "NodeStore", c: float) -> float:
        """Q + c * sqrt(N_parent) / (1 + N) * P. The root is always preferred."""
        if self.is_root():
            return math.inf
        parent = store[self.parent]
        exploration = c * math.sqrt(parent.visits) / (1 + self.visits) * self.prior
        return self.value() + exploration

    def ucb(self, store: "NodeStore", c: float) -> float:
        """Plain UCB1, used by the rollout search."""
        if self.is_root() or self.visits == 0:
            return math.inf
        parent = store[self.parent]
        return self.value() + c * math.sqrt(math.log(parent.visits) / self.visits)


__all__ = ["Node"]
