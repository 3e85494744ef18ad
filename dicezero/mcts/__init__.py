"""
Tree search over an index-addressed node arena.

Modules:
    node, node_store  arena and tree operations
    noise             Dirichlet root noise
    search            single-tree PUCT search
    batched           lockstep scheduler for many trees
    rollout           predictor-free UCT baseline
"""

from .batched import TreeResult, batched_search
from .node import Node
from .node_store import NodeStore
from .noise import apply_dirichlet
from .rollout import rollout_search
from .search import search

__all__ = [
    "Node",
    "NodeStore",
    "TreeResult",
    "apply_dirichlet",
    "batched_search",
    "rollout_search",
    "search",
]
