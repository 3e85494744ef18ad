"""
Dirichlet exploration noise for root priors.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .node_store import NodeStore


def apply_dirichlet(
    store: NodeStore,
    idx: int,
    alpha: float,
    eps: float,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """
    Mix Dirichlet(alpha) noise into the priors of the children of `idx`:
    prior' = prior * (1 - eps) + noise * eps.

    The node must already have been visited. With fewer than two children
    there is nothing to perturb and the call is a no-op.
    """
    node = store[idx]
    if node.visits == 0:
        raise RuntimeError(f"Dirichlet noise requires a visited node, node {idx} has 0 visits")
    if len(node.children) < 2:
        return

    if rng is None:
        noise = np.random.dirichlet([alpha] * len(node.children))
    else:
        noise = rng.dirichlet([alpha] * len(node.children))
    for child_idx, eta in zip(node.children, noise):
        child = store[child_idx]
        child.prior = child.prior * (1.0 - eps) + float(eta) * eps


__all__ = ["apply_dirichlet"]
