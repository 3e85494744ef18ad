"""
Action selection from batched root visit distributions.
"""

from __future__ import annotations

import torch


def apply_temperature(probs: torch.Tensor, temperature: float) -> torch.Tensor:
    """
    Raise each row to 1 / temperature and renormalise. Rows without mass stay zero.
    """
    exponent = 1.0 / max(temperature, 1e-6)
    adjusted = torch.where(probs > 0, probs.pow(exponent), torch.zeros_like(probs))
    sums = adjusted.sum(dim=1, keepdim=True)
    return torch.where(sums > 0, adjusted / sums.clamp_min(1e-12), adjusted)


def sample_actions(
    probs: torch.Tensor,
    temperature: float,
    active_mask: torch.BoolTensor | None = None,
) -> torch.Tensor:
    """
    Sample one action index per row of `probs` (B, A).

    Inactive rows and rows without probability mass yield -1; callers treat
    that as "no move available".
    """
    batch_size = probs.size(0)
    if active_mask is None:
        active_mask = torch.ones(batch_size, dtype=torch.bool, device=probs.device)

    chosen = torch.full((batch_size,), -1, dtype=torch.long, device=probs.device)
    sampling_rows = active_mask & (probs.sum(dim=1) > 0)
    if not sampling_rows.any():
        return chosen

    if temperature <= 1e-6:
        best = torch.argmax(probs, dim=1)
        chosen[sampling_rows] = best[sampling_rows]
        return chosen

    dist = apply_temperature(probs[sampling_rows], temperature)
    chosen[sampling_rows] = torch.multinomial(dist, 1).squeeze(1)
    return chosen


__all__ = ["apply_temperature", "sample_actions"]
