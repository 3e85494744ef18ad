"""
Predictor contract and adapters.

A predictor is any callable taking a feature batch shaped (B, C, H, W) and
returning `(policy, value)`: policy probabilities shaped (B, A) and values in
[-1, 1] shaped (B,) or (B, 1), seen by the side to move in each row. Either
output may be a torch tensor or a numpy array.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np
import torch
import torch.nn.functional as F

from ..game.base import LearnableGame

ArrayLike = Union[torch.Tensor, np.ndarray]
Predictor = Callable[[torch.Tensor], Tuple[ArrayLike, ArrayLike]]


def _to_numpy(values: ArrayLike) -> np.ndarray:
    if isinstance(values, torch.Tensor):
        return values.detach().to("cpu", dtype=torch.float32).numpy()
    return np.asarray(values, dtype=np.float32)


def as_policy_value(
    policy: ArrayLike, value: ArrayLike, batch_size: int, action_size: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Normalise predictor outputs to numpy and validate their shapes."""
    policy_np = _to_numpy(policy)
    value_np = _to_numpy(value)
    if policy_np.shape != (batch_size, action_size):
        raise ValueError(
            f"Predictor policy has shape {policy_np.shape}, expected {(batch_size, action_size)}"
        )
    if value_np.shape == (batch_size, 1):
        value_np = value_np.reshape(batch_size)
    if value_np.shape != (batch_size,):
        raise ValueError(f"Predictor value has shape {value_np.shape}, expected ({batch_size},)")
    return policy_np, value_np


def evaluate_states(
    predictor: Predictor, states: Sequence[LearnableGame]
) -> Tuple[np.ndarray, np.ndarray]:
    """Run one predictor call over `states`; row i belongs to states[i]."""
    if not states:
        raise ValueError("Cannot evaluate an empty batch")
    batch = torch.cat([state.as_tensor() for state in states], dim=0)
    policy, value = predictor(batch)
    return as_policy_value(policy, value, len(states), states[0].ACTION_SPACE_SIZE)


class UniformPredictor:
    """Uniform policy and a constant value; a stand-in when no model exists."""

    def __init__(self, action_size: int, value: float = 0.0) -> None:
        self.action_size = action_size
        self.value = value
        self.calls = 0
        self.batch_sizes = []

    def __call__(self, batch: torch.Tensor) -> Tuple[np.ndarray, np.ndarray]:
        size = batch.shape[0]
        self.calls += 1
        self.batch_sizes.append(size)
        policy = np.full((size, self.action_size), 1.0 / self.action_size, dtype=np.float32)
        value = np.full((size,), self.value, dtype=np.float32)
        return policy, value


class TorchPredictor:
    """
    Wrap a `torch.nn.Module` returning `(policy_logits, value)`.

    The module is switched to eval mode and run under `torch.inference_mode`;
    logits are turned into probabilities with a softmax.
    """

    def __init__(self, model: torch.nn.Module, device: Optional[Union[str, torch.device]] = None):
        self.device = torch.device(device) if device is not None else torch.device("cpu")
        self.model = model.to(self.device)

    def __call__(self, batch: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        inputs = batch.to(self.device, non_blocking=True)
        self.model.eval()
        with torch.inference_mode():
            logits, value = self.model(inputs)
            policy = F.softmax(logits.float(), dim=1)
        return policy.cpu(), value.float().cpu()


__all__ = [
    "Predictor",
    "TorchPredictor",
    "UniformPredictor",
    "as_policy_value",
    "evaluate_states",
]
