"""
Predictor interface used by search and self-play.
"""

from .predictor import Predictor, TorchPredictor, UniformPredictor, as_policy_value, evaluate_states

__all__ = ["Predictor", "TorchPredictor", "UniformPredictor", "as_policy_value", "evaluate_states"]
