"""
Configuration objects for search, self-play and evaluation matches.

All knobs live in plain dataclasses that are passed explicitly into every
entry point; nothing here is process-global.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union


class ForcedOutcome(str, Enum):
    """Outcome reported for a tree or game cut off by a round limit."""

    NEUTRAL = "neutral"
    RANDOM = "random"


class ValuePerspective(str, Enum):
    """How backpropagated values are signed along the path."""

    # Each node stores value from the point of view of the player who moved into it.
    MOVER = "mover"
    # Every node on the path receives the same scalar, seen by player +1.
    ABSOLUTE = "absolute"


class BudgetMode(str, Enum):
    """How per-tree iteration budgets interact in the batched scheduler."""

    PER_TREE = "per_tree"
    GLOBAL = "global"


Budget = Union[int, Sequence[int]]


@dataclass
class MCTSConfig:
    iterations: Budget = 100
    c: float = 1.0
    add_dirichlet_noise: bool = True
    dirichlet_alpha: float = 0.3
    dirichlet_epsilon: float = 0.25
    round_limit: Optional[int] = None
    forced_outcome: ForcedOutcome = ForcedOutcome.NEUTRAL
    value_perspective: ValuePerspective = ValuePerspective.MOVER
    budget_mode: BudgetMode = BudgetMode.PER_TREE
    simulate_round_limit: int = 100
    verbose: bool = False

    def __post_init__(self) -> None:
        self.forced_outcome = ForcedOutcome(self.forced_outcome)
        self.value_perspective = ValuePerspective(self.value_perspective)
        self.budget_mode = BudgetMode(self.budget_mode)

        budgets = [self.iterations] if isinstance(self.iterations, int) else list(self.iterations)
        if not budgets or any(int(b) < 0 for b in budgets):
            raise ValueError(f"iterations must be non-negative, got {self.iterations!r}")
        if self.c < 0:
            raise ValueError(f"c must be non-negative, got {self.c}")
        if self.dirichlet_alpha <= 0:
            raise ValueError(f"dirichlet_alpha must be positive, got {self.dirichlet_alpha}")
        if not 0.0 <= self.dirichlet_epsilon <= 1.0:
            raise ValueError(f"dirichlet_epsilon must be in [0, 1], got {self.dirichlet_epsilon}")
        if self.round_limit is not None and self.round_limit < 0:
            raise ValueError(f"round_limit must be non-negative, got {self.round_limit}")
        if self.simulate_round_limit <= 0:
            raise ValueError(
                f"simulate_round_limit must be positive, got {self.simulate_round_limit}"
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "MCTSConfig":
        """Build a config from plain values, e.g. a parsed JSON/YAML section."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown MCTS config keys: {', '.join(unknown)}")
        kwargs = dict(values)
        for key, enum_cls in (
            ("forced_outcome", ForcedOutcome),
            ("value_perspective", ValuePerspective),
            ("budget_mode", BudgetMode),
        ):
            raw = kwargs.get(key)
            if isinstance(raw, str) and raw.upper() in enum_cls.__members__:
                kwargs[key] = enum_cls[raw.upper()]
        return cls(**kwargs)


@dataclass
class SelfPlayConfig:
    mcts: MCTSConfig = field(default_factory=MCTSConfig)
    num_games: int = 8
    temperature: float = 1.0
    max_turns: int = 200

    def __post_init__(self) -> None:
        if self.num_games <= 0:
            raise ValueError(f"num_games must be positive, got {self.num_games}")
        if self.temperature <= 0:
            raise ValueError(f"temperature must be positive, got {self.temperature}")
        if self.max_turns <= 0:
            raise ValueError(f"max_turns must be positive, got {self.max_turns}")


__all__ = [
    "Budget",
    "BudgetMode",
    "ForcedOutcome",
    "MCTSConfig",
    "SelfPlayConfig",
    "ValuePerspective",
]
