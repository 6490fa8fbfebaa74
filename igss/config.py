# -*- coding: utf-8 -*-
"""
Global configuration for IGSS rule discovery.

Keep only simple, import-safe constants here. Avoid heavy imports.
The ``IGSSConfig`` dataclass bundles the learner parameters; its defaults
mirror the constants below.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional

from .errors import ConfigurationError

# ----------------------------- Class indices -----------------------------
POSITIVE_CLASS: int = 1
NEGATIVE_CLASS: int = 0


# ----------------------------- Enumerations -----------------------------
class UtilityKind(str, Enum):
    """The closed set of utility functions a GSS pass can rank hypotheses by."""

    ACCURACY = "accuracy"
    LINEAR = "linear"
    SQUARED = "squared"
    BINOMIAL = "binomial"
    WRACC = "wracc"


class UsefulCriterion(str, Enum):
    """Criterion that decides whether a round's best rule is worth keeping."""

    WORST_UTILITY = "worst_utility"
    UTILITY = "utility"
    BEST_UTILITY = "best_utility"
    EXAMPLE = "example"


# ----------------------------- Sampling -----------------------------
# Approximation parameter of the sequential sampling guarantee.
EPSILON: float = 0.04
# Desired confidence (total error probability of a run).
DELTA: float = 0.1
# Weight units drawn between two hypothesis updates.
STEPSIZE: int = 100
# Covered weight above which the Binomial utility switches to the normal approximation.
LARGE: int = 100
# Hard cap on draws per GSS pass (the stopping rule itself is only probabilistic).
MAX_DRAWS: int = 2_000_000

# ----------------------------- Hypothesis space -----------------------------
MIN_COMPLEXITY: int = 1
MAX_COMPLEXITY: int = 1
# Numeric columns with more distinct values than this are binned before learning.
CAT_THRESHOLD: int = 20
# Number of quantile bins for numeric columns.
NUMERIC_BREAKS: int = 4

# ----------------------------- Outer loop -----------------------------
ITERATIONS: int = 10
MIN_UTILITY_PRUNING: float = 0.0
MIN_UTILITY_USEFUL: float = 0.0
EXAMPLE_FACTOR: float = 1.5
# Accepted results needed at a complexity level before the example criterion applies.
MIN_MODEL_NUMBER: int = 2

SEED = 42


@dataclass(frozen=True)
class IGSSConfig:
    """Parameters of one IGSS run.

    Attributes:
        epsilon (float): Maximal utility error of a returned rule.
        delta (float): Total error probability budget of the run.
        stepsize (int): Weight units sampled between two hypothesis updates.
        large (int): Covered weight above which the Binomial utility uses the
            normal approximation instead of the exact tail.
        min_complexity (int): Number of conditions of the seed hypotheses.
        max_complexity (int): Largest number of conditions ever explored.
        iterations (int): Maximal number of rounds.
        use_kbs (bool): Reweight examples after each accepted rule.
        use_binomial (bool): Run one Binomial confirmation pass before escalating.
        rejection_sampling (bool): Accept draws with probability = weight
            instead of adding the weight directly.
        useful_criterion (UsefulCriterion): Usefulness test of a round's rule.
        min_utility_pruning (float): Minimal upper utility bound kept by pruning.
        min_utility_useful (float): Threshold of the utility based criteria.
        example_factor (float): Factor of the example criterion.
        force_iterations (bool): Keep going at max complexity.
        reset_weights (bool): Set weights back to 1 when complexity increases.
        utility_function (UtilityKind): Utility used to rank hypotheses.
        generate_all_hypothesis (bool): Also generate rules predicting the
            negative class.
        use_example_weights (bool): Start from the dataset's weights instead of 1.
        max_draws (int): Draw cap of a single GSS pass.
        max_seconds (float, optional): Wall-clock cap of a single GSS pass.
        seed (int): Seed of the random source.
    """

    epsilon: float = EPSILON
    delta: float = DELTA
    stepsize: int = STEPSIZE
    large: int = LARGE
    min_complexity: int = MIN_COMPLEXITY
    max_complexity: int = MAX_COMPLEXITY
    iterations: int = ITERATIONS
    use_kbs: bool = True
    use_binomial: bool = False
    rejection_sampling: bool = True
    useful_criterion: UsefulCriterion = UsefulCriterion.UTILITY
    min_utility_pruning: float = MIN_UTILITY_PRUNING
    min_utility_useful: float = MIN_UTILITY_USEFUL
    example_factor: float = EXAMPLE_FACTOR
    force_iterations: bool = False
    reset_weights: bool = False
    utility_function: UtilityKind = UtilityKind.WRACC
    generate_all_hypothesis: bool = False
    use_example_weights: bool = False
    max_draws: int = MAX_DRAWS
    max_seconds: Optional[float] = None
    seed: int = SEED

    def __post_init__(self) -> None:
        # Accept plain strings for the enum valued parameters.
        try:
            object.__setattr__(self, "utility_function", UtilityKind(self.utility_function))
            object.__setattr__(self, "useful_criterion", UsefulCriterion(self.useful_criterion))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def validate(self) -> "IGSSConfig":
        """Fail fast on inconsistent parameters; returns self for chaining."""
        if not 0.0 < self.epsilon <= 1.0:
            raise ConfigurationError(f"epsilon must lie in (0, 1], got {self.epsilon}")
        if not 0.0 < self.delta < 1.0:
            raise ConfigurationError(f"delta must lie in (0, 1), got {self.delta}")
        if self.stepsize < 1:
            raise ConfigurationError(f"stepsize must be >= 1, got {self.stepsize}")
        if self.large < 1:
            raise ConfigurationError(f"large must be >= 1, got {self.large}")
        if self.iterations < 1:
            raise ConfigurationError(f"iterations must be >= 1, got {self.iterations}")
        if self.min_complexity < 1:
            raise ConfigurationError(f"min_complexity must be >= 1, got {self.min_complexity}")
        if self.min_complexity > self.max_complexity:
            raise ConfigurationError(
                f"min_complexity ({self.min_complexity}) exceeds max_complexity ({self.max_complexity})"
            )
        for name in ("min_utility_pruning", "min_utility_useful"):
            value = getattr(self, name)
            if not -1.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [-1, 1], got {value}")
        if self.example_factor < 1.0:
            raise ConfigurationError(f"example_factor must be >= 1, got {self.example_factor}")
        if self.max_draws < 1:
            raise ConfigurationError(f"max_draws must be >= 1, got {self.max_draws}")
        if self.max_seconds is not None and self.max_seconds <= 0:
            raise ConfigurationError(f"max_seconds must be positive, got {self.max_seconds}")
        return self

    def updated(self, **overrides: Any) -> "IGSSConfig":
        """Return a copy with some parameters replaced."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"Unknown IGSS parameters: {sorted(unknown)}")
        return replace(self, **overrides)


__all__ = [
    "IGSSConfig",
    "UtilityKind",
    "UsefulCriterion",
    "POSITIVE_CLASS",
    "NEGATIVE_CLASS",
]
