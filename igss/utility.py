# -*- coding: utf-8 -*-
"""
Utility functions ranking GSS hypotheses, with their confidence bounds.

Every kind turns the class counts of a rule into a bounded score and pairs it
with a concentration inequality:

  ACCURACY   predictive accuracy of "covered -> class, else other class"
  LINEAR     p - p0                 (precision lift, Hoeffding on the coverage)
  SQUARED    g^2 (p - p0)           (product bound on g and g (p - p0))
  BINOMIAL   sqrt(g) (p - p0)       (exact binomial tail up to `large`, normal above)
  WRACC      g (p - p0)             (weighted relative accuracy, Hoeffding)

with g the coverage, p the precision and p0 the prior of the predicted class.

The set of kinds is closed, so dispatch goes through an enum-keyed table
(``_VARIANTS``) instead of a class hierarchy.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Sequence

from .config import LARGE, POSITIVE_CLASS, UtilityKind
from .core import clopper_pearson, hoeffding_radius, hoeffding_sample_size, normal_interval


@dataclass(frozen=True)
class _Counts:
    """Sufficient statistics of one hypothesis at one point of the stream."""

    m: float      # total weight drawn
    t_c: float    # total weight of the predicted class
    n_c: float    # covered weight
    n_p: float    # covered weight of the predicted class
    p0: float     # prior of the predicted class


@dataclass(frozen=True)
class _Variant:
    score: Callable[[_Counts], float]
    radius: Callable[[_Counts, float, int], float]
    global_radius: Callable[[float, float], float]
    sample_size: Callable[[float, float], float]
    optimistic: Callable[[_Counts], float]


# ----------------------------- ACCURACY -----------------------------
def _accuracy_score(c: _Counts) -> float:
    return (c.n_p + (c.m - c.t_c) - (c.n_c - c.n_p)) / c.m


def _accuracy_optimistic(c: _Counts) -> float:
    # best specialization drops every covered example of the other class
    return (c.n_p + (c.m - c.t_c)) / c.m


# ----------------------------- WRACC -----------------------------
def _wracc_score(c: _Counts) -> float:
    return (c.n_p - c.p0 * c.n_c) / c.m


def _wracc_optimistic(c: _Counts) -> float:
    return c.n_p * (1.0 - c.p0) / c.m


def _range_one_radius(c: _Counts, delta: float, _large: int) -> float:
    return hoeffding_radius(c.m, delta)


def _range_one_global(m: float, delta: float) -> float:
    return hoeffding_radius(m, delta)


def _range_one_sample_size(delta: float, epsilon: float) -> float:
    return hoeffding_sample_size(epsilon / 2.0, delta)


# ----------------------------- LINEAR -----------------------------
def _linear_score(c: _Counts) -> float:
    if c.n_c <= 0:
        return 0.0
    return c.n_p / c.n_c - c.p0


def _linear_radius(c: _Counts, delta: float, _large: int) -> float:
    if c.n_c <= 0:
        return hoeffding_radius(c.m, delta)
    return hoeffding_radius(c.n_c, delta)


def _linear_optimistic(c: _Counts) -> float:
    return 1.0 - c.p0 if c.n_p > 0 else 0.0


# ----------------------------- SQUARED -----------------------------
def _squared_score(c: _Counts) -> float:
    g = c.n_c / c.m
    return g * (c.n_p - c.p0 * c.n_c) / c.m


def _squared_radius(c: _Counts, delta: float, _large: int) -> float:
    # |g w - g^ w^| <= e (|w^| + e) + g^ e, with w = g (p - p0) and both
    # frequencies estimated within e at delta / 2 each
    if c.n_c <= 0:
        return _squared_global(c.m, delta)
    e = hoeffding_radius(c.m, delta / 2.0)
    g = c.n_c / c.m
    w = (c.n_p - c.p0 * c.n_c) / c.m
    return e * (abs(w) + e + g)


def _squared_global(m: float, delta: float) -> float:
    e = hoeffding_radius(m, delta / 2.0)
    return e * (2.0 + e)


def _squared_sample_size(delta: float, epsilon: float) -> float:
    e = math.sqrt(1.0 + epsilon / 2.0) - 1.0
    return hoeffding_sample_size(e, delta / 2.0)


def _squared_optimistic(c: _Counts) -> float:
    if c.n_p <= 0:
        return 0.0
    # c (n_p - p0 c) is maximal at c = n_p / (2 p0), restricted to [n_p, n_c]
    best = c.n_c if c.p0 <= 0 else min(max(c.n_p / (2.0 * c.p0), c.n_p), c.n_c)
    return best * (c.n_p - c.p0 * best) / (c.m * c.m)


# ----------------------------- BINOMIAL -----------------------------
def _binomial_score(c: _Counts) -> float:
    if c.n_c <= 0:
        return 0.0
    return math.sqrt(c.n_c / c.m) * (c.n_p / c.n_c - c.p0)


def _binomial_radius(c: _Counts, delta: float, large: int) -> float:
    if c.n_c <= 0:
        return _binomial_global(c.m, delta)
    e_g = hoeffding_radius(c.m, delta / 2.0)
    if c.n_c <= large:
        lo, hi = clopper_pearson(c.n_p, c.n_c, delta / 2.0)
    else:
        lo, hi = normal_interval(c.n_p, c.n_c, delta / 2.0)
    g = c.n_c / c.m
    g_lo, g_hi = max(0.0, g - e_g), min(1.0, g + e_g)
    # sqrt(g) (p - p0) is monotone in p and, for a fixed sign of p - p0, in g:
    # its extremes over the box sit on corners
    f_max = math.sqrt(g_hi if hi >= c.p0 else g_lo) * (hi - c.p0)
    f_min = math.sqrt(g_lo if lo >= c.p0 else g_hi) * (lo - c.p0)
    f = _binomial_score(c)
    return max(f_max - f, f - f_min)


def _binomial_global(m: float, delta: float) -> float:
    return 2.0 * hoeffding_radius(m, delta / 2.0)


def _binomial_sample_size(delta: float, epsilon: float) -> float:
    return hoeffding_sample_size(epsilon / 4.0, delta / 2.0)


def _binomial_optimistic(c: _Counts) -> float:
    if c.n_p <= 0:
        return 0.0
    return math.sqrt(c.n_p / c.m) * (1.0 - c.p0)


_VARIANTS: Dict[UtilityKind, _Variant] = {
    UtilityKind.ACCURACY: _Variant(
        _accuracy_score, _range_one_radius, _range_one_global, _range_one_sample_size, _accuracy_optimistic
    ),
    UtilityKind.LINEAR: _Variant(
        _linear_score, _linear_radius, _range_one_global, _range_one_sample_size, _linear_optimistic
    ),
    UtilityKind.SQUARED: _Variant(
        _squared_score, _squared_radius, _squared_global, _squared_sample_size, _squared_optimistic
    ),
    UtilityKind.BINOMIAL: _Variant(
        _binomial_score, _binomial_radius, _binomial_global, _binomial_sample_size, _binomial_optimistic
    ),
    UtilityKind.WRACC: _Variant(
        _wracc_score, _range_one_radius, _range_one_global, _range_one_sample_size, _wracc_optimistic
    ),
}


class UtilityFunction:
    """
    Scoring function plus confidence bounds of one utility kind.

    Hypotheses are read through ``covered_weight``, ``positive_weight`` and
    ``prediction``; ``priors`` is indexed by class (negative 0, positive 1).

    Degenerate statistics never raise: with no weight drawn the utility is 0
    and every radius is +inf; with zero coverage the radius falls back to the
    hypothesis-free one and every utility but ACCURACY (which then scores the
    default prediction) is 0.
    """

    def __init__(self, kind: UtilityKind | str, priors: Sequence[float], large: int = LARGE):
        self.kind = UtilityKind(kind)
        self.priors = (float(priors[0]), float(priors[1]))
        self.large = int(large)
        self._variant = _VARIANTS[self.kind]

    def __repr__(self) -> str:
        return f"UtilityFunction(kind={self.kind.value!r}, priors={self.priors}, large={self.large})"

    def with_kind(self, kind: UtilityKind | str) -> "UtilityFunction":
        """Same priors and threshold, different kind."""
        return UtilityFunction(kind, self.priors, self.large)

    def _counts(self, total_weight: float, total_positive_weight: float, hypothesis: Any) -> _Counts:
        prediction = int(hypothesis.prediction)
        t_c = total_positive_weight if prediction == POSITIVE_CLASS else total_weight - total_positive_weight
        return _Counts(
            m=float(total_weight),
            t_c=float(t_c),
            n_c=float(hypothesis.covered_weight),
            n_p=float(hypothesis.positive_weight),
            p0=self.priors[prediction],
        )

    # ----------------------------- contract -----------------------------
    def utility(self, total_weight: float, total_positive_weight: float, hypothesis: Any) -> float:
        """Empirical utility of ``hypothesis`` after ``total_weight`` units were drawn."""
        if total_weight <= 0:
            return 0.0
        return self._variant.score(self._counts(total_weight, total_positive_weight, hypothesis))

    def confidence_interval(
        self, total_weight: float, total_positive_weight: float, hypothesis: Any, delta: float
    ) -> float:
        """Radius around the empirical utility holding with probability 1 - delta."""
        if total_weight <= 0:
            return math.inf
        counts = self._counts(total_weight, total_positive_weight, hypothesis)
        return self._variant.radius(counts, delta, self.large)

    def upper_bound(
        self, total_weight: float, total_positive_weight: float, hypothesis: Any, delta: float
    ) -> float:
        """Upper bound on the utility of ``hypothesis`` and of all its specializations.

        Used for pruning only; looser than ``utility + confidence_interval``.
        """
        if total_weight <= 0:
            return math.inf
        counts = self._counts(total_weight, total_positive_weight, hypothesis)
        return self._variant.optimistic(counts) + self._variant.global_radius(counts.m, delta)

    def global_confidence(self, total_weight: float, delta: float) -> float:
        """Hypothesis-free radius after ``total_weight`` units (stopping heuristic)."""
        if total_weight <= 0:
            return math.inf
        return self._variant.global_radius(float(total_weight), delta)

    def calculate_m(self, delta: float, epsilon: float) -> float:
        """Total weight after which ``global_confidence`` is at most epsilon / 2."""
        return self._variant.sample_size(delta, epsilon)


__all__ = ["UtilityFunction", "UtilityKind"]
