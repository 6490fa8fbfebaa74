# -*- coding: utf-8 -*-
"""
Core numeric utilities used by the utility functions, the ensemble and the diversity metric.

Exposed API:
  - hoeffding_radius(n, delta, value_range=1.0): two-sided Hoeffding half-width
  - hoeffding_sample_size(radius, delta, value_range=1.0): inverse of hoeffding_radius
  - clopper_pearson(successes, trials, alpha): exact binomial interval
  - normal_interval(successes, trials, alpha): normal-approximation interval
  - binary_entropy(p): entropy in bits of a Bernoulli(p) variable
  - safe_log(x): natural log with a floor, for lift ratios that may be zero

All functions accept scalars; binary_entropy and safe_log also accept numpy arrays.
"""

from __future__ import annotations

import math
from typing import Tuple, Union

import numpy as np
from scipy.stats import beta, norm

ArrayLike = Union[float, np.ndarray]
_EPS = 1e-12


# ----------------------------- Concentration bounds -----------------------------
def hoeffding_radius(n: float, delta: float, value_range: float = 1.0) -> float:
    """Half-width of a two-sided Hoeffding interval for the mean of ``n`` draws.

    Returns +inf for ``n <= 0`` so callers never divide by zero.
    """
    if n <= 0:
        return math.inf
    return value_range * math.sqrt(math.log(2.0 / delta) / (2.0 * n))


def hoeffding_sample_size(radius: float, delta: float, value_range: float = 1.0) -> float:
    """Smallest ``n`` with ``hoeffding_radius(n, delta, value_range) <= radius``."""
    return (value_range ** 2) * math.log(2.0 / delta) / (2.0 * radius * radius)


# ----------------------------- Binomial intervals -----------------------------
def clopper_pearson(successes: float, trials: float, alpha: float) -> Tuple[float, float]:
    """Exact (Clopper-Pearson) two-sided interval with error ``alpha``.

    Counts may be fractional (weighted coverage); the beta quantiles are
    well defined for positive real parameters.
    """
    if trials <= 0:
        return 0.0, 1.0
    successes = min(max(successes, 0.0), trials)
    failures = trials - successes
    lower = 0.0 if successes <= 0 else float(beta.ppf(alpha / 2.0, successes, failures + 1.0))
    upper = 1.0 if failures <= 0 else float(beta.ppf(1.0 - alpha / 2.0, successes + 1.0, failures))
    return lower, upper


def normal_interval(successes: float, trials: float, alpha: float) -> Tuple[float, float]:
    """Normal-approximation interval, clipped to [0, 1].

    The variance is floored at 1/trials² so a sample proportion of 0 or 1
    still gets a non-degenerate interval.
    """
    if trials <= 0:
        return 0.0, 1.0
    p = min(max(successes / trials, 0.0), 1.0)
    var = max(p * (1.0 - p), 1.0 / trials) / trials
    half = float(norm.ppf(1.0 - alpha / 2.0)) * math.sqrt(var)
    return max(0.0, p - half), min(1.0, p + half)


# ----------------------------- Information helpers -----------------------------
def binary_entropy(p: ArrayLike) -> ArrayLike:
    """Entropy (bits) of a Bernoulli(p); 0·log 0 is taken as 0."""
    p = np.clip(np.asarray(p, dtype=float), 0.0, 1.0)
    q = 1.0 - p
    with np.errstate(divide="ignore", invalid="ignore"):
        h = -(np.where(p > 0, p * np.log2(p), 0.0) + np.where(q > 0, q * np.log2(q), 0.0))
    return float(h) if h.ndim == 0 else h


def safe_log(x: ArrayLike, floor: float = _EPS) -> ArrayLike:
    """Natural log with values clipped from below at ``floor``."""
    out = np.log(np.clip(np.asarray(x, dtype=float), floor, None))
    return float(out) if out.ndim == 0 else out


__all__ = [
    "hoeffding_radius",
    "hoeffding_sample_size",
    "clopper_pearson",
    "normal_interval",
    "binary_entropy",
    "safe_log",
]
