"""
Class priors and the history of accepted IGSS results.

The diversity of a set of rules is the average, over examples, of the
binary entropy (in bits) of the split between rules voting positive and
rules voting negative: 0 when all rules agree everywhere, 1 when every
example splits them evenly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np

from .config import NEGATIVE_CLASS, POSITIVE_CLASS
from .core import binary_entropy
from .errors import ConfigurationError
from .gss import Result


@dataclass(frozen=True)
class Priors:
    """P(positive) and P(negative) of the weighted labels; indexable by class."""

    positive: float
    negative: float

    @classmethod
    def estimate(cls, example_set) -> "Priors":
        total = float(example_set.weights.sum())
        if total <= 0:
            raise ConfigurationError("Cannot estimate class priors: total example weight is 0")
        pos = float(example_set.weights[example_set.y == POSITIVE_CLASS].sum()) / total
        return cls(positive=pos, negative=1.0 - pos)

    def __getitem__(self, label: int) -> float:
        if label == POSITIVE_CLASS:
            return self.positive
        if label == NEGATIVE_CLASS:
            return self.negative
        raise IndexError(label)

    def __len__(self) -> int:
        return 2

    def as_tuple(self):
        return (self.negative, self.positive)


class ResultStore:
    """Ordered accepted results plus the priors of the run."""

    def __init__(self, priors: Priors):
        self.priors = priors
        self._results: List[Result] = []

    def add(self, result: Result) -> None:
        self._results.append(result)

    @property
    def results(self) -> List[Result]:
        return list(self._results)

    @property
    def iteration(self) -> int:
        """Number of results accepted so far."""
        return len(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[Result]:
        return iter(self._results)

    def __contains__(self, result: object) -> bool:
        return result in self._results

    def diversity(self, example_set, results: Optional[Sequence[Result]] = None) -> float:
        """Mean entropy of the rules' positive/negative votes over ``example_set``."""
        results = self._results if results is None else list(results)
        if not results or len(example_set) == 0:
            return 0.0
        f2i = example_set.feature_to_idx
        positive_votes = np.zeros(len(example_set), dtype=float)
        for r in results:
            h = r.hypothesis
            covered = h.mask(example_set.X, f2i)
            votes_positive = covered if h.prediction == POSITIVE_CLASS else ~covered
            positive_votes += votes_positive
        return float(np.mean(binary_entropy(positive_votes / len(results))))

    def summary(self) -> List[Dict[str, Any]]:
        return [
            {
                "caption": r.hypothesis.caption,
                "utility": r.utility,
                "confidence": r.confidence,
                "total_weight": r.total_weight,
            }
            for r in self._results
        ]


__all__ = ["Priors", "ResultStore"]
