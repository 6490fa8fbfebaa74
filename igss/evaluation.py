"""
Prediction/evaluation collaborator of the IGSS controller.

The controller never applies models or counts errors itself; it asks an
``Evaluator`` to
  - predict labels of an example set with a model,
  - build the weighted contingency matrix of predictions vs. true labels,
  - rescale example weights from that matrix (knowledge-based sampling).

Errors raised here propagate unchanged to the caller of ``IteratingGSS.learn``.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)


class ContingencyMatrix:
    """Weighted 2x2 counts indexed ``[true][predicted]`` (0 = negative, 1 = positive)."""

    def __init__(self, counts: Any):
        counts = np.asarray(counts, dtype=float)
        if counts.shape != (2, 2):
            raise ValueError(f"Contingency matrix must be 2x2, got {counts.shape}")
        self.counts = counts

    @classmethod
    def from_predictions(cls, y_true: Any, y_pred: Any, weights: Any = None) -> "ContingencyMatrix":
        y_true = np.asarray(y_true, dtype=int)
        y_pred = np.asarray(y_pred, dtype=int)
        w = np.ones(y_true.shape[0]) if weights is None else np.asarray(weights, dtype=float)
        counts = np.zeros((2, 2), dtype=float)
        np.add.at(counts, (y_true, y_pred), w)
        return cls(counts)

    def __repr__(self) -> str:
        return f"ContingencyMatrix({self.counts.tolist()})"

    @property
    def total(self) -> float:
        return float(self.counts.sum())

    def prob(self, true_label: int, predicted: int) -> float:
        total = self.total
        return float(self.counts[true_label, predicted] / total) if total > 0 else 0.0

    def true_prior(self, label: int) -> float:
        total = self.total
        return float(self.counts[label, :].sum() / total) if total > 0 else 0.0

    def pred_prior(self, label: int) -> float:
        total = self.total
        return float(self.counts[:, label].sum() / total) if total > 0 else 0.0

    def lift_ratio(self, true_label: int, predicted: int) -> float:
        """P(y, ŷ) / (P(y) P(ŷ)); 1 when a marginal is empty."""
        denom = self.true_prior(true_label) * self.pred_prior(predicted)
        if denom <= 0:
            return 1.0
        return self.prob(true_label, predicted) / denom

    def lift_table(self) -> np.ndarray:
        return np.array([[self.lift_ratio(t, p) for p in (0, 1)] for t in (0, 1)])

    @property
    def accuracy(self) -> float:
        total = self.total
        return float(np.trace(self.counts) / total) if total > 0 else 0.0


class Evaluator:
    """Default collaborator: applies models through their ``predict(X)``."""

    def predict(self, model: Any, example_set) -> np.ndarray:
        return np.asarray(model.predict(example_set.X), dtype=int)

    def contingency_matrix(self, example_set, predictions: np.ndarray) -> ContingencyMatrix:
        return ContingencyMatrix.from_predictions(example_set.y, predictions, example_set.weights)

    def reweight(self, example_set, predictions: np.ndarray, matrix: ContingencyMatrix) -> np.ndarray:
        """
        Knowledge-based sampling update, in place.

        Every weight is divided by the lift of its (true, predicted) cell, so
        the rule's predictions carry no information under the new weights:
        cells the rule over-represents (correct ones) shrink, the others grow.

        Returns:
            ndarray: the updated weights (same array as ``example_set.weights``)
        """
        lifts = matrix.lift_table()
        factors = lifts[example_set.y, np.asarray(predictions, dtype=int)]
        # a cell with zero lift holds no weight; leave it untouched
        factors = np.where(factors > 0, factors, 1.0)
        example_set.weights /= factors
        logger.debug("Reweighted %d examples with lifts %s", len(example_set), lifts.round(4).tolist())
        return example_set.weights


__all__ = ["ContingencyMatrix", "Evaluator"]
