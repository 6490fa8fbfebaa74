"""
Rule models and the additive two-class ensemble built by IGSS.

A RuleModel predicts the rule's class on the examples it covers and the
other class elsewhere. IGSSModel stacks accepted rule models with the
contingency matrix each one had under the example weights at the time it was
accepted, and combines them in log-odds space:

    log P(+|x)/P(-|x) = log P(+)/P(-) + sum_i [log lift_i(+, ŷ_i(x)) - log lift_i(-, ŷ_i(x))]

Since knowledge-based sampling removes each accepted rule's information from
the weights, the lifts of later rules only carry what is new.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .config import NEGATIVE_CLASS, POSITIVE_CLASS
from .core import safe_log
from .evaluation import ContingencyMatrix
from .GSSRule import GSSRule


def _as_numpy(X):
    """Convert input to a float numpy array, ensuring 2D shape."""
    X = np.asarray(X, dtype=float)
    return X.reshape(1, -1) if X.ndim == 1 else X


class RuleModel:
    """
    Two-class model of a single rule.

    Args:
        rule (GSSRule): The accepted rule
        feature_to_idx (dict): Column index of every feature the rule may test
        precision (float): Observed fraction of the covered weight labeled
            with the rule's class
    """

    def __init__(self, rule: GSSRule, feature_to_idx: Dict[str, int], precision: Optional[float] = None):
        self.rule = rule
        self.feature_to_idx = dict(feature_to_idx)
        self.precision = float(rule.precision if precision is None else precision)

    @classmethod
    def from_result(cls, result, feature_to_idx: Dict[str, int]) -> "RuleModel":
        return cls(result.hypothesis, feature_to_idx, result.hypothesis.precision)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleModel):
            return NotImplemented
        return self.rule == other.rule

    def __hash__(self) -> int:
        return hash(self.rule)

    def __repr__(self) -> str:
        return f"RuleModel({self.rule.caption!r}, precision={self.precision:.3f})"

    @property
    def prediction(self) -> int:
        return self.rule.prediction

    def covers(self, X) -> np.ndarray:
        return self.rule.mask(_as_numpy(X), self.feature_to_idx)

    def predict(self, X) -> np.ndarray:
        other = NEGATIVE_CLASS if self.prediction == POSITIVE_CLASS else POSITIVE_CLASS
        return np.where(self.covers(X), self.prediction, other).astype(int)


class IGSSModel:
    """
    Append-only ensemble of (RuleModel, ContingencyMatrix) pairs plus global priors.

    Args:
        priors (Sequence[float]): Class priors indexed by class (negative, positive)
        feature_names (list, optional): Column names expected by ``predict``
        classes (tuple, optional): Original label names, negative first
    """

    def __init__(self, priors: Sequence[float], feature_names: Optional[List[str]] = None,
                 classes: Tuple[str, str] = ("0", "1")):
        self.priors = (float(priors[NEGATIVE_CLASS]), float(priors[POSITIVE_CLASS]))
        self.feature_names = list(feature_names) if feature_names else None
        self.classes = tuple(classes)
        self._models: List[Tuple[RuleModel, ContingencyMatrix]] = []

    def add(self, model: RuleModel, matrix: ContingencyMatrix) -> None:
        self._models.append((model, matrix))

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self) -> Iterator[Tuple[RuleModel, ContingencyMatrix]]:
        return iter(self._models)

    def __contains__(self, model: object) -> bool:
        return any(model == m for m, _ in self._models)

    @property
    def rules(self) -> List[GSSRule]:
        return [m.rule for m, _ in self._models]

    # ----------------------------- prediction -----------------------------
    def prior_log_odds(self) -> float:
        return float(safe_log(self.priors[POSITIVE_CLASS]) - safe_log(self.priors[NEGATIVE_CLASS]))

    def decision_function(self, X) -> np.ndarray:
        """Log-odds of the positive class for every row of X."""
        X = _as_numpy(X)
        scores = np.full(X.shape[0], self.prior_log_odds(), dtype=float)
        for model, matrix in self._models:
            lifts = matrix.lift_table()
            pred = model.predict(X)
            scores += safe_log(lifts[POSITIVE_CLASS, pred]) - safe_log(lifts[NEGATIVE_CLASS, pred])
        return scores

    def predict_proba(self, X) -> np.ndarray:
        """(N, 2) probabilities, columns ordered (negative, positive)."""
        p_pos = 1.0 / (1.0 + np.exp(-self.decision_function(X)))
        return np.column_stack([1.0 - p_pos, p_pos])

    def predict(self, X) -> np.ndarray:
        return (self.decision_function(X) > 0).astype(int)

    def predict_by_rule_vote(self, X) -> np.ndarray:
        """(N, 2) counts of rules voting negative / positive for every row."""
        X = _as_numpy(X)
        votes = np.zeros((X.shape[0], 2), dtype=int)
        for model, _ in self._models:
            pred = model.predict(X)
            votes[np.arange(X.shape[0]), pred] += 1
        return votes

    # ----------------------------- reporting -----------------------------
    def describe(self) -> str:
        lines = [f"IGSSModel: {len(self)} rule(s), priors P(-)={self.priors[0]:.3f} P(+)={self.priors[1]:.3f}"]
        for i, (model, matrix) in enumerate(self._models):
            lines.append(
                f"#{i} L={model.rule.complexity} prec={model.precision:.3f} "
                f"acc={matrix.accuracy:.3f} :: {model.rule.caption}"
            )
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priors": list(self.priors),
            "classes": list(self.classes),
            "rules": [
                {**m.rule.to_dict(), "precision": m.precision, "contingency": cm.counts.tolist()}
                for m, cm in self._models
            ],
        }


__all__ = ["RuleModel", "IGSSModel"]
