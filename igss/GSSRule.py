"""
Helper structures for GSS hypotheses and the lattice they are drawn from.

This module provides the GSSRule dataclass (a conjunction of nominal
conditions predicting one class, with weighted coverage counters) and the
RuleSpace that seeds rules of a given complexity and refines them into
their one-step-more-specific successors.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from itertools import combinations, product
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import NEGATIVE_CLASS, POSITIVE_CLASS

Literal = Tuple[str, str, Any]
Condition = Tuple[Literal, ...]
_EPS = 1e-9


def _literal_mask(column: np.ndarray, op: str, value: Any) -> np.ndarray:
    """
    Evaluate a literal condition against a column of nominal codes.

    Args:
        column (ndarray): Data column to evaluate
        op (str): Comparison operator (only '==' is produced by the lattice)
        value: Code to compare against

    Returns:
        ndarray: Boolean mask indicating which rows satisfy the condition
    """
    if op != "==":
        raise ValueError(f"Unsupported operator {op}")
    return np.isfinite(column) & np.isclose(column, float(value), atol=_EPS)


@dataclass(eq=False)
class GSSRule:
    """
    A hypothesis: conjunction of conditions predicting one class.

    Attributes:
        specs (Iterable[Literal]): Sequence of (feature_name, '==', code) tuples
        prediction (int): Class predicted for covered examples
        caption (str): Human-readable description of the rule
        covered_weight (float): Weight of the sampled examples it covers
        positive_weight (float): Covered weight whose label equals ``prediction``
        space (RuleSpace, optional): Lattice the rule was generated from

    Two rules are equal when they have the same conditions and prediction;
    the counters never take part in equality or hashing.
    """

    specs: Iterable[Literal]
    prediction: int = POSITIVE_CLASS
    caption: str = ""
    covered_weight: float = 0.0
    positive_weight: float = 0.0
    space: Optional["RuleSpace"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.specs = tuple((str(name), str(op), value) for name, op, value in self.specs)
        self.prediction = int(self.prediction)
        if self.caption == "":
            text = " & ".join(f"{name} {op} {val}" for name, op, val in self.specs)
            self.caption = f"Class {self.prediction}: {text}" if text else f"Class {self.prediction}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GSSRule):
            return NotImplemented
        return self.specs == other.specs and self.prediction == other.prediction

    def __hash__(self) -> int:
        return hash((self.specs, self.prediction))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    @property
    def complexity(self) -> int:
        return len(self.specs)

    @property
    def precision(self) -> float:
        """Fraction of the covered weight labeled with ``prediction`` (0 if nothing is covered)."""
        if self.covered_weight <= 0:
            return 0.0
        return self.positive_weight / self.covered_weight

    def reset(self) -> None:
        self.covered_weight = 0.0
        self.positive_weight = 0.0

    def apply(self, samples, labels, weights, feature_to_idx: Mapping[str, int]) -> float:
        """
        Count drawn examples into the rule's counters.

        Args:
            samples: One example (1D) or a batch of examples (2D) of nominal codes
            labels: Label(s) of the drawn examples
            weights: Weight(s) each draw adds
            feature_to_idx (dict): Mapping from feature names to column indices

        Returns:
            float: Covered weight added by this call
        """
        samples = np.atleast_2d(np.asarray(samples, dtype=float))
        labels = np.atleast_1d(np.asarray(labels)).astype(int)
        weights = np.broadcast_to(np.asarray(weights, dtype=float), labels.shape)
        covered = self.mask(samples, feature_to_idx)
        added = float(weights[covered].sum())
        self.covered_weight += added
        self.positive_weight += float(weights[covered & (labels == self.prediction)].sum())
        return added

    def copy(self) -> "GSSRule":
        """Snapshot of the rule including its current counters."""
        return replace(self)

    # ------------------------------------------------------------------
    # Lattice
    # ------------------------------------------------------------------
    def can_be_refined(self) -> bool:
        return self.space is not None and self.space.can_refine(self)

    def refine(self) -> List["GSSRule"]:
        """One-step-more-specific successors (empty when not refinable)."""
        if self.space is None:
            return []
        return self.space.refine(self)

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "specs": tuple(self.specs),
            "prediction": self.prediction,
            "caption": self.caption,
            "covered_weight": self.covered_weight,
            "positive_weight": self.positive_weight,
        }

    def mask(self, X: np.ndarray, feature_to_idx: Mapping[str, int]) -> np.ndarray:
        """
        Compute boolean mask indicating which samples satisfy this rule.

        Args:
            X (ndarray): Data matrix (N, D) of nominal codes
            feature_to_idx (dict): Mapping from feature names to column indices

        Returns:
            ndarray: Boolean mask (N,) indicating which samples match the rule
        """
        X = np.asarray(X, dtype=float)
        if X.ndim != 2:
            raise ValueError("X must be a 2D array for rule masking")
        mask = np.ones(X.shape[0], dtype=bool)
        for name, op, value in self.specs:
            idx = feature_to_idx.get(name)
            if idx is None:
                raise KeyError(f"Unknown feature '{name}' in rule")
            mask &= _literal_mask(X[:, idx], op, value)
        return mask


class RuleSpace:
    """
    Lattice of conjunctive rules over nominal attributes.

    Conditions of a rule are kept in attribute order and each attribute is
    tested at most once. Refinement only appends attributes with a larger
    index than the last tested one, so every conjunction is generated once.

    Args:
        feature_names (Sequence[str]): Attribute names, in column order
        value_domains (Sequence[Sequence]): Codes each attribute can take
        value_decoders (dict, optional): feature -> {code -> original value},
            used for captions
        generate_all (bool): Also generate rules predicting the negative class
    """

    def __init__(
        self,
        feature_names: Sequence[str],
        value_domains: Sequence[Sequence[Any]],
        value_decoders: Optional[Dict[str, Dict[int, str]]] = None,
        generate_all: bool = False,
    ):
        if len(feature_names) != len(value_domains):
            raise ValueError("feature_names and value_domains must have the same length")
        self.feature_names = [str(f) for f in feature_names]
        self.value_domains = [tuple(int(v) for v in dom) for dom in value_domains]
        self.value_decoders = value_decoders or {}
        self.generate_all = bool(generate_all)
        self.feature_to_idx = {name: i for i, name in enumerate(self.feature_names)}
        self.predictions = (POSITIVE_CLASS, NEGATIVE_CLASS) if self.generate_all else (POSITIVE_CLASS,)

    @classmethod
    def from_example_set(cls, example_set, generate_all: bool = False) -> "RuleSpace":
        return cls(
            example_set.feature_names,
            example_set.value_domains(),
            value_decoders=example_set.value_decoders,
            generate_all=generate_all,
        )

    def __repr__(self) -> str:
        return f"RuleSpace(features={len(self.feature_names)}, generate_all={self.generate_all})"

    def _caption(self, specs: Condition, prediction: int) -> str:
        parts = []
        for name, op, value in specs:
            dec = self.value_decoders.get(name, {})
            parts.append(f"{name} {op} {dec.get(int(value), value)}")
        text = " & ".join(parts)
        return f"Class {prediction}: {text}" if text else f"Class {prediction}"

    def make_rule(self, specs: Iterable[Literal], prediction: int) -> GSSRule:
        specs = tuple(specs)
        return GSSRule(specs, prediction, caption=self._caption(specs, prediction), space=self)

    def _last_index(self, rule: GSSRule) -> int:
        if not rule.specs:
            return -1
        return self.feature_to_idx[rule.specs[-1][0]]

    def init(self, complexity: int) -> List[GSSRule]:
        """All rules with exactly ``complexity`` conditions."""
        rules: List[GSSRule] = []
        n_features = len(self.feature_names)
        for attrs in combinations(range(n_features), complexity):
            for values in product(*(self.value_domains[a] for a in attrs)):
                specs = tuple((self.feature_names[a], "==", v) for a, v in zip(attrs, values))
                for prediction in self.predictions:
                    rules.append(self.make_rule(specs, prediction))
        return rules

    def can_refine(self, rule: GSSRule) -> bool:
        last = self._last_index(rule)
        return any(self.value_domains[j] for j in range(last + 1, len(self.feature_names)))

    def refine(self, rule: GSSRule) -> List[GSSRule]:
        successors: List[GSSRule] = []
        for j in range(self._last_index(rule) + 1, len(self.feature_names)):
            for v in self.value_domains[j]:
                successors.append(self.make_rule(rule.specs + ((self.feature_names[j], "==", v),), rule.prediction))
        return successors


__all__ = ["GSSRule", "RuleSpace", "Literal", "Condition"]
