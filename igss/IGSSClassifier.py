"""
Sklearn-style wrapper around IteratingGSS.

This module provides a scikit-learn compatible binary classifier that encodes
raw features into nominal codes, discovers rules with IGSS and predicts with
the resulting additive ensemble.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score
from sklearn.utils.validation import check_is_fitted

from .config import (
    CAT_THRESHOLD,
    DELTA,
    EPSILON,
    EXAMPLE_FACTOR,
    ITERATIONS,
    LARGE,
    MAX_COMPLEXITY,
    MAX_DRAWS,
    MIN_COMPLEXITY,
    MIN_UTILITY_PRUNING,
    MIN_UTILITY_USEFUL,
    NUMERIC_BREAKS,
    SEED,
    STEPSIZE,
    IGSSConfig,
)
from .Datasets_loader import ExampleSet, _as_frame
from .errors import ConfigurationError
from .IteratingGSS import IteratingGSS


def _metrics(y_true: np.ndarray, y_pred: np.ndarray, pos_label: Any = 1) -> dict[str, float]:
    """
    Compute binary classification metrics.

    Args:
        y_true (ndarray): True labels
        y_pred (ndarray): Predicted labels
        pos_label: Label of the positive class

    Returns:
        dict: Dictionary with Accuracy, F1, Precision, Recall scores
    """
    return {
        "Accuracy": float(accuracy_score(y_true, y_pred)),
        "F1": float(f1_score(y_true, y_pred, pos_label=pos_label, zero_division=0)),
        "Precision": float(precision_score(y_true, y_pred, pos_label=pos_label, zero_division=0)),
        "Recall": float(recall_score(y_true, y_pred, pos_label=pos_label, zero_division=0)),
    }


class IGSSClassifier(ClassifierMixin, BaseEstimator):
    """
    Scikit-learn compatible rule ensemble learned by Iterating GSS.

    The larger label (in sort order) is the positive class unless
    ``pos_label`` is given. Parameters mirror ``IGSSConfig``; ``breaks`` and
    ``cat_threshold`` control how numeric columns are discretized.

    Attributes:
        classes_ (ndarray): The two labels, negative first
        model_ (IGSSModel): Learned ensemble
        results_ (ResultStore): Accepted results with their statistics
        history_ (list[dict]): One entry per IGSS round
    """

    def __init__(
        self,
        epsilon: float = EPSILON,
        delta: float = DELTA,
        stepsize: int = STEPSIZE,
        large: int = LARGE,
        min_complexity: int = MIN_COMPLEXITY,
        max_complexity: int = MAX_COMPLEXITY,
        iterations: int = ITERATIONS,
        use_kbs: bool = True,
        use_binomial: bool = False,
        rejection_sampling: bool = True,
        useful_criterion: str = "utility",
        min_utility_pruning: float = MIN_UTILITY_PRUNING,
        min_utility_useful: float = MIN_UTILITY_USEFUL,
        example_factor: float = EXAMPLE_FACTOR,
        force_iterations: bool = False,
        reset_weights: bool = False,
        utility_function: str = "wracc",
        generate_all_hypothesis: bool = False,
        max_draws: int = MAX_DRAWS,
        max_seconds: Optional[float] = None,
        seed: int = SEED,
        pos_label: Any = None,
        breaks: int = NUMERIC_BREAKS,
        cat_threshold: int = CAT_THRESHOLD,
        verbose: bool = False,
    ) -> None:
        self.epsilon = epsilon
        self.delta = delta
        self.stepsize = stepsize
        self.large = large
        self.min_complexity = min_complexity
        self.max_complexity = max_complexity
        self.iterations = iterations
        self.use_kbs = use_kbs
        self.use_binomial = use_binomial
        self.rejection_sampling = rejection_sampling
        self.useful_criterion = useful_criterion
        self.min_utility_pruning = min_utility_pruning
        self.min_utility_useful = min_utility_useful
        self.example_factor = example_factor
        self.force_iterations = force_iterations
        self.reset_weights = reset_weights
        self.utility_function = utility_function
        self.generate_all_hypothesis = generate_all_hypothesis
        self.max_draws = max_draws
        self.max_seconds = max_seconds
        self.seed = seed
        self.pos_label = pos_label
        self.breaks = breaks
        self.cat_threshold = cat_threshold
        self.verbose = verbose

    def _config(self, use_example_weights: bool) -> IGSSConfig:
        return IGSSConfig(
            epsilon=self.epsilon,
            delta=self.delta,
            stepsize=self.stepsize,
            large=self.large,
            min_complexity=self.min_complexity,
            max_complexity=self.max_complexity,
            iterations=self.iterations,
            use_kbs=self.use_kbs,
            use_binomial=self.use_binomial,
            rejection_sampling=self.rejection_sampling,
            useful_criterion=self.useful_criterion,
            min_utility_pruning=self.min_utility_pruning,
            min_utility_useful=self.min_utility_useful,
            example_factor=self.example_factor,
            force_iterations=self.force_iterations,
            reset_weights=self.reset_weights,
            utility_function=self.utility_function,
            generate_all_hypothesis=self.generate_all_hypothesis,
            use_example_weights=use_example_weights,
            max_draws=self.max_draws,
            max_seconds=self.max_seconds,
            seed=self.seed,
        )

    def fit(self, X, y, feature_names: Optional[Sequence[str]] = None, sample_weight=None) -> "IGSSClassifier":
        """
        Discover rules on (X, y).

        Args:
            X: 2D array-like or DataFrame of raw feature values
            y: Binary labels
            feature_names (list, optional): Column names (taken from a DataFrame otherwise)
            sample_weight (array-like, optional): Initial example weights

        Returns:
            IGSSClassifier: self
        """
        y = np.asarray(y).ravel()
        classes = np.unique(y)
        if self.pos_label is not None:
            if self.pos_label not in classes:
                raise ConfigurationError(f"pos_label {self.pos_label!r} not among the labels {classes.tolist()}")
            others = classes[classes != self.pos_label]
            if len(others) != 1:
                raise ConfigurationError(f"IGSS needs exactly two classes, got {classes.tolist()}")
            classes = np.array([others[0], self.pos_label], dtype=classes.dtype)
        elif len(classes) != 2:
            raise ConfigurationError(f"IGSS needs exactly two classes, got {classes.tolist()}")
        self.classes_ = classes
        y01 = (y == classes[1]).astype(int)

        example_set = ExampleSet.from_arrays(
            X, y01, feature_names, sample_weight, breaks=self.breaks, cat_threshold=self.cat_threshold
        )
        example_set.classes = (str(classes[0]), str(classes[1]))
        learner = IteratingGSS(self._config(sample_weight is not None), verbose=self.verbose)
        self.model_ = learner.learn(example_set)
        self.model_.classes = example_set.classes
        self.results_ = learner.results_
        self.history_ = learner.history_
        self.encoder_ = example_set.encoder
        self.feature_names_ = list(example_set.feature_names)
        return self

    def _encode(self, X) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.encoder_.transform(_as_frame(X, None if _is_frame(X) else self.feature_names_))

    def decision_function(self, X) -> np.ndarray:
        """Log-odds of the positive class."""
        return self.model_.decision_function(self._encode(X))

    def predict_proba(self, X) -> np.ndarray:
        return self.model_.predict_proba(self._encode(X))

    def predict(self, X) -> np.ndarray:
        return self.classes_[self.model_.predict(self._encode(X))]

    def rules(self) -> list[str]:
        check_is_fitted(self, "model_")
        return [rule.caption for rule in self.model_.rules]

    def evaluate(self, X, y) -> dict[str, float]:
        """Accuracy, F1, precision and recall on (X, y)."""
        return _metrics(np.asarray(y).ravel(), self.predict(X), pos_label=self.classes_[1])


def _is_frame(X) -> bool:
    return hasattr(X, "columns") and hasattr(X, "iloc")


__all__ = ["IGSSClassifier"]
