"""
Example sets and a universal dataset loader for rule discovery.

Goals:
  • Auto-detect the label column and map it to {0, 1} (1 = positive class)
  • Drop ID-like columns
  • Integer-encode nominal features while preserving a decoder to strings
  • Discretize high-cardinality numeric columns into quantile bins, since
    rules only test ``attribute == value``

Public API
----------
ExampleSet(X, y, weights=None, feature_names=None, value_decoders=None, classes=None)
    Nominal codes, binary labels and one mutable weight per example.

FeatureEncoder(breaks=4, cat_threshold=20)
    Fitted raw-value -> code mapping, reapplied to unseen rows at prediction.

load_dataset(csv_path, label=None, positive=None, breaks=4) -> ExampleSet
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import CAT_THRESHOLD, NUMERIC_BREAKS, POSITIVE_CLASS
from .errors import ConfigurationError


@dataclass
class ExampleSet:
    """
    Labeled examples with a mutable per-example weight.

    Attributes:
        X (ndarray): (N, D) float array of nominal codes
        y (ndarray): (N,) int labels, 1 = positive, 0 = negative
        weights (ndarray): (N,) float weights, read by sampling and
            rewritten by reweighting between rounds
        feature_names (list[str]): Column names of X
        value_decoders (dict): feature -> {code -> original string}
        classes (tuple[str, str]): Original label names, negative first
        encoder (FeatureEncoder, optional): Encoder that produced X from raw values
    """

    X: np.ndarray
    y: np.ndarray
    weights: Optional[np.ndarray] = None
    feature_names: Optional[List[str]] = None
    value_decoders: Dict[str, Dict[int, str]] = field(default_factory=dict)
    classes: Tuple[str, str] = ("0", "1")
    encoder: Optional["FeatureEncoder"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.X = np.asarray(self.X, dtype=float)
        if self.X.ndim != 2:
            raise ConfigurationError(f"X must be 2D, got shape {self.X.shape}")
        self.y = np.asarray(self.y).astype(int).ravel()
        if self.y.shape[0] != self.X.shape[0]:
            raise ConfigurationError(f"X has {self.X.shape[0]} rows but y has {self.y.shape[0]} labels")
        bad = set(np.unique(self.y).tolist()) - {0, 1}
        if bad:
            raise ConfigurationError(f"Labels must be binary (0/1), found {sorted(bad)}")
        if self.weights is None:
            self.weights = np.ones(self.X.shape[0], dtype=float)
        else:
            self.weights = np.asarray(self.weights, dtype=float).ravel().copy()
            if self.weights.shape[0] != self.X.shape[0]:
                raise ConfigurationError("weights must have one entry per example")
            if np.any(self.weights < 0) or not np.all(np.isfinite(self.weights)):
                raise ConfigurationError("weights must be finite and non-negative")
        if self.feature_names is None:
            self.feature_names = [f"attr{i + 1}" for i in range(self.X.shape[1])]
        self.feature_names = [str(f) for f in self.feature_names]
        if len(self.feature_names) != self.X.shape[1]:
            raise ConfigurationError("feature_names must have one entry per column")
        self.classes = tuple(str(c) for c in self.classes)

    def __len__(self) -> int:
        return int(self.X.shape[0])

    @property
    def feature_to_idx(self) -> Dict[str, int]:
        return {name: i for i, name in enumerate(self.feature_names)}

    @property
    def total_weight(self) -> float:
        return float(self.weights.sum())

    def value_domains(self) -> List[List[int]]:
        """Observed codes per column, sorted (NaNs ignored)."""
        domains = []
        for j in range(self.X.shape[1]):
            col = self.X[:, j]
            domains.append([int(v) for v in np.unique(col[np.isfinite(col)])])
        return domains

    def reset_weights(self, value: float = 1.0) -> None:
        self.weights[:] = float(value)

    def subset(self, idx: Sequence[int] | np.ndarray) -> "ExampleSet":
        """Rows ``idx`` (positions or a boolean mask) as a new example set (weights copied)."""
        idx = np.asarray(idx)
        if idx.dtype != bool:
            idx = idx.astype(int)
        return ExampleSet(
            self.X[idx],
            self.y[idx],
            self.weights[idx],
            feature_names=list(self.feature_names),
            value_decoders=self.value_decoders,
            classes=self.classes,
            encoder=self.encoder,
        )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_arrays(
        cls,
        X: Any,
        y: Any,
        feature_names: Optional[Sequence[str]] = None,
        weights: Optional[Any] = None,
        *,
        breaks: int = NUMERIC_BREAKS,
        cat_threshold: int = CAT_THRESHOLD,
    ) -> "ExampleSet":
        """Encode raw feature values (strings or numbers) and 0/1 labels."""
        X_df = _as_frame(X, feature_names)
        encoder = FeatureEncoder(breaks=breaks, cat_threshold=cat_threshold)
        codes = encoder.fit_transform(X_df)
        return cls(codes, y, weights, feature_names=encoder.columns_,
                   value_decoders=encoder.value_decoders, encoder=encoder)

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        label: str,
        *,
        positive: Any = None,
        breaks: int = NUMERIC_BREAKS,
        cat_threshold: int = CAT_THRESHOLD,
    ) -> "ExampleSet":
        """Build an example set from a DataFrame with a label column.

        Without ``positive`` the label must have exactly two values; the
        larger one (in sort order) becomes the positive class.
        """
        if label not in df.columns:
            raise ConfigurationError(f"Label column '{label}' not found")
        if df.empty:
            raise ConfigurationError("Dataset is empty")
        y, classes = _binarize_labels(df[label], positive)
        X_df = _as_frame(df.drop(columns=[label]))
        encoder = FeatureEncoder(breaks=breaks, cat_threshold=cat_threshold)
        codes = encoder.fit_transform(X_df)
        return cls(codes, y, None, feature_names=encoder.columns_, value_decoders=encoder.value_decoders,
                   classes=classes, encoder=encoder)


def _binarize_labels(column: pd.Series, positive: Any) -> Tuple[np.ndarray, Tuple[str, str]]:
    if positive is not None:
        values = column.astype(str)
        pos = str(positive)
        if not (values == pos).any():
            raise ConfigurationError(f"Positive class '{positive}' does not occur in the label column")
        others = sorted(set(values.unique()) - {pos})
        negative = others[0] if len(others) == 1 else f"not {pos}"
        return (values == pos).to_numpy(dtype=int), (negative, pos)

    codes, classes_ = pd.factorize(column, sort=True)
    if len(classes_) != 2:
        raise ConfigurationError(
            f"Label '{column.name}' must have exactly two classes (got {len(classes_)}); pass positive="
        )
    return np.asarray(codes, dtype=int), (str(classes_[0]), str(classes_[POSITIVE_CLASS]))


class FeatureEncoder:
    """
    Maps raw feature columns to nominal codes, reusable on unseen rows.

    Numeric columns with more than ``cat_threshold`` distinct values are cut
    at their training quantiles into at most ``breaks`` bins; every other
    column is encoded by its sorted categories. Values never seen during
    ``fit`` (and missing values) become NaN, which no rule covers.
    """

    def __init__(self, breaks: int = NUMERIC_BREAKS, cat_threshold: int = CAT_THRESHOLD):
        self.breaks = int(breaks)
        self.cat_threshold = int(cat_threshold)
        self.columns_: List[str] = []
        self._encoders: Dict[str, Tuple[str, Any]] = {}
        self.value_decoders: Dict[str, Dict[int, str]] = {}

    def fit(self, X_df: pd.DataFrame) -> "FeatureEncoder":
        self.columns_ = [str(c) for c in X_df.columns]
        self._encoders.clear(); self.value_decoders.clear()
        for c, name in zip(X_df.columns, self.columns_):
            col = X_df[c]
            if pd.api.types.is_numeric_dtype(col) and col.nunique(dropna=True) > self.cat_threshold:
                qs = np.linspace(0.0, 1.0, self.breaks + 1)
                edges = np.unique(np.quantile(col.dropna().to_numpy(dtype=float), qs))
                self._encoders[name] = ("bins", edges)
                self.value_decoders[name] = _bin_captions(edges)
            else:
                categories = pd.Categorical(col).categories
                self._encoders[name] = ("cats", categories)
                self.value_decoders[name] = {int(code): str(raw) for code, raw in enumerate(categories)}
        return self

    def transform(self, X_df: pd.DataFrame) -> np.ndarray:
        if list(map(str, X_df.columns)) != self.columns_:
            raise ConfigurationError(f"Expected columns {self.columns_}, got {list(X_df.columns)}")
        out = np.empty(X_df.shape, dtype=float)
        for j, (c, name) in enumerate(zip(X_df.columns, self.columns_)):
            kind, spec = self._encoders[name]
            if kind == "bins":
                values = pd.to_numeric(X_df[c], errors="coerce").to_numpy(dtype=float)
                codes = np.digitize(values, spec[1:-1], right=True).astype(float)
                out[:, j] = np.where(np.isfinite(values), codes, np.nan)
            else:
                codes = pd.Categorical(X_df[c], categories=spec).codes
                # pandas marks unknown and missing values with code -1
                out[:, j] = np.where(codes < 0, np.nan, codes)
        return out

    def fit_transform(self, X_df: pd.DataFrame) -> np.ndarray:
        return self.fit(X_df).transform(X_df)


def _bin_captions(edges: np.ndarray) -> Dict[int, str]:
    n_bins = max(len(edges) - 1, 1)
    captions = {}
    for i in range(n_bins):
        lo, hi = edges[i], edges[min(i + 1, len(edges) - 1)]
        if i == 0:
            captions[i] = f"<= {hi:.4g}"
        elif i == n_bins - 1:
            captions[i] = f"> {lo:.4g}"
        else:
            captions[i] = f"({lo:.4g}, {hi:.4g}]"
    return captions


def _as_frame(X: Any, feature_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Raw 2D input as a DataFrame with string column names and inferred dtypes."""
    if isinstance(X, pd.DataFrame):
        X_df = X.copy()
        if feature_names is not None:
            X_df.columns = [str(f) for f in feature_names]
        X_df.columns = [str(c) for c in X_df.columns]
        return X_df
    arr = np.asarray(X, dtype=object)
    if arr.ndim != 2:
        raise ConfigurationError(f"X must be 2D, got shape {arr.shape}")
    names = [str(f) for f in feature_names] if feature_names is not None else \
        [f"attr{i + 1}" for i in range(arr.shape[1])]
    return pd.DataFrame(arr, columns=names).infer_objects()


def _read_csv_any(csv_path: Path) -> pd.DataFrame:
    """Try common separators (',' and ';') and return a pandas DataFrame."""
    last_err = None
    for sep in (",", ";"):
        try:
            df = pd.read_csv(csv_path, sep=sep, na_values=["?", "NA", "nan"], engine="python")
            if df.shape[1] > 1:
                return df
        except (OSError, ValueError, pd.errors.ParserError) as e:
            last_err = e
    raise ConfigurationError(f"Cannot read {csv_path!s} with ',' or ';' separators: {last_err}")


def _pick_label_column(df: pd.DataFrame) -> str:
    """Heuristically choose the label/target column name."""
    preferred = {"label", "labels", "class", "target", "outcome", "diagnosis", "y", "result", "income"}
    for c in df.columns:
        if str(c).strip().lower() in preferred:
            return c

    # Binary columns are the only usable targets; pick the most balanced one
    candidates = [c for c in df.columns if df[c].nunique(dropna=True) == 2]
    if candidates:
        def imbalance(col):
            vc = df[col].value_counts(normalize=True, dropna=True)
            return abs(float(vc.iloc[0]) - 0.5)
        return min(candidates, key=imbalance)
    return df.columns[-1]


def _drop_id_like(df: pd.DataFrame, keep: Optional[str] = None) -> pd.DataFrame:
    """Remove columns that look like IDs (explicit 'id' names or unique values)."""
    cols = []
    for c in df.columns:
        if c == keep:
            continue
        name = str(c).lower()
        if name in {"id", "uid", "identifier"} or name.endswith("_id") or df[c].is_unique:
            cols.append(c)
    return df.drop(columns=cols) if cols else df


def load_dataset(
    csv_path: str | Path,
    *,
    label: Optional[str] = None,
    positive: Any = None,
    breaks: int = NUMERIC_BREAKS,
    cat_threshold: int = CAT_THRESHOLD,
) -> ExampleSet:
    """Load a CSV into an ExampleSet.

    Rows with missing values are dropped, ID-like columns removed, and the
    label column auto-detected unless ``label`` is given.
    """
    csv_path = Path(csv_path)
    df = _read_csv_any(csv_path)

    # Drop rows with any missing values to keep rule learning simple
    df = df.dropna(axis=0, how="any").reset_index(drop=True)
    if df.empty:
        raise ConfigurationError(f"No complete rows in {csv_path!s}")

    df = _drop_id_like(df, keep=label)
    label_col = label if label is not None else _pick_label_column(df)
    return ExampleSet.from_frame(df, label_col, positive=positive, breaks=breaks, cat_threshold=cat_threshold)


__all__ = ["ExampleSet", "FeatureEncoder", "load_dataset"]
