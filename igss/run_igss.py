"""Benchmark script: IGSS rule discovery on a CSV dataset (compact)."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .config import IGSSConfig, UsefulCriterion, UtilityKind
from .Datasets_loader import load_dataset
from .IGSSClassifier import _metrics
from .IteratingGSS import IteratingGSS


# --- tiny helpers ---------------------------------------------------------
def tspan(f, *a, **kw) -> tuple[float, Any]:
    t0 = time.perf_counter(); r = f(*a, **kw); t1 = time.perf_counter(); return (t1 - t0), r


def _resolve_dataset_csv(name_or_path: str) -> Path:
    p = Path(name_or_path)
    if p.suffix.lower() == ".csv" and p.is_file():
        return p
    for c in [Path.cwd() / f"{name_or_path}.csv", Path.cwd() / "data" / f"{name_or_path}.csv"]:
        if c.is_file():
            return c
    return Path.cwd() / f"{name_or_path}.csv"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Discover rules with Iterating GSS and score them on a held-out split.")
    ap.add_argument("--dataset", type=str, required=True, help="CSV path or dataset name in the working directory")
    ap.add_argument("--label", type=str, default=None, help="Label column (auto-detected otherwise)")
    ap.add_argument("--positive", type=str, default=None, help="Positive class value")
    ap.add_argument("--breaks", type=int, default=4)
    ap.add_argument("--test-size", type=float, default=0.25)
    ap.add_argument("--epsilon", type=float, default=IGSSConfig.epsilon)
    ap.add_argument("--delta", type=float, default=IGSSConfig.delta)
    ap.add_argument("--iterations", type=int, default=IGSSConfig.iterations)
    ap.add_argument("--min-complexity", type=int, default=IGSSConfig.min_complexity)
    ap.add_argument("--max-complexity", type=int, default=IGSSConfig.max_complexity)
    ap.add_argument("--utility", type=str, default=IGSSConfig.utility_function.value,
                    choices=[k.value for k in UtilityKind])
    ap.add_argument("--criterion", type=str, default=IGSSConfig.useful_criterion.value,
                    choices=[c.value for c in UsefulCriterion])
    ap.add_argument("--no-kbs", action="store_true", help="Remove accepted rules instead of reweighting")
    ap.add_argument("--binomial", action="store_true", help="Confirm with the Binomial utility before escalating")
    ap.add_argument("--weighted-sampling", action="store_true", help="Add weights instead of rejection sampling")
    ap.add_argument("--force-iterations", action="store_true")
    ap.add_argument("--max-seconds", type=float, default=None)
    ap.add_argument("--seed", type=int, default=IGSSConfig.seed)
    ap.add_argument("--out", type=str, default=None, help="Write the per-round history to this CSV")
    ap.add_argument("--verbose", action="store_true")
    return ap


# --- main ----------------------------------------------------------------
def main(argv: Sequence[str] | None = None) -> dict[str, float]:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    csv_path = _resolve_dataset_csv(args.dataset)
    data = load_dataset(csv_path, label=args.label, positive=args.positive, breaks=args.breaks)
    print(f"Classes (negative, positive): {data.classes}")
    print(f"X shape = ( {data.X.shape[0]}, {data.X.shape[1]} ),  positives = {int(data.y.sum())}")

    idx = np.arange(len(data))
    tr_idx, te_idx = train_test_split(idx, test_size=args.test_size, random_state=args.seed, stratify=data.y)
    train, test = data.subset(tr_idx), data.subset(te_idx)

    config = IGSSConfig(
        epsilon=args.epsilon,
        delta=args.delta,
        iterations=args.iterations,
        min_complexity=args.min_complexity,
        max_complexity=args.max_complexity,
        utility_function=args.utility,
        useful_criterion=args.criterion,
        use_kbs=not args.no_kbs,
        use_binomial=args.binomial,
        rejection_sampling=not args.weighted_sampling,
        force_iterations=args.force_iterations,
        max_seconds=args.max_seconds,
        seed=args.seed,
    )
    learner = IteratingGSS(config, verbose=args.verbose)
    t, model = tspan(learner.learn, train)
    print(f"[time] IGSS: {t:.3f}s")
    print(model.describe())

    y_hat = model.predict(test.X)
    m = _metrics(test.y, y_hat)
    m["Diversity"] = learner.results_.diversity(test)
    print(f"[IGSS] metrics: {m}")

    # Baseline (short)
    from sklearn.tree import DecisionTreeClassifier
    X_tr, X_te = np.nan_to_num(train.X, nan=-1.0), np.nan_to_num(test.X, nan=-1.0)
    tree = DecisionTreeClassifier(max_depth=config.max_complexity, random_state=args.seed).fit(X_tr, train.y)
    mb = _metrics(test.y, tree.predict(X_te))
    print(f"[Baseline] tree depth={config.max_complexity} Acc={mb['Accuracy']:.4f} F1={mb['F1']:.4f}")

    if args.out:
        pd.DataFrame(learner.history_).to_csv(args.out, index=False)
        print(f"✓  History → {args.out}")
    return m


if __name__ == "__main__":
    main()
