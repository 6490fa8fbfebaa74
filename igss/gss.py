"""
Generalized Sequential Sampling (GSS).

Exposed API:
  - Result: immutable snapshot of a selected hypothesis and its statistics
  - SelectionOutcome: results of one pass plus what the pass consumed
  - SequentialSelector.select(example_set, hypotheses, n, delta, epsilon)

A pass draws examples one at a time and, every ``stepsize`` weight units,
promotes hypotheses whose rank is statistically settled and drops those that
are dominated. With probability at least 1 - delta every returned utility is
within epsilon of its true value, using per-hypothesis delta/(2|H|) and
per-checkpoint delta/(2|H| ceil(M/stepsize)) apportionment.

The pass also stops once the hypothesis-free radius ``global_confidence``
drops to epsilon/2. That exit is a practical heuristic, not a per-hypothesis
guarantee: the remaining best-ranked hypotheses are flushed with their radius
clamped to epsilon/2.
"""

from __future__ import annotations

import heapq
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np

from .config import MAX_DRAWS, POSITIVE_CLASS, STEPSIZE
from .errors import LearningCancelledError, SelectionNotConvergedError
from .GSSRule import GSSRule
from .utility import UtilityFunction

logger = logging.getLogger(__name__)

# Draws between two wall-clock checks when no checkpoint is reached.
_TIME_CHECK_EVERY = 4096

EXIT_OUTPUT = "output"
EXIT_EXHAUSTED = "exhausted"
EXIT_HEURISTIC = "heuristic"


@dataclass(frozen=True, eq=False)
class Result:
    """A selected hypothesis with the statistics it was selected on.

    Equality (and hashing) is that of the underlying hypothesis.
    """

    hypothesis: GSSRule
    total_weight: float
    total_positive_weight: float
    utility: float
    confidence: float

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self.hypothesis == other.hypothesis

    def __hash__(self) -> int:
        return hash(self.hypothesis)

    @property
    def worst_utility(self) -> float:
        return self.utility - self.confidence

    @property
    def best_utility(self) -> float:
        return self.utility + self.confidence


@dataclass
class SelectionOutcome:
    """
    What one GSS pass returned and consumed.

    Attributes:
        results (list[Result]): Selected hypotheses, best first within each exit path
        total_weight (float): Weight accumulated by accepted draws
        total_positive_weight (float): Part of it labeled positive
        draws (int): Examples drawn, accepted or not
        exit_reason (str): "output", "exhausted" or "heuristic"
        unused_delta (float): Confidence mass the caller may return to its budget
        dropped (list[GSSRule]): Snapshots of the hypotheses pruned as dominated,
            taken when they were dropped
    """

    results: List[Result] = field(default_factory=list)
    total_weight: float = 0.0
    total_positive_weight: float = 0.0
    draws: int = 0
    exit_reason: str = EXIT_EXHAUSTED
    unused_delta: float = 0.0
    dropped: List[GSSRule] = field(default_factory=list)


class SequentialSelector:
    """
    Finds the n best hypotheses of a pool by sequential sampling.

    Args:
        utility (UtilityFunction): Ranks hypotheses and bounds their error
        stepsize (int): Weight units between two checkpoints
        rejection_sampling (bool): Accept a draw with probability = its weight
            (weights must lie in [0, 1]) and count it as 1; otherwise add the
            weight of every draw
        rng (np.random.Generator, optional): Random source
        max_draws (int): Draw cap; exceeding it raises SelectionNotConvergedError
        max_seconds (float, optional): Wall-clock cap with the same effect
        cancel_check (callable, optional): Polled at checkpoints; a truthy
            return raises LearningCancelledError
        verbose (bool): Print one line per pass
    """

    def __init__(
        self,
        utility: UtilityFunction,
        *,
        stepsize: int = STEPSIZE,
        rejection_sampling: bool = True,
        rng: Optional[np.random.Generator] = None,
        max_draws: int = MAX_DRAWS,
        max_seconds: Optional[float] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        verbose: bool = False,
    ):
        self.utility = utility
        self.stepsize = int(stepsize)
        self.rejection_sampling = bool(rejection_sampling)
        self.rng = rng if rng is not None else np.random.default_rng(0)
        self.max_draws = int(max_draws)
        self.max_seconds = max_seconds
        self.cancel_check = cancel_check
        self.verbose = verbose

    # ----------------------------- statistics -----------------------------
    def _score(self, h: GSSRule, total: float, total_pos: float, delta_hm: float):
        u = self.utility.utility(total, total_pos, h)
        c = self.utility.confidence_interval(total, total_pos, h, delta_hm)
        return u, c

    def _partition(self, pool: Sequence[GSSRule], live: List[int], n: int, total: float, total_pos: float,
                   delta_hm: float):
        """Split ``live`` into the n best (covered) hypotheses and the rest.

        Returns (best, stats, min_best, max_rest) where ``stats`` maps index to
        (utility, radius), ``min_best`` is the best member with the smallest
        lower bound and ``max_rest`` the rest member with the largest upper
        bound (either may be None).
        """
        stats = {i: self._score(pool[i], total, total_pos, delta_hm) for i in live}
        covered = [i for i in live if pool[i].covered_weight > 0]
        # nlargest is stable: among equal utilities the earlier hypothesis wins
        best = heapq.nlargest(n, covered, key=lambda i: stats[i][0])
        best_set = set(best)
        rest = [i for i in live if i not in best_set]
        min_best = min(best, key=lambda i: stats[i][0] - stats[i][1]) if best else None
        max_rest = max(rest, key=lambda i: stats[i][0] + stats[i][1]) if rest else None
        return best, stats, min_best, max_rest

    @staticmethod
    def _flush(pool: Sequence[GSSRule], example_set, drawn: List[int], added: List[float]) -> None:
        """Apply the draws accepted since the last flush to every hypothesis of the pool."""
        if not drawn:
            return
        idx = np.asarray(drawn, dtype=int)
        X, y, w = example_set.X[idx], example_set.y[idx], np.asarray(added, dtype=float)
        f2i = example_set.feature_to_idx
        for h in pool:
            h.apply(X, y, w, f2i)
        drawn.clear()
        added.clear()

    # ----------------------------- main loop -----------------------------
    def select(self, example_set, hypotheses: Sequence[GSSRule], n: int, delta: float,
               epsilon: float) -> SelectionOutcome:
        """
        Return up to ``n`` hypotheses whose utility is within ``epsilon`` of the
        best ones with probability ``1 - delta``.

        Every accepted draw is applied to all hypotheses, promoted and dropped
        ones included, in one ``GSSRule.apply`` batch per checkpoint, so the caller's pool (order and membership untouched) can be pruned on
        them afterwards.
        """
        pool = list(hypotheses)
        n_hypo = len(pool)
        n = min(int(n), n_hypo)
        if n <= 0 or len(example_set) == 0:
            return SelectionOutcome()

        y, weights = example_set.y, example_set.weights
        # accepted draws not yet applied to the hypotheses
        drawn: List[int] = []
        added: List[float] = []
        for h in pool:
            h.reset()

        m = self.utility.calculate_m(delta / (2.0 * n_hypo), epsilon)
        n_checkpoints = max(1.0, math.ceil(m / self.stepsize))

        def apportion(size: int):
            size = max(size, 1)
            return delta / (2.0 * size), delta / (2.0 * size * n_checkpoints)

        delta_h, delta_hm = apportion(n_hypo)
        live: List[int] = list(range(n_hypo))
        n_left = n
        results: List[Result] = []
        dropped: List[GSSRule] = []
        best: List[int] = []
        total = total_pos = 0.0
        draws = 0
        next_check = float(self.stepsize)
        n_examples = len(example_set)
        started = time.monotonic()
        deadline = None if self.max_seconds is None else started + self.max_seconds

        def give_up(reason: str):
            self._flush(pool, example_set, drawn, added)
            raise SelectionNotConvergedError(
                f"GSS did not converge: {reason} after {draws} draws (total weight {total:.1f})",
                draws=draws,
                total_weight=total,
            )

        exit_reason = None
        while exit_reason is None:
            if draws >= self.max_draws:
                give_up(f"draw cap {self.max_draws} reached")
            if deadline is not None and draws % _TIME_CHECK_EVERY == 0 and time.monotonic() > deadline:
                give_up(f"time cap {self.max_seconds}s reached")

            idx = int(self.rng.integers(n_examples))
            draws += 1
            weight = float(weights[idx])
            if self.rejection_sampling:
                if self.rng.random() > weight:
                    continue
                add = 1.0
            else:
                if weight <= 0:
                    continue
                add = weight

            total += add
            if y[idx] == POSITIVE_CLASS:
                total_pos += add
            drawn.append(idx)
            added.append(add)

            if total < next_check:
                continue
            next_check = (math.floor(total / self.stepsize) + 1) * self.stepsize

            # ---- Checkpoint ----
            if self.cancel_check is not None and self.cancel_check():
                self._flush(pool, example_set, drawn, added)
                raise LearningCancelledError("GSS cancelled at checkpoint")
            if deadline is not None and time.monotonic() > deadline:
                give_up(f"time cap {self.max_seconds}s reached")
            self._flush(pool, example_set, drawn, added)

            best, stats, min_best, max_rest = self._partition(pool, live, n_left, total, total_pos, delta_hm)
            for i in list(live):
                if n_left == 0 or len(live) <= n_left:
                    break
                if i not in live:
                    continue
                u, c = stats[i]
                if max_rest is not None and i in best and \
                        u - c >= stats[max_rest][0] + stats[max_rest][1] - epsilon:
                    results.append(Result(pool[i].copy(), total, total_pos, u, c))
                    live.remove(i)
                    n_left -= 1
                    delta_h, delta_hm = apportion(len(live))
                    if n_left > 0 and live:
                        best, stats, min_best, max_rest = self._partition(
                            pool, live, n_left, total, total_pos, delta_hm)
                elif min_best is not None and i not in best and \
                        u + c < stats[min_best][0] - stats[min_best][1]:
                    dropped.append(pool[i].copy())
                    live.remove(i)
                    delta_h, delta_hm = apportion(len(live))
                    if i == max_rest and len(live) > n_left:
                        best, stats, min_best, max_rest = self._partition(
                            pool, live, n_left, total, total_pos, delta_hm)

            logger.debug(
                "GSS checkpoint: total=%.1f draws=%d live=%d promoted=%d",
                total, draws, len(live), len(results),
            )

            if n_left == 0:
                exit_reason = EXIT_OUTPUT
            elif len(live) <= n_left:
                exit_reason = EXIT_EXHAUSTED
            elif self.utility.global_confidence(total, delta_h) <= epsilon / 2.0:
                exit_reason = EXIT_HEURISTIC

        self._flush(pool, example_set, drawn, added)
        unused = 0.0
        if exit_reason == EXIT_OUTPUT:
            unused = delta / 2.0
        elif exit_reason == EXIT_EXHAUSTED:
            # every remaining hypothesis is output, ranked by utility
            stats = {i: self._score(pool[i], total, total_pos, delta_hm) for i in live}
            for i in sorted(live, key=lambda i: -stats[i][0]):
                u, c = stats[i]
                results.append(Result(pool[i].copy(), total, total_pos, u, c))
        else:
            best, stats, _, _ = self._partition(pool, live, n_left, total, total_pos, delta_hm)
            if not best:
                best = heapq.nlargest(n_left, live, key=lambda i: stats[i][0])
            for i in best:
                u, c = stats[i]
                results.append(Result(pool[i].copy(), total, total_pos, u, min(c, epsilon / 2.0)))

        if self.verbose:
            print(
                f"[GSS] exit={exit_reason} draws={draws} total={total:.1f} "
                f"results={len(results)} ({time.monotonic() - started:.2f}s)"
            )
        return SelectionOutcome(results, total, total_pos, draws, exit_reason, unused, dropped)


__all__ = ["Result", "SelectionOutcome", "SequentialSelector"]
