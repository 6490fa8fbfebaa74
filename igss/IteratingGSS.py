"""
Iterating GSS: the outer loop of rule discovery.

Each round runs one GSS pass for the single best rule, decides whether the
rule is useful, and either adds it to the ensemble (reweighting the examples
with knowledge-based sampling) or escalates to more specific rules.

Delta budget: round i of k takes 2δ/(3(k-i)) of the remaining budget for
selection and δ/(3(k-i)) for pruning. The pruning share goes back to the
budget when the round accepts a rule, and half of the selection share when
GSS settles the rule through the formal test. The one-shot Binomial
confirmation pass reuses the selection share of the round it runs in.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .config import MIN_MODEL_NUMBER, IGSSConfig, UsefulCriterion, UtilityKind
from .errors import ConfigurationError, LearningCancelledError
from .evaluation import ContingencyMatrix, Evaluator
from .GSSRule import GSSRule, RuleSpace
from .gss import Result, SelectionOutcome, SequentialSelector
from .IGSSModel import IGSSModel, RuleModel
from .result_store import Priors, ResultStore
from .utility import UtilityFunction

logger = logging.getLogger(__name__)

ACCEPTED = "accepted"
CONFIRMED = "confirmed"
ESCALATED = "escalated"
SKIPPED = "skipped"
STOPPED = "stopped"


class IteratingGSS:
    """
    Complexity-escalating rule discovery.

    Args:
        config (IGSSConfig, optional): Learner parameters (defaults if None)
        evaluator (Evaluator, optional): Prediction/evaluation collaborator;
            its errors propagate unchanged
        cancel_check (callable, optional): Returns True to stop; polled before
            every round and at every GSS checkpoint
        verbose (bool): Print one line per round

    After ``learn`` the instance exposes ``model_`` (IGSSModel), ``results_``
    (ResultStore), ``history_`` (one dict per round) and ``delta_remaining_``.
    """

    def __init__(
        self,
        config: Optional[IGSSConfig] = None,
        *,
        evaluator: Optional[Evaluator] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        verbose: bool = False,
    ):
        self.config = config if config is not None else IGSSConfig()
        self.evaluator = evaluator if evaluator is not None else Evaluator()
        self.cancel_check = cancel_check
        self.verbose = verbose
        self.model_: Optional[IGSSModel] = None
        self.results_: Optional[ResultStore] = None
        self.history_: List[Dict[str, Any]] = []
        self.delta_remaining_: float = 0.0

    # ------------------------------------------------------------------
    # Steps of a round
    # ------------------------------------------------------------------
    def is_useful(self, result: Result, previous: Sequence[Result]) -> bool:
        """Usefulness of a round's best rule by the configured criterion.

        ``previous`` holds the results accepted at the current complexity.
        """
        cfg = self.config
        criterion = cfg.useful_criterion
        if criterion is UsefulCriterion.WORST_UTILITY:
            return result.worst_utility >= cfg.min_utility_useful
        if criterion is UsefulCriterion.UTILITY:
            return result.utility >= cfg.min_utility_useful
        if criterion is UsefulCriterion.BEST_UTILITY:
            return result.best_utility >= cfg.min_utility_useful
        # EXAMPLE: a rule that needed many more examples than the previous ones is not worth it
        if len(previous) < MIN_MODEL_NUMBER:
            return True
        average = float(np.mean([r.total_weight for r in previous]))
        return result.total_weight < cfg.example_factor * average

    def prune(
        self,
        hypotheses: Sequence[GSSRule],
        utility: UtilityFunction,
        total_weight: float,
        total_positive_weight: float,
        delta: float,
    ) -> List[GSSRule]:
        """Keep the hypotheses whose utility upper bound reaches ``min_utility_pruning``."""
        if not hypotheses:
            return []
        delta_h = delta / len(hypotheses)
        kept = [
            h for h in hypotheses
            if utility.upper_bound(total_weight, total_positive_weight, h, delta_h) >= self.config.min_utility_pruning
        ]
        logger.debug("Pruning kept %d of %d hypotheses", len(kept), len(hypotheses))
        return kept

    @staticmethod
    def generate(hypotheses: Sequence[GSSRule]) -> List[GSSRule]:
        """Successors of every refinable hypothesis; the others are dropped."""
        successors: List[GSSRule] = []
        for h in hypotheses:
            if h.can_be_refined():
                successors.extend(h.refine())
        return successors

    def reweight(self, example_set, predictions: np.ndarray, matrix: ContingencyMatrix) -> None:
        """Knowledge-based sampling update, normalized by the maximum weight for rejection sampling."""
        self.evaluator.reweight(example_set, predictions, matrix)
        if self.config.rejection_sampling:
            max_weight = float(example_set.weights.max())
            if max_weight > 0:
                example_set.weights /= max_weight

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _check_cancel(self) -> None:
        if self.cancel_check is not None and self.cancel_check():
            raise LearningCancelledError("IGSS cancelled before round")

    def _init_weights(self, example_set) -> None:
        cfg = self.config
        if not cfg.use_example_weights:
            example_set.reset_weights(1.0)
            return
        max_weight = float(example_set.weights.max())
        if max_weight <= 0:
            raise ConfigurationError("All example weights are 0")
        if cfg.rejection_sampling:
            # rejection sampling reads weights as acceptance probabilities
            example_set.weights /= max_weight

    def _select(self, utility: UtilityFunction, example_set, pool: List[GSSRule], delta: float,
                rng: np.random.Generator) -> SelectionOutcome:
        cfg = self.config
        selector = SequentialSelector(
            utility,
            stepsize=cfg.stepsize,
            rejection_sampling=cfg.rejection_sampling,
            rng=rng,
            max_draws=cfg.max_draws,
            max_seconds=cfg.max_seconds,
            cancel_check=self.cancel_check,
            verbose=self.verbose,
        )
        return selector.select(example_set, pool, 1, delta, cfg.epsilon)

    def _record(self, i: int, complexity: int, utility: UtilityFunction, result: Optional[Result],
                decision: str, outcome: Optional[SelectionOutcome]) -> None:
        entry = {
            "round": i,
            "complexity": complexity,
            "utility_function": utility.kind.value,
            "rule": result.hypothesis.caption if result is not None else None,
            "utility": result.utility if result is not None else None,
            "confidence": result.confidence if result is not None else None,
            "decision": decision,
            "draws": outcome.draws if outcome is not None else 0,
        }
        self.history_.append(entry)
        logger.info(
            "Round %d (complexity %d, %s): %s %s",
            i, complexity, utility.kind.value, decision, entry["rule"],
        )
        if self.verbose:
            util = "n/a" if result is None else f"{result.utility:.4f}±{result.confidence:.4f}"
            print(f"[IteratingGSS] round {i} L={complexity} {utility.kind.value}: {decision} "
                  f"{entry['rule']} (u={util}, draws={entry['draws']})")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def learn(self, example_set) -> IGSSModel:
        """
        Discover rules on ``example_set`` and return the ensemble.

        The example weights are rewritten in place (initialization,
        reweighting, optional reset on escalation).

        Raises:
            ConfigurationError: invalid parameters or unusable data, before sampling
            SelectionNotConvergedError: a GSS pass hit its draw/time cap
            LearningCancelledError: ``cancel_check`` asked to stop
        """
        cfg = self.config.validate()
        if len(example_set) == 0:
            raise ConfigurationError("Cannot learn from an empty example set")
        if example_set.X.shape[1] == 0:
            raise ConfigurationError("Example set has no attributes")

        self._init_weights(example_set)
        priors = Priors.estimate(example_set)
        base_utility = UtilityFunction(cfg.utility_function, priors, cfg.large)
        utility = base_utility
        space = RuleSpace.from_example_set(example_set, generate_all=cfg.generate_all_hypothesis)
        pool = space.init(cfg.min_complexity)
        rng = np.random.default_rng(cfg.seed)
        feature_to_idx = example_set.feature_to_idx

        ensemble = IGSSModel(priors.as_tuple(), example_set.feature_names, example_set.classes)
        store = ResultStore(priors)
        self.model_, self.results_, self.history_ = ensemble, store, []

        remaining = cfg.delta
        complexity = cfg.min_complexity
        binomial_done = False
        excluded: List[GSSRule] = []
        accepted_here: List[Result] = []

        for i in range(cfg.iterations):
            self._check_cancel()
            if not pool:
                logger.info("No candidate rules left at complexity %d; stopping", complexity)
                self._record(i, complexity, utility, None, STOPPED, None)
                break
            for h in pool:
                h.reset()

            rounds_left = cfg.iterations - i
            delta_selection = 2.0 * remaining / (3.0 * rounds_left)
            delta_pruning = remaining / (3.0 * rounds_left)
            remaining -= delta_selection + delta_pruning

            outcome = self._select(utility, example_set, pool, delta_selection, rng)
            if not outcome.results:
                logger.warning("GSS returned no rule in round %d; stopping", i)
                self._record(i, complexity, utility, None, STOPPED, outcome)
                break
            result = outcome.results[0]
            model = RuleModel.from_result(result, feature_to_idx)
            useful = self.is_useful(result, accepted_here) and model not in ensemble

            if not useful and cfg.use_binomial and not binomial_done:
                # one confirmation pass with the Binomial utility on this round's share
                binomial_done = True
                utility = base_utility.with_kind(UtilityKind.BINOMIAL)
                for h in pool:
                    h.reset()
                outcome = self._select(utility, example_set, pool, delta_selection, rng)
                if outcome.results:
                    result = outcome.results[0]
                    model = RuleModel.from_result(result, feature_to_idx)
                    useful = self.is_useful(result, accepted_here) and model not in ensemble
                if useful:
                    # the confirmation only decides the utility of the next rounds
                    remaining += outcome.unused_delta
                    self._record(i, complexity, utility, result, CONFIRMED, outcome)
                    continue

            if not useful:
                if complexity < cfg.max_complexity:
                    failed_kind = utility
                    complexity += 1
                    utility = base_utility
                    binomial_done = False
                    if not cfg.use_kbs:
                        pool.extend(excluded)
                        excluded = []
                    survivors = self.prune(pool, utility, outcome.total_weight,
                                           outcome.total_positive_weight, delta_pruning)
                    pool = self.generate(survivors)
                    accepted_here = []
                    if cfg.reset_weights:
                        example_set.reset_weights(1.0)
                    self._record(i, complexity - 1, failed_kind, result, ESCALATED, outcome)
                    continue
                if not cfg.force_iterations:
                    self._record(i, complexity, utility, result, STOPPED, outcome)
                    break
                if model in ensemble:
                    self._record(i, complexity, utility, result, SKIPPED, outcome)
                    continue

            # ---- Accept ----
            remaining += outcome.unused_delta + delta_pruning
            store.add(result)
            accepted_here.append(result)
            predictions = self.evaluator.predict(model, example_set)
            matrix = self.evaluator.contingency_matrix(example_set, predictions)
            if cfg.use_kbs:
                self.reweight(example_set, predictions, matrix)
            else:
                excluded.append(pool.pop(pool.index(result.hypothesis)))
            ensemble.add(model, matrix)
            self._record(i, complexity, utility, result, ACCEPTED, outcome)

        self.delta_remaining_ = remaining
        if self.verbose:
            print(f"[IteratingGSS] done: {len(ensemble)} rule(s), delta left {remaining:.4g}")
        return ensemble


__all__ = ["IteratingGSS"]
