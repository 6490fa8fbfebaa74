import numpy as np
import pytest

from igss.config import UtilityKind
from igss.errors import LearningCancelledError, SelectionNotConvergedError
from igss.GSSRule import GSSRule, RuleSpace
from igss.gss import Result, SequentialSelector
from igss.result_store import Priors
from igss.utility import UtilityFunction


def wracc_for(es):
    return UtilityFunction(UtilityKind.WRACC, Priors.estimate(es))


def wracc_for_uniform():
    return UtilityFunction(UtilityKind.WRACC, (0.5, 0.5))


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_dominant_hypothesis_is_selected(planted, rule_for, seed):
    pool = RuleSpace.from_example_set(planted).init(1)
    selector = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(seed), max_draws=10_000)
    outcome = selector.select(planted, pool, 1, 0.1, 0.05)
    assert [r.hypothesis for r in outcome.results] == [rule_for(planted, "attr1", "A")]
    assert outcome.draws <= 10_000
    assert outcome.exit_reason in {"output", "heuristic"}


def test_weighted_sampling_mode(planted, rule_for):
    pool = RuleSpace.from_example_set(planted).init(1)
    selector = SequentialSelector(wracc_for(planted), rejection_sampling=False, rng=np.random.default_rng(0))
    outcome = selector.select(planted, pool, 1, 0.1, 0.05)
    assert outcome.results[0].hypothesis == rule_for(planted, "attr1", "A")
    # every draw counts with weight 1
    assert outcome.total_weight == outcome.draws


def test_formal_exit_refunds_half_delta(planted):
    pool = RuleSpace.from_example_set(planted).init(1)
    outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0)).select(planted, pool, 1, 0.1, 0.05)
    assert outcome.exit_reason == "output"
    assert outcome.unused_delta == pytest.approx(0.05)


def test_tied_hypotheses_end_on_the_heuristic_exit(twins, rule_for):
    # identical coverage: neither twin can ever be promoted over the other
    left, right = rule_for(twins, "left", "A"), rule_for(twins, "right", "A")
    utility = wracc_for(twins)
    outcome = SequentialSelector(utility, rng=np.random.default_rng(0)).select(twins, [left, right], 1, 0.1, 0.05)
    assert outcome.exit_reason == "heuristic"
    assert outcome.unused_delta == 0.0
    assert [r.hypothesis for r in outcome.results] == [left]
    assert outcome.results[0].confidence == pytest.approx(0.025)
    assert outcome.total_weight >= utility.calculate_m(0.1 / 4.0, 0.05)
    assert outcome.dropped == []


def test_dominated_hypothesis_is_dropped(twins, rule_for):
    left, right = rule_for(twins, "left", "A"), rule_for(twins, "right", "A")
    loser = rule_for(twins, "attr1", "B")
    outcome = SequentialSelector(wracc_for(twins), rng=np.random.default_rng(0)).select(
        twins, [left, right, loser], 1, 0.1, 0.05)
    assert outcome.dropped == [loser]
    assert outcome.dropped[0].covered_weight < outcome.total_weight
    assert outcome.exit_reason == "heuristic"
    assert [r.hypothesis for r in outcome.results] == [left]


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_planted_loser_is_dropped_before_output(planted, rule_for, seed):
    pool = RuleSpace.from_example_set(planted).init(1)
    outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(seed)).select(planted, pool, 1, 0.1, 0.05)
    assert rule_for(planted, "attr1", "B") in outcome.dropped
    assert rule_for(planted, "attr1", "A") not in outcome.dropped


def test_counters_are_reproducible_for_a_seed(planted):
    def run():
        pool = RuleSpace.from_example_set(planted).init(1)
        outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(7)).select(
            planted, pool, 1, 0.1, 0.05)
        return [(h.covered_weight, h.positive_weight) for h in pool], outcome.draws

    assert run() == run()


def test_pool_is_preserved_with_counters(planted):
    pool = RuleSpace.from_example_set(planted).init(1)
    before = list(pool)
    outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0)).select(planted, pool, 1, 0.1, 0.05)
    assert pool == before
    assert all(a is b for a, b in zip(pool, before))
    for h in pool:
        assert 0.0 <= h.positive_weight <= h.covered_weight <= outcome.total_weight
    winner = outcome.results[0].hypothesis
    assert pool[pool.index(winner)].covered_weight == winner.covered_weight


def test_zero_coverage_hypothesis_is_harmless(planted, rule_for):
    pool = RuleSpace.from_example_set(planted).init(1) + [GSSRule((("attr2", "==", 7),))]
    outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0)).select(planted, pool, 1, 0.1, 0.05)
    assert outcome.results[0].hypothesis == rule_for(planted, "attr1", "A")
    assert pool[-1].covered_weight == 0.0


def test_draw_cap_raises(planted):
    pool = RuleSpace.from_example_set(planted).init(1)
    selector = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0), max_draws=50)
    with pytest.raises(SelectionNotConvergedError) as info:
        selector.select(planted, pool, 1, 0.1, 0.05)
    assert info.value.draws == 50


def test_zero_weights_never_converge(planted):
    planted.reset_weights(0.0)
    pool = RuleSpace.from_example_set(planted).init(1)
    selector = SequentialSelector(wracc_for_uniform(), rng=np.random.default_rng(0), max_draws=500)
    with pytest.raises(SelectionNotConvergedError) as info:
        selector.select(planted, pool, 1, 0.1, 0.05)
    assert info.value.total_weight == 0.0


def test_cancel_at_checkpoint(planted):
    pool = RuleSpace.from_example_set(planted).init(1)
    selector = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0), cancel_check=lambda: True)
    with pytest.raises(LearningCancelledError):
        selector.select(planted, pool, 1, 0.1, 0.05)


def test_all_hypotheses_requested_are_ranked(planted, rule_for):
    a, b = rule_for(planted, "attr1", "B"), rule_for(planted, "attr1", "A")
    outcome = SequentialSelector(wracc_for(planted), rng=np.random.default_rng(0)).select(planted, [a, b], 2, 0.1, 0.05)
    assert outcome.exit_reason == "exhausted"
    assert [r.hypothesis for r in outcome.results] == [b, a]
    assert outcome.results[0].utility > outcome.results[1].utility


def test_empty_pool_returns_nothing(planted):
    outcome = SequentialSelector(wracc_for(planted)).select(planted, [], 1, 0.1, 0.05)
    assert outcome.results == [] and outcome.draws == 0


def test_result_equality_follows_hypothesis(planted, rule_for):
    h = rule_for(planted, "attr1", "A")
    r1 = Result(h, 100.0, 50.0, 0.1, 0.02)
    r2 = Result(h.copy(), 300.0, 150.0, 0.12, 0.01)
    assert r1 == r2 and hash(r1) == hash(r2)
    assert r1.worst_utility == pytest.approx(0.08)
    assert r1.best_utility == pytest.approx(0.12)
