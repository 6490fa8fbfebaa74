import math
from types import SimpleNamespace

import pytest

from igss.config import UtilityKind
from igss.core import binary_entropy, clopper_pearson, hoeffding_radius, hoeffding_sample_size
from igss.utility import UtilityFunction

PRIORS = (0.5, 0.5)
ALL_KINDS = list(UtilityKind)


def hypo(covered, positive, prediction=1):
    return SimpleNamespace(covered_weight=covered, positive_weight=positive, prediction=prediction)


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_utility_increases_with_precision(kind):
    u = UtilityFunction(kind, PRIORS)
    scores = [u.utility(1000.0, 500.0, hypo(200.0, n_p)) for n_p in (0.0, 50.0, 100.0, 150.0, 200.0)]
    assert all(a < b for a, b in zip(scores, scores[1:]))


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_radius_shrinks_with_total_weight(kind):
    # large threshold out of reach keeps the Binomial variant in one regime
    u = UtilityFunction(kind, PRIORS, large=10 ** 9)
    radii = []
    for m in (200.0, 400.0, 800.0, 1600.0, 3200.0):
        radii.append(u.confidence_interval(m, 0.5 * m, hypo(0.2 * m, 0.15 * m), 0.05))
    assert all(a > b for a, b in zip(radii, radii[1:]))


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_zero_coverage_is_defined(kind):
    u = UtilityFunction(kind, PRIORS)
    h = hypo(0.0, 0.0)
    value = u.utility(500.0, 250.0, h)
    radius = u.confidence_interval(500.0, 250.0, h, 0.05)
    assert math.isfinite(value)
    assert radius == pytest.approx(u.global_confidence(500.0, 0.05))
    if kind is not UtilityKind.ACCURACY:
        assert value == 0.0


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_zero_total_weight_sentinels(kind):
    u = UtilityFunction(kind, PRIORS)
    h = hypo(0.0, 0.0)
    assert u.utility(0.0, 0.0, h) == 0.0
    assert u.confidence_interval(0.0, 0.0, h, 0.05) == math.inf
    assert u.global_confidence(0.0, 0.05) == math.inf


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_calculate_m_reaches_half_epsilon(kind):
    u = UtilityFunction(kind, PRIORS)
    delta, epsilon = 0.01, 0.05
    m = u.calculate_m(delta, epsilon)
    assert u.global_confidence(m, delta) <= epsilon / 2.0 + 1e-12
    assert u.global_confidence(0.9 * m, delta) > epsilon / 2.0


@pytest.mark.parametrize("kind", ALL_KINDS)
def test_upper_bound_dominates_utility(kind):
    u = UtilityFunction(kind, (0.3, 0.7))
    for covered, positive in [(100.0, 10.0), (100.0, 90.0), (400.0, 200.0), (50.0, 0.0)]:
        h = hypo(covered, positive)
        assert u.upper_bound(1000.0, 700.0, h, 0.05) >= u.utility(1000.0, 700.0, h)


def test_binomial_switch_is_deterministic():
    exact = UtilityFunction(UtilityKind.BINOMIAL, PRIORS, large=1000)
    approx = UtilityFunction(UtilityKind.BINOMIAL, PRIORS, large=10)
    h = hypo(120.0, 90.0)
    r_exact = exact.confidence_interval(600.0, 300.0, h, 0.05)
    r_approx = approx.confidence_interval(600.0, 300.0, h, 0.05)
    assert r_exact == exact.confidence_interval(600.0, 300.0, h, 0.05)
    assert r_approx == approx.confidence_interval(600.0, 300.0, h, 0.05)
    assert r_exact != r_approx
    assert 0.0 < r_approx < 1.0 and 0.0 < r_exact < 1.0


def test_negative_prediction_uses_negative_prior():
    u = UtilityFunction(UtilityKind.WRACC, (0.8, 0.2))
    # covers 100 of 1000, 90 of them negative
    assert u.utility(1000.0, 200.0, hypo(100.0, 90.0, prediction=0)) == pytest.approx((90.0 - 0.8 * 100.0) / 1000.0)


def test_with_kind_keeps_priors():
    u = UtilityFunction("wracc", (0.4, 0.6), large=7)
    b = u.with_kind(UtilityKind.BINOMIAL)
    assert b.kind is UtilityKind.BINOMIAL
    assert b.priors == u.priors and b.large == 7


def test_core_helpers():
    r = hoeffding_radius(500, 0.05)
    assert hoeffding_sample_size(r, 0.05) == pytest.approx(500)
    lo, hi = clopper_pearson(0, 20, 0.05)
    assert lo == 0.0 and 0.0 < hi < 1.0
    assert binary_entropy(0.5) == pytest.approx(1.0)
    assert binary_entropy(0.0) == 0.0


def test_binomial_exact_interval_up_to_large():
    h = hypo(120.0, 90.0)
    at_threshold = UtilityFunction(UtilityKind.BINOMIAL, PRIORS, large=120)
    exact = UtilityFunction(UtilityKind.BINOMIAL, PRIORS, large=1000)
    approx = UtilityFunction(UtilityKind.BINOMIAL, PRIORS, large=119)
    r = at_threshold.confidence_interval(600.0, 300.0, h, 0.05)
    assert r == exact.confidence_interval(600.0, 300.0, h, 0.05)
    assert r != approx.confidence_interval(600.0, 300.0, h, 0.05)
