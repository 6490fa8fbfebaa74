import numpy as np
import pytest

from igss.evaluation import ContingencyMatrix, Evaluator
from igss.IGSSModel import IGSSModel, RuleModel


def planted_matrix():
    # [true][predicted] for "attr1 = A => +" on the planted data
    return ContingencyMatrix([[90.0, 10.0], [40.0, 60.0]])


def test_contingency_from_predictions():
    cm = ContingencyMatrix.from_predictions([1, 1, 0, 0], [1, 0, 1, 0], [2.0, 1.0, 1.0, 4.0])
    assert cm.counts.tolist() == [[4.0, 1.0], [1.0, 2.0]]
    assert cm.total == 8.0
    assert cm.accuracy == pytest.approx(0.75)


def test_lift_ratio():
    cm = planted_matrix()
    assert cm.lift_ratio(1, 1) == pytest.approx(0.3 / (0.5 * 0.35))
    assert cm.lift_ratio(0, 1) == pytest.approx(0.05 / (0.5 * 0.35))
    assert ContingencyMatrix(np.zeros((2, 2))).lift_ratio(1, 1) == 1.0


def test_reweight_removes_the_rules_information(planted, rule_for):
    model = RuleModel(rule_for(planted, "attr1", "A"), planted.feature_to_idx)
    ev = Evaluator()
    pred = ev.predict(model, planted)
    cm = ev.contingency_matrix(planted, pred)
    assert cm.counts.tolist() == planted_matrix().counts.tolist()
    ev.reweight(planted, pred, cm)
    after = ev.contingency_matrix(planted, pred)
    # predictions and labels are independent under the new weights
    for t in (0, 1):
        for p in (0, 1):
            assert after.lift_ratio(t, p) == pytest.approx(1.0)
    assert after.true_prior(1) == pytest.approx(0.5)


def test_rule_model_predicts_other_class_outside(planted, rule_for, code_of):
    model = RuleModel(rule_for(planted, "attr1", "B", prediction=0), planted.feature_to_idx)
    pred = model.predict(planted.X)
    is_b = planted.X[:, 0] == code_of(planted, "attr1", "B")
    assert np.all(pred[is_b] == 0) and np.all(pred[~is_b] == 1)


def test_rule_model_equality_and_precision(planted, rule_for):
    rule = rule_for(planted, "attr1", "A")
    rule.covered_weight, rule.positive_weight = 70.0, 60.0
    model = RuleModel(rule, planted.feature_to_idx)
    assert model.precision == pytest.approx(60 / 70)
    assert model == RuleModel(rule_for(planted, "attr1", "A"), planted.feature_to_idx)


def test_empty_ensemble_follows_priors(planted):
    model = IGSSModel((0.3, 0.7))
    assert np.all(model.predict(planted.X) == 1)
    proba = model.predict_proba(planted.X)
    assert proba.shape == (len(planted), 2)
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert np.allclose(proba[:, 1], 0.7)


def test_single_rule_ensemble(planted, rule_for, code_of):
    model = IGSSModel((0.5, 0.5), planted.feature_names)
    rule_model = RuleModel(rule_for(planted, "attr1", "A"), planted.feature_to_idx)
    model.add(rule_model, planted_matrix())
    scores = model.decision_function(planted.X)
    is_a = planted.X[:, 0] == code_of(planted, "attr1", "A")
    assert np.allclose(scores[is_a], np.log(6.0))
    assert np.all(scores[~is_a] < 0)
    assert rule_model in model
    assert "attr1 == A" in model.describe()
    assert model.to_dict()["rules"][0]["contingency"] == [[90.0, 10.0], [40.0, 60.0]]


def test_rule_votes(planted, rule_for):
    model = IGSSModel((0.5, 0.5))
    for value in ("A", "B"):
        model.add(RuleModel(rule_for(planted, "attr1", value), planted.feature_to_idx), planted_matrix())
    votes = model.predict_by_rule_vote(planted.X)
    assert np.all(votes.sum(axis=1) == 2)
    assert np.all(votes[:, 1] == 1)
