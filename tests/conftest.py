import numpy as np
import pytest

from igss.Datasets_loader import ExampleSet
from igss.GSSRule import RuleSpace

FEATURES = ["attr1", "attr2", "attr3", "attr4"]


def planted_arrays(seed=0):
    # 100 positives / 100 negatives; attr1 = A holds for 60 positives and 10 negatives.
    # attr2..attr4 are A/B exactly half of the time within each class (shuffled).
    rng = np.random.default_rng(seed)
    y = np.array([1] * 100 + [0] * 100)
    cols = [np.array(["A"] * 60 + ["B"] * 40 + ["A"] * 10 + ["B"] * 90)]
    for _ in range(3):
        pos = np.array(["A"] * 50 + ["B"] * 50)
        neg = np.array(["A"] * 50 + ["B"] * 50)
        rng.shuffle(pos)
        rng.shuffle(neg)
        cols.append(np.concatenate([pos, neg]))
    return np.column_stack(cols), y


@pytest.fixture
def planted():
    X, y = planted_arrays(seed=0)
    return ExampleSet.from_arrays(X, y, FEATURES)


@pytest.fixture
def held_out():
    X, y = planted_arrays(seed=1)
    return ExampleSet.from_arrays(X, y, FEATURES)


@pytest.fixture
def planted_raw():
    return planted_arrays(seed=0)


@pytest.fixture
def code_of():
    def _code_of(es, feature, value):
        return next(code for code, v in es.value_decoders[feature].items() if v == value)
    return _code_of


@pytest.fixture
def rule_for(code_of):
    def _rule_for(es, feature, value, prediction=1):
        space = RuleSpace.from_example_set(es, generate_all=True)
        return space.make_rule(((feature, "==", code_of(es, feature, value)),), prediction)
    return _rule_for


@pytest.fixture
def twins():
    # "left" and "right" are the same column, so their rules always tie
    X, y = planted_arrays(seed=0)
    X = np.column_stack([X[:, 0], X[:, 1], X[:, 1]])
    return ExampleSet.from_arrays(X, y, ["attr1", "left", "right"])
