import numpy as np
import pandas as pd
import pytest

from igss.Datasets_loader import ExampleSet, FeatureEncoder, load_dataset
from igss.errors import ConfigurationError
from igss.IGSSClassifier import IGSSClassifier


def test_classifier_on_raw_strings(planted_raw):
    X, y = planted_raw
    labels = np.where(y == 1, "yes", "no")
    clf = IGSSClassifier(epsilon=0.05, iterations=1).fit(X, labels, feature_names=["attr1", "attr2", "attr3", "attr4"])
    assert list(clf.classes_) == ["no", "yes"]
    assert clf.rules() == ["Class 1: attr1 == A"]
    pred = clf.predict(X)
    assert set(pred) <= {"no", "yes"}
    assert np.all(pred[X[:, 0] == "A"] == "yes")
    assert clf.predict_proba(X).shape == (len(X), 2)
    scores = clf.evaluate(X, labels)
    assert set(scores) == {"Accuracy", "F1", "Precision", "Recall"}
    assert scores["Accuracy"] == pytest.approx(0.75)


def test_classifier_pos_label(planted_raw):
    X, y = planted_raw
    labels = np.where(y == 1, "a", "b")
    clf = IGSSClassifier(epsilon=0.05, iterations=1, pos_label="a").fit(X, labels)
    assert list(clf.classes_) == ["b", "a"]
    assert clf.rules() == ["Class 1: attr1 == A"]


def test_classifier_accepts_dataframe(planted_raw):
    X, y = planted_raw
    df = pd.DataFrame(X, columns=["color", "b", "c", "d"])
    clf = IGSSClassifier(epsilon=0.05, iterations=1).fit(df, y)
    assert clf.rules() == ["Class 1: color == A"]
    assert clf.predict(df.iloc[:5]).shape == (5,)


def test_classifier_needs_two_classes(planted_raw):
    X, _ = planted_raw
    with pytest.raises(ConfigurationError):
        IGSSClassifier().fit(X, np.arange(len(X)) % 3)


def test_encoder_bins_numeric_columns_and_maps_unknowns():
    df = pd.DataFrame({"num": np.arange(100, dtype=float), "cat": ["x", "y"] * 50})
    enc = FeatureEncoder(breaks=4, cat_threshold=20)
    codes = enc.fit_transform(df)
    assert set(np.unique(codes[:, 0])) == {0.0, 1.0, 2.0, 3.0}
    assert enc.value_decoders["cat"] == {0: "x", 1: "y"}
    unseen = enc.transform(pd.DataFrame({"num": [np.nan, 1000.0], "cat": ["z", "y"]}))
    assert np.isnan(unseen[0, 0]) and unseen[1, 0] == 3.0
    assert np.isnan(unseen[0, 1]) and unseen[1, 1] == 1.0


def test_example_set_rejects_non_binary_labels():
    with pytest.raises(ConfigurationError):
        ExampleSet(np.zeros((3, 1)), [0, 1, 2])


def test_load_dataset_detects_label_and_drops_ids(tmp_path):
    rng = np.random.default_rng(0)
    df = pd.DataFrame({
        "id": np.arange(60),
        "age": rng.integers(18, 90, size=60),
        "color": rng.choice(["red", "green"], size=60),
        "class": rng.choice(["bad", "good"], size=60),
    })
    path = tmp_path / "toy.csv"
    df.to_csv(path, index=False)
    es = load_dataset(path)
    assert es.feature_names == ["age", "color"]
    assert es.classes == ("bad", "good")
    assert np.array_equal(es.y, (df["class"] == "good").to_numpy(dtype=int))
    assert len(es.value_decoders["age"]) <= 4


def test_load_dataset_with_explicit_positive(tmp_path):
    df = pd.DataFrame({"f": ["a", "b", "a", "c"] * 5, "outcome": ["x", "y", "z", "x"] * 5})
    path = tmp_path / "multi.csv"
    df.to_csv(path, index=False)
    es = load_dataset(path, label="outcome", positive="x")
    assert es.classes == ("not x", "x")
    assert es.y.sum() == 10
    with pytest.raises(ConfigurationError):
        load_dataset(path, label="outcome")
