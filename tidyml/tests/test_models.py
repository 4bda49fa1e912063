import warnings
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from shared.io import read_dataset
from tidyml.errors import ModelSpecError
from tidyml.models import (
    boost_tree,
    decision_tree,
    fit_model,
    linear_reg,
    logistic_reg,
    rand_forest,
    spec_from_config,
    tune,
)
from tidyml.recipes import Recipe
from tidyml.splits import initial_split, vfold_cv
from tidyml.tune import finalize_workflow, last_fit, tune_grid
from tidyml.workflow import Workflow

FIXTURES = Path(__file__).parent / "fixtures"
BOOSTERS = ["xgboost", "lightgbm", "catboost"]


def _regression(n=80, seed=0):
    rng = np.random.RandomState(seed)
    X = pd.DataFrame({"a": rng.normal(size=n), "b": rng.normal(size=n)})
    y = pd.Series(1.0 + 2.0 * X["a"] - 0.5 * X["b"] + rng.normal(scale=0.01, size=n), name="y")
    return X, y


def _classification(n=120, seed=0):
    rng = np.random.RandomState(seed)
    X = pd.DataFrame({"a": rng.normal(size=n), "b": rng.normal(size=n)})
    labels = np.where(X["a"] + 0.3 * rng.normal(size=n) > 0, "yes", "no")
    y = pd.Series(pd.Categorical(labels, categories=["yes", "no"]), name="cls")
    return X, y


def _multiclass(n=240, seed=0):
    rng = np.random.RandomState(seed)
    X = pd.DataFrame({"a": rng.normal(size=n), "b": rng.normal(size=n), "c": rng.normal(size=n)})
    labels = np.where(X["a"] > 0.5, "hi", np.where(X["a"] < -0.5, "lo", "mid"))
    y = pd.Series(pd.Categorical(labels, categories=["lo", "mid", "hi"]), name="band")
    return X, y


def test_spec_defaults_and_validation():
    spec = linear_reg()
    assert spec.mode == "regression"
    assert spec.engine == "sklearn"
    assert boost_tree().engine == "xgboost"
    assert rand_forest().mode == "unknown"
    with pytest.raises(ModelSpecError):
        rand_forest().check_ready()
    with pytest.raises(ModelSpecError):
        linear_reg(mode="classification")
    with pytest.raises(ModelSpecError):
        rand_forest(engine="ranger")
    with pytest.raises(ModelSpecError):
        rand_forest().update(depth=3)


def test_spec_is_immutable():
    spec = rand_forest(trees=100)
    clf = spec.set_mode("classification")
    assert spec.mode == "unknown"
    assert clf.mode == "classification"
    more = clf.update(trees=300)
    assert clf.args["trees"] == 100
    assert more.args["trees"] == 300
    shallow = clf.set_engine("sklearn", max_depth=4)
    assert shallow.engine_args == {"max_depth": 4}
    assert clf.engine_args == {}


def test_tune_markers():
    spec = rand_forest(mtry=tune(), min_n=tune("leaf"), trees=50, mode="classification")
    assert spec.tunable() == ["mtry", "leaf"]
    assert spec.tune_args() == {"mtry": "mtry", "leaf": "min_n"}
    with pytest.raises(ModelSpecError):
        spec.check_ready()


def test_spec_from_config():
    spec = spec_from_config(
        {"family": "boost_tree", "mode": "regression", "engine": "sklearn", "args": {"trees": 20, "learn_rate": "tune"}}
    )
    assert spec.engine == "sklearn"
    assert spec.tunable() == ["learn_rate"]
    assert spec_from_config({"family": "logistic_reg"}).mode == "classification"


def test_linear_reg_recovers_coefficients():
    X, y = _regression()
    fitted = fit_model(linear_reg(), X, y)
    coefs = fitted.tidy().set_index("term")["estimate"]
    assert coefs["(Intercept)"] == pytest.approx(1.0, abs=0.01)
    assert coefs["a"] == pytest.approx(2.0, abs=0.01)
    assert coefs["b"] == pytest.approx(-0.5, abs=0.01)
    assert fitted.predict(X).shape == (len(X),)


def test_penalized_linear_reg_shrinks():
    X, y = _regression()
    ols = fit_model(linear_reg(), X, y).tidy().set_index("term")["estimate"]
    lasso = fit_model(linear_reg(penalty=0.5, mixture=1), X, y).tidy().set_index("term")["estimate"]
    assert abs(lasso["a"]) < abs(ols["a"])


def test_logistic_probabilities_follow_levels():
    X, y = _classification()
    fitted = fit_model(logistic_reg(), X, y)
    probs = fitted.predict_proba(X)
    assert list(probs.columns) == ["yes", "no"]
    assert np.allclose(probs.sum(axis=1), 1.0)
    pred = fitted.predict(X)
    assert set(pred) <= {"yes", "no"}
    assert (pred == y.to_numpy()).mean() > 0.8


def test_unobserved_level_gets_zero_probability():
    X, y = _classification()
    y3 = pd.Series(pd.Categorical(y.astype(str), categories=["yes", "no", "maybe"]), name="cls")
    fitted = fit_model(decision_tree(mode="classification", tree_depth=2), X, y3, seed=0)
    probs = fitted.predict_proba(X)
    assert list(probs.columns) == ["yes", "no", "maybe"]
    assert (probs["maybe"] == 0).all()


def test_forest_is_deterministic_with_seed():
    X, y = _classification()
    spec = rand_forest(trees=25, mtry=1, mode="classification")
    a = fit_model(spec, X, y, seed=5).predict_proba(X)
    b = fit_model(spec, X, y, seed=5).predict_proba(X)
    pd.testing.assert_frame_equal(a, b)
    importance = fit_model(spec, X, y, seed=5).tidy()
    assert importance["term"].iloc[0] == "a"


def test_sklearn_boosting_regression():
    X, y = _regression()
    fitted = fit_model(boost_tree(trees=50, tree_depth=2, mode="regression", engine="sklearn"), X, y, seed=0)
    resid = y.to_numpy() - fitted.predict(X)
    assert np.sqrt(np.mean(resid ** 2)) < y.std()


def test_fit_model_input_checks():
    X, y = _regression()
    with pytest.raises(ModelSpecError):
        fit_model(linear_reg(), X.assign(c=["x"] * len(X)), y)
    Xc, yc = _classification()
    with pytest.raises(ModelSpecError):
        fit_model(linear_reg(), Xc, yc)
    with pytest.raises(ModelSpecError):
        fit_model(logistic_reg(), X, y)
    with pytest.raises(ModelSpecError):
        fit_model(rand_forest(mtry=tune(), mode="regression"), X, y)


def test_unobserved_middle_level_with_xgboost():
    X, y = _classification()
    # "maybe" sits between the observed levels, so the observed codes are 0 and 2
    gap = pd.Series(pd.Categorical(y.astype(str), categories=["yes", "maybe", "no"]), name="cls")
    spec = boost_tree(trees=10, mode="classification", engine="xgboost")
    fitted = fit_model(spec, X, gap, seed=0)
    assert fitted.classes == [0, 2]
    probs = fitted.predict_proba(X)
    assert list(probs.columns) == ["yes", "maybe", "no"]
    assert (probs["maybe"] == 0).all()
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert set(fitted.predict(X)) <= {"yes", "no"}


def test_logistic_reg_builds_without_deprecated_penalty():
    X, y = _classification()
    with warnings.catch_warnings():
        warnings.filterwarnings("error", category=FutureWarning, module="sklearn")
        for spec in (logistic_reg(), logistic_reg(penalty=0.1, mixture=0), logistic_reg(penalty=0.05, mixture=1)):
            probs = fit_model(spec, X, y, seed=0).predict_proba(X)
            assert np.allclose(probs.sum(axis=1), 1.0)


@pytest.mark.parametrize("engine", BOOSTERS)
def test_boosting_engine_regression(engine):
    X, y = _regression(n=200)
    spec = boost_tree(
        trees=60, tree_depth=3, learn_rate=0.2, mtry=2, sample_size=0.8, mode="regression", engine=engine
    )
    fitted = fit_model(spec, X, y, seed=0)
    pred = fitted.predict(X)
    assert pred.shape == (200,)
    assert np.sqrt(np.mean((y.to_numpy() - pred) ** 2)) < y.std()
    assert np.allclose(pred, fit_model(spec, X, y, seed=0).predict(X))
    assert set(fitted.tidy()["term"]) == {"a", "b"}


@pytest.mark.parametrize("engine", BOOSTERS)
def test_boosting_engine_binary_classification(engine):
    X, y = _classification(n=200)
    spec = boost_tree(trees=50, tree_depth=3, mtry=2, sample_size=0.8, mode="classification", engine=engine)
    fitted = fit_model(spec, X, y, seed=0)
    probs = fitted.predict_proba(X)
    assert list(probs.columns) == ["yes", "no"]
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert (fitted.predict(X) == y.to_numpy()).mean() > 0.8


@pytest.mark.parametrize("engine", BOOSTERS)
def test_boosting_engine_multiclass(engine):
    X, y = _multiclass()
    fitted = fit_model(boost_tree(trees=50, tree_depth=3, mode="classification", engine=engine), X, y, seed=0)
    probs = fitted.predict_proba(X)
    assert list(probs.columns) == ["lo", "mid", "hi"]
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert (fitted.predict(X) == y.to_numpy()).mean() > 0.8


def test_tune_grid_with_xgboost_engine():
    df = read_dataset(FIXTURES / "tiny_housing.csv", categorical=["neighborhood"])
    split = initial_split(df, prop=0.75, seed=0)
    train = split.training()
    folds = vfold_cv(train, v=3, seed=0)
    rec = Recipe("price ~ sqft + bedrooms + age + neighborhood", train).step_dummy(one_hot=True)
    spec = boost_tree(trees=30, tree_depth=tune(), learn_rate=tune(), mode="regression")
    wf = Workflow().add_recipe(rec).add_model(spec)

    res = tune_grid(
        wf, folds, grid={"type": "latin_hypercube", "size": 3, "seed": 1}, metrics=["rmse", "rsq"],
        ranges={"learn_rate": [-2, -0.5]},
    )
    assert len(res.grid) == 3
    assert len(res.collect_metrics()) == 3 * 2
    best = res.select_best("rmse")
    assert set(best) == {"tree_depth", "learn_rate", "config"}
    assert 10 ** -2 <= best["learn_rate"] <= 10 ** -0.5

    final = last_fit(finalize_workflow(wf, best), split, metrics=res.metric_set)
    assert final.extract_fit().engine == "xgboost"
    assert final.collect_metrics()["metric"].tolist() == ["rmse", "rsq"]
