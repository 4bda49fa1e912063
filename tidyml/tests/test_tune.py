import numpy as np
import pandas as pd
import pytest

from tidyml.errors import TuneError
from tidyml.models import decision_tree, linear_reg, rand_forest, tune
from tidyml.splits import initial_split, vfold_cv
from tidyml.tune import (
    ControlGrid,
    config_ids,
    finalize_workflow,
    fit_resamples,
    grid_latin_hypercube,
    grid_random,
    grid_regular,
    last_fit,
    make_grid,
    parameters,
    tune_grid,
)
from tidyml.workflow import Workflow


def _data(n=90, seed=0):
    rng = np.random.RandomState(seed)
    df = pd.DataFrame({"x1": rng.normal(size=n), "x2": rng.normal(size=n), "x3": rng.normal(size=n)})
    df["y"] = 2 * df["x1"] - df["x2"] + rng.normal(scale=0.5, size=n)
    return df


def _lasso_workflow(df):
    return Workflow().add_formula("y ~ .", df).add_model(linear_reg(penalty=tune(), mixture=1))


def test_config_ids():
    assert config_ids(1) == ["Preprocessor1_Model1"]
    assert config_ids(3) == ["Preprocessor1_Model01", "Preprocessor1_Model02", "Preprocessor1_Model03"]
    assert config_ids(120)[0] == "Preprocessor1_Model001"


def test_grid_builders():
    params = parameters(rand_forest(min_n=tune(), trees=tune(), mode="regression"))
    regular = grid_regular(params, levels=3)
    assert len(regular) == 9
    assert list(regular.columns) == ["trees", "min_n"]
    assert sorted(regular["min_n"].unique().tolist()) == [2, 21, 40]

    lhs = grid_latin_hypercube(params, size=6, seed=3)
    assert lhs.equals(grid_latin_hypercube(params, size=6, seed=3))
    assert lhs["min_n"].between(2, 40).all()
    assert lhs["trees"].between(1, 2000).all()

    rnd = grid_random(params, size=4, seed=1)
    assert len(rnd) <= 4
    assert rnd["min_n"].dtype.kind == "i"


def test_log_scale_parameter_levels():
    params = parameters(linear_reg(penalty=tune()), ranges={"penalty": [-3, -1]})
    values = grid_regular(params, levels=3)["penalty"].tolist()
    assert values == pytest.approx([0.001, 0.01, 0.1])


def test_make_grid_validation():
    params = parameters(linear_reg(penalty=tune()))
    with pytest.raises(TuneError):
        make_grid(pd.DataFrame({"mixture": [0.1]}), params)
    with pytest.raises(TuneError):
        make_grid(pd.DataFrame({"penalty": []}), params)
    with pytest.raises(TuneError):
        parameters(linear_reg(penalty=tune()), ranges={"mixture": [0, 1]})


def test_tune_grid_summary_shape():
    df = _data()
    folds = vfold_cv(df, v=3, seed=1)
    grid = pd.DataFrame({"penalty": [0.001, 0.01, 0.1, 1.0]})
    res = tune_grid(_lasso_workflow(df), folds, grid=grid, metrics=["rmse", "rsq"])

    raw = res.collect_metrics(summarize=False)
    assert len(raw) == 4 * 3 * 2
    assert list(raw.columns) == ["id", "config", "penalty", "metric", "estimator", "estimate"]

    summary = res.collect_metrics()
    assert list(summary.columns) == [
        "config", "penalty", "metric", "estimator", "mean", "min", "max", "std", "n", "std_err",
    ]
    assert len(summary) == 8
    assert (summary["n"] == 3).all()
    assert summary["config"].iloc[0] == "Preprocessor1_Model01"
    assert summary["metric"].tolist()[:2] == ["rmse", "rsq"]

    best = res.show_best("rmse", n=4)
    assert best["mean"].is_monotonic_increasing


def test_tune_grid_is_deterministic():
    df = _data()
    folds = vfold_cv(df, v=3, seed=4)
    wf = Workflow().add_formula("y ~ .", df).add_model(rand_forest(mtry=tune(), trees=20, mode="regression"))
    control = ControlGrid(seed=9)
    a = tune_grid(wf, folds, grid={"type": "regular", "levels": 2}, control=control)
    b = tune_grid(wf, folds, grid={"type": "regular", "levels": 2}, control=control)
    pd.testing.assert_frame_equal(a.collect_metrics(), b.collect_metrics())
    # mtry is finalized from the three predictors
    assert sorted(a.grid["mtry"].tolist()) == [1, 3]


def test_parallel_matches_sequential():
    df = _data()
    folds = vfold_cv(df, v=3, seed=2)
    grid = pd.DataFrame({"penalty": [0.01, 0.1]})
    seq = tune_grid(_lasso_workflow(df), folds, grid=grid)
    par = tune_grid(_lasso_workflow(df), folds, grid=grid, control=ControlGrid(n_jobs=2))
    pd.testing.assert_frame_equal(seq.collect_metrics(summarize=False), par.collect_metrics(summarize=False))


def test_select_best_ties_go_to_first_candidate():
    df = _data()
    folds = vfold_cv(df, v=3, seed=0)
    # depth-1 trees on 60 analysis rows split identically for both min_n values
    wf = Workflow().add_formula("y ~ .", df).add_model(decision_tree(min_n=tune(), tree_depth=1, mode="regression"))
    res = tune_grid(wf, folds, grid=[{"min_n": 3}, {"min_n": 2}], metrics=["rmse"], control=ControlGrid(seed=0))
    summary = res.collect_metrics()
    assert summary["mean"].iloc[0] == summary["mean"].iloc[1]
    best = res.select_best("rmse")
    assert best == {"min_n": 3, "config": "Preprocessor1_Model01"}


def test_select_by_one_std_err_prefers_simpler_model():
    df = _data()
    folds = vfold_cv(df, v=5, seed=3)
    grid = pd.DataFrame({"penalty": [0.0001, 0.001, 0.01, 0.05, 0.1, 0.5]})
    res = tune_grid(_lasso_workflow(df), folds, grid=grid, metrics=["rmse"])
    best = res.select_best("rmse")
    simple = res.select_by_one_std_err("rmse", "-penalty")
    assert simple["penalty"] >= best["penalty"]

    summary = res.collect_metrics().set_index("config")
    top = summary.loc[best["config"]]
    assert summary.loc[simple["config"], "mean"] <= top["mean"] + top["std_err"]
    with pytest.raises(TuneError):
        res.select_by_one_std_err("rmse")
    with pytest.raises(TuneError):
        res.select_by_one_std_err("rmse", "mixture")
    with pytest.raises(TuneError):
        res.select_best("accuracy")


def test_saved_predictions():
    df = _data(60)
    folds = vfold_cv(df, v=3, seed=0)
    grid = pd.DataFrame({"penalty": [0.01, 0.1]})
    res = tune_grid(_lasso_workflow(df), folds, grid=grid, control=ControlGrid(save_pred=True))
    preds = res.collect_predictions()
    assert len(preds) == 60 * 2
    assert list(preds.columns) == ["id", "row", "pred", "y", "config", "penalty"]
    first = preds[preds["config"] == "Preprocessor1_Model01"]
    assert sorted(first["row"].tolist()) == list(range(1, 61))

    no_preds = tune_grid(_lasso_workflow(df), folds, grid=grid)
    with pytest.raises(TuneError):
        no_preds.collect_predictions()


def test_fit_resamples_and_marker_checks():
    df = _data()
    folds = vfold_cv(df, v=3, seed=0)
    wf = Workflow().add_formula("y ~ x1 + x2", df).add_model(linear_reg())
    res = fit_resamples(wf, folds)
    assert res.param_names == []
    assert res.grid["config"].tolist() == ["Preprocessor1_Model1"]
    assert res.collect_metrics()["metric"].tolist() == ["rmse", "rsq"]
    with pytest.raises(TuneError):
        tune_grid(wf, folds)
    with pytest.raises(TuneError):
        fit_resamples(_lasso_workflow(df), folds)


def test_finalize_and_last_fit():
    df = _data(120)
    split = initial_split(df, prop=0.75, seed=5)
    folds = vfold_cv(split.training(), v=3, seed=5)
    wf = _lasso_workflow(df)
    res = tune_grid(wf, folds, grid=pd.DataFrame({"penalty": [0.001, 0.1]}))
    with pytest.raises(TuneError):
        last_fit(wf, split)

    final_wf = finalize_workflow(wf, res.select_best("rmse"))
    assert final_wf.model.tunable() == []
    assert wf.model.tunable() == ["penalty"]

    final = last_fit(final_wf, split, metrics=res.metric_set)
    metrics = final.collect_metrics()
    assert metrics["metric"].tolist() == ["rmse", "rsq"]
    assert (metrics["config"] == "Preprocessor1_Model1").all()
    preds = final.collect_predictions()
    assert len(preds) == 30
    assert (preds["id"] == "train/test split").all()
    assert preds["row"].tolist() == (split.out_id + 1).tolist()
    assert final.extract_fit().n_train == 90
