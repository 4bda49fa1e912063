import numpy as np
import pandas as pd
import pytest

from tidyml.errors import TuneError
from tidyml.models import decision_tree, linear_reg, rand_forest, tune
from tidyml.splits import vfold_cv
from tidyml.tune import ControlGrid
from tidyml.workflow import Workflow
from tidyml.workflow_set import workflow_map


def _data(n=80, seed=1):
    rng = np.random.RandomState(seed)
    df = pd.DataFrame({"a": rng.normal(size=n), "b": rng.normal(size=n)})
    df["y"] = 3 * df["a"] + 0.5 * df["b"] + rng.normal(scale=0.3, size=n)
    return df


def _workflows(df):
    return {
        "lm": Workflow().add_formula("y ~ .", df).add_model(linear_reg()),
        "cart": Workflow().add_formula("y ~ .", df).add_model(
            decision_tree(tree_depth=tune(), mode="regression")
        ),
    }


def test_workflow_map_tunes_or_resamples():
    df = _data()
    folds = vfold_cv(df, v=4, seed=0)
    res = workflow_map(_workflows(df), folds, grid=pd.DataFrame({"tree_depth": [1, 3]}), control=ControlGrid(seed=0))
    assert len(res) == 2
    assert res["lm"].param_names == []
    assert res["cart"].param_names == ["tree_depth"]

    metrics = res.collect_metrics()
    assert metrics["wflow_id"].unique().tolist() == ["lm", "cart"]
    with pytest.raises(KeyError):
        res["svm"]


def test_rank_results_best_first():
    df = _data()
    folds = vfold_cv(df, v=4, seed=0)
    res = workflow_map(_workflows(df), folds, grid=pd.DataFrame({"tree_depth": [1, 3]}), metrics=["rmse", "rsq"])
    ranked = res.rank_results("rmse")
    assert ranked["rank"].tolist() == [1, 2]
    assert ranked["wflow_id"].iloc[0] == "lm"
    assert ranked["mean"].is_monotonic_increasing

    everything = res.rank_results("rmse", select_best=False)
    assert len(everything) == 3
    assert set(everything["model"]) == {"linear_reg", "decision_tree"}


def test_workflow_map_rejects_mixed_modes():
    df = _data()
    df["cls"] = pd.Categorical(np.where(df["y"] > 0, "hi", "lo"))
    folds = vfold_cv(df, v=3, seed=0)
    workflows = {
        "lm": Workflow().add_formula("y ~ a + b", df).add_model(linear_reg()),
        "rf": Workflow().add_formula("cls ~ a + b", df).add_model(rand_forest(mode="classification")),
    }
    with pytest.raises(TuneError):
        workflow_map(workflows, folds)
    with pytest.raises(TuneError):
        workflow_map({}, folds)
