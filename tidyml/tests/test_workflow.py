from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from shared.io import read_dataset
from tidyml.errors import ModelSpecError
from tidyml.models import linear_reg, logistic_reg, rand_forest
from tidyml.recipes import Recipe
from tidyml.workflow import FittedWorkflow, Workflow

FIXTURES = Path(__file__).parent / "fixtures"


def _cells():
    return read_dataset(FIXTURES / "tiny_cells.csv", categorical=["plate"], levels={"class": ["PS", "WS"]})


def _housing():
    return read_dataset(FIXTURES / "tiny_housing.csv", categorical=["neighborhood"])


def test_builders_return_new_workflows():
    df = _housing()
    base = Workflow()
    with_formula = base.add_formula("price ~ sqft + age", df)
    with_model = with_formula.add_model(linear_reg())
    assert base.preprocessor is None
    assert with_formula.model is None
    assert with_model.model.family == "linear_reg"
    assert with_model.update_model(linear_reg(penalty=0.1)).model.args == {"penalty": 0.1}
    assert with_model.model.args == {}


def test_prepared_recipe_is_rejected():
    df = _housing()
    prepped = Recipe("price ~ sqft", df).step_normalize().prep(df)
    with pytest.raises(ModelSpecError):
        Workflow().add_recipe(prepped)


def test_missing_parts_raise():
    df = _housing()
    with pytest.raises(ModelSpecError):
        Workflow().add_model(linear_reg()).fit(df)
    with pytest.raises(ModelSpecError):
        Workflow().add_formula("price ~ sqft", df).fit(df)


def test_formula_workflow_dummy_encodes_nominals():
    df = _housing()
    fitted = Workflow().add_formula("price ~ sqft + neighborhood", df).add_model(linear_reg()).fit(df)
    terms = fitted.tidy()["term"].tolist()
    assert terms == ["(Intercept)", "sqft", "neighborhood_north", "neighborhood_south", "neighborhood_west"]


def test_regression_predict_and_augment():
    df = _housing()
    train, test = df.iloc[:90], df.iloc[90:]
    rec = Recipe("price ~ sqft + bedrooms + age + neighborhood", train).step_dummy().step_normalize()
    fitted = Workflow().add_recipe(rec).add_model(linear_reg()).fit(train)

    pred = fitted.predict(test)
    assert list(pred.columns) == ["pred"]
    assert pred.index.equals(test.index)
    with pytest.raises(ModelSpecError):
        fitted.predict(test, type="prob")

    aug = fitted.augment(test)
    assert list(aug.columns) == [*test.columns, "pred"]
    assert np.corrcoef(aug["price"], aug["pred"])[0, 1] > 0.7


def test_classification_prediction_types():
    df = _cells()
    spec = rand_forest(trees=50, mode="classification")
    fitted = Workflow().add_formula("class ~ . - cell_id", df).add_model(spec).fit(df, seed=1)
    assert fitted.levels == ["PS", "WS"]

    classes = fitted.predict(df)
    assert list(classes.columns) == ["pred_class"]
    assert list(classes["pred_class"].cat.categories) == ["PS", "WS"]

    probs = fitted.predict(df, type="prob")
    assert list(probs.columns) == ["pred_PS", "pred_WS"]
    assert np.allclose(probs.sum(axis=1), 1.0)

    aug = fitted.augment(df.head(5))
    assert {"pred_class", "pred_PS", "pred_WS"} <= set(aug.columns)
    with pytest.raises(ModelSpecError):
        fitted.predict(df, type="numeric")
    with pytest.raises(ModelSpecError):
        fitted.predict(df, type="raw")


def test_extractors_and_params():
    df = _cells()
    spec = logistic_reg(penalty=0.1, mixture=0)
    fitted = Workflow().add_formula("class ~ area + intensity + fiber_width", df).add_model(spec).fit(df)
    assert fitted.extract_spec().args == {"penalty": 0.1, "mixture": 0}
    assert fitted.params() == {"penalty": 0.1, "mixture": 0}
    assert fitted.extract_recipe().prepared
    assert fitted.extract_fit().family == "logistic_reg"
    assert fitted.tidy()["term"].iloc[0] == "(Intercept)"


def test_save_and_load_roundtrip(tmp_path):
    df = _housing()
    fitted = Workflow().add_formula("price ~ sqft + neighborhood", df).add_model(linear_reg()).fit(df)
    path = tmp_path / "model.joblib"
    fitted.save(path)
    loaded = FittedWorkflow.load(path)
    pd.testing.assert_frame_equal(loaded.predict(df), fitted.predict(df))
