"""Workflow: a preprocessor (recipe or formula) bundled with a model spec."""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import joblib
import numpy as np
import pandas as pd

from .errors import ModelSpecError
from .formula import Formula
from .models import FittedModel, ModelSpec, fit_model
from .recipes import Recipe, all_nominal_predictors

logger = logging.getLogger(__name__)

PREDICT_TYPES = ("numeric", "class", "prob")


def predict_frame(model: FittedModel, X: pd.DataFrame, type: Optional[str] = None) -> pd.DataFrame:
    """Predictions as a frame aligned with ``X.index``.

    regression -> ``pred``; classification -> ``pred_class`` plus one
    ``pred_<level>`` column per level (``type="class"`` / ``"prob"`` keep
    only one of the two).
    """
    if model.mode == "regression":
        if type not in (None, "numeric"):
            raise ModelSpecError(f"Regression models only predict type='numeric', got {type!r}")
        return pd.DataFrame({"pred": model.predict(X)}, index=X.index)

    if type == "numeric":
        raise ModelSpecError("Classification models predict type='class' or 'prob'")
    probs = model.predict_proba(X)
    probs.columns = [f"pred_{lvl}" for lvl in model.levels]
    codes = probs.to_numpy().argmax(axis=1)
    pred_class = pd.Categorical.from_codes(codes, categories=model.levels)
    out = pd.DataFrame({"pred_class": pred_class}, index=X.index)
    if type == "class":
        return out
    if type == "prob":
        return probs
    return pd.concat([out, probs], axis=1)


class Workflow:
    """
    Связка препроцессора (рецепт или формула) и спецификации модели.

    Методы ``add_*`` / ``update_*`` возвращают новый объект, исходный не
    меняется. Голая формула превращается в рецепт с ``step_dummy`` для
    номинальных предикторов.

    Example:
        >>> wf = Workflow().add_recipe(rec).add_model(rand_forest(trees=200).set_mode("classification"))
        >>> fitted = wf.fit(train, seed=42)
        >>> fitted.predict(test, type="prob")
    """

    def __init__(
        self,
        preprocessor: Union[Recipe, Formula, str, None] = None,
        model: Optional[ModelSpec] = None,
    ):
        self.preprocessor = preprocessor
        self.model = model

    def _copy(self, **changes: Any) -> "Workflow":
        new = copy.copy(self)
        for k, v in changes.items():
            setattr(new, k, v)
        return new

    def add_recipe(self, recipe: Recipe) -> "Workflow":
        if recipe.prepared:
            raise ModelSpecError("Add an unprepared recipe; the workflow preps it on each training set")
        return self._copy(preprocessor=recipe)

    def add_formula(self, formula: Union[Formula, str], data: Optional[pd.DataFrame] = None) -> "Workflow":
        if isinstance(formula, str) and data is not None:
            formula = Formula.parse(formula, data.columns)
        return self._copy(preprocessor=formula)

    def add_model(self, model: ModelSpec) -> "Workflow":
        return self._copy(model=model)

    update_model = add_model

    @property
    def has_recipe(self) -> bool:
        return isinstance(self.preprocessor, Recipe)

    def recipe_for(self, data: pd.DataFrame) -> Recipe:
        """Unprepared recipe for ``data``: the attached one, or a dummy-encoding default for a formula."""
        if self.preprocessor is None:
            raise ModelSpecError("Workflow has no preprocessor; add_recipe() or add_formula() first")
        if isinstance(self.preprocessor, Recipe):
            return self.preprocessor
        return Recipe(self.preprocessor, data).step_dummy(all_nominal_predictors())

    def _require_model(self) -> ModelSpec:
        if self.model is None:
            raise ModelSpecError("Workflow has no model; add_model() first")
        return self.model

    def tunable(self) -> List[str]:
        return self._require_model().tunable()

    def fit(self, data: pd.DataFrame, seed: Optional[int] = None) -> "FittedWorkflow":
        spec = self._require_model()
        spec.check_ready()
        prepped = self.recipe_for(data).prep(data)
        return self.fit_prepped(prepped, prepped.juice(), seed=seed)

    def fit_prepped(self, prepped: Recipe, baked: pd.DataFrame, seed: Optional[int] = None,
                    model: Optional[ModelSpec] = None) -> "FittedWorkflow":
        """Fit on an already prepared recipe and its baked training rows."""
        spec = model or self._require_model()
        outcome = prepped.outcome
        fitted = fit_model(spec, baked[prepped.predictors_], baked[outcome], seed=seed)
        return FittedWorkflow(workflow=self._copy(model=spec), recipe=prepped, model=fitted)

    def __repr__(self) -> str:
        pre = "none" if self.preprocessor is None else (
            f"recipe ({len(self.preprocessor.steps)} steps)" if self.has_recipe else f"formula {self.preprocessor}"
        )
        return f"<Workflow preprocessor={pre} model={self.model!r}>"


@dataclass
class FittedWorkflow:
    """Prepared recipe + fitted model; everything needed to score new rows."""

    workflow: Workflow
    recipe: Recipe
    model: FittedModel

    @property
    def outcome(self) -> str:
        return self.recipe.outcome

    @property
    def mode(self) -> str:
        return self.model.mode

    @property
    def levels(self) -> Optional[List[Any]]:
        return self.model.levels

    def predict(self, new_data: pd.DataFrame, type: Optional[str] = None) -> pd.DataFrame:
        if type is not None and type not in PREDICT_TYPES:
            raise ModelSpecError(f"type must be one of {PREDICT_TYPES}, got {type!r}")
        if type is None:
            type = "numeric" if self.mode == "regression" else "class"
        baked = self.recipe.bake(new_data)
        out = predict_frame(self.model, baked[self.recipe.predictors_], type=type)
        out.index = new_data.index
        return out

    def augment(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """``new_data`` with prediction columns appended (class and probabilities for classifiers)."""
        baked = self.recipe.bake(new_data)
        preds = predict_frame(self.model, baked[self.recipe.predictors_])
        preds.index = new_data.index
        return pd.concat([new_data, preds], axis=1)

    def extract_recipe(self) -> Recipe:
        return self.recipe

    def extract_fit(self) -> FittedModel:
        return self.model

    def extract_spec(self) -> ModelSpec:
        return self.model.spec

    def tidy(self) -> pd.DataFrame:
        return self.model.tidy()

    def params(self) -> Dict[str, Any]:
        return {k: (v.item() if isinstance(v, np.generic) else v) for k, v in self.model.spec.args.items()}

    def save(self, filepath) -> None:
        """Persist the fitted workflow (prepared recipe + model) with joblib."""
        logger.info("Saving fitted workflow to %s", filepath)
        joblib.dump(self, filepath)

    @classmethod
    def load(cls, filepath) -> "FittedWorkflow":
        logger.info("Loading fitted workflow from %s", filepath)
        obj = joblib.load(filepath)
        if not isinstance(obj, cls):
            raise TypeError(f"{filepath} does not contain a FittedWorkflow")
        return obj

    def __repr__(self) -> str:
        return f"<FittedWorkflow {self.model!r} outcome={self.outcome}>"


__all__ = ["Workflow", "FittedWorkflow", "predict_frame", "PREDICT_TYPES"]
