# tidyml/recipes/recipe.py
from __future__ import annotations

import copy
import logging
import math
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ..errors import RecipeError
from ..formula import Formula
from .base import RecipeStep
from .categorical import DummyStep, ImputeModeStep, OtherStep
from .filters import CorrStep, ZeroVarianceStep
from .numerical import ImputeMeanStep, LogStep, NormalizeStep, RangeStep, YeoJohnsonStep
from .selectors import Selection, describe

logger = logging.getLogger(__name__)

STEP_TYPES = {
    "log": LogStep,
    "corr": CorrStep,
    "normalize": NormalizeStep,
    "range": RangeStep,
    "dummy": DummyStep,
    "zv": ZeroVarianceStep,
    "impute_mean": ImputeMeanStep,
    "impute_mode": ImputeModeStep,
    "other": OtherStep,
    "yeojohnson": YeoJohnsonStep,
}


class Recipe:
    """
    Декларативный пайплайн предобработки: формула + упорядоченные шаги.

    Жизненный цикл:
        rec = Recipe("y ~ .", train).step_log("x").step_normalize()
        prepped = rec.prep(train)      # новый объект, параметры только из train
        prepped.bake(test)             # применяет выученные параметры

    ``prep`` не меняет ни исходный рецепт, ни входной DataFrame.
    Результат ``bake``: предикторы после всех шагов, затем исход
    (если он есть в новых данных).
    """

    def __init__(self, formula: Union[Formula, str], data: pd.DataFrame):
        if isinstance(formula, str):
            try:
                formula = Formula.parse(formula, data.columns)
            except ValueError as exc:
                raise RecipeError(str(exc)) from exc
        missing = [c for c in formula.columns if c not in data.columns]
        if missing:
            raise RecipeError(f"Formula columns not found in data: {missing}")
        self.formula = formula
        # zero-row template keeps the dtypes seen at specification time
        self.template = data[formula.columns].iloc[:0].copy()
        self.steps: List[RecipeStep] = []
        self.prepared = False
        self.predictors_: List[str] = []
        self._blueprint: List[RecipeStep] = []
        self._training: Optional[pd.DataFrame] = None

    @property
    def outcome(self) -> str:
        return self.formula.outcome

    # ------------------------------------------------------------------ builders
    def add_step(self, step: RecipeStep) -> "Recipe":
        if self.prepared:
            raise RecipeError("Cannot add steps to a prepared recipe")
        step.id = f"{step.step_type}_{len(self.steps) + 1}"
        self.steps.append(step)
        return self

    def step_log(self, selection: Selection, base: float = math.e, offset: float = 0.0) -> "Recipe":
        return self.add_step(LogStep(selection, base=base, offset=offset))

    def step_corr(self, selection: Selection = None, threshold: float = 0.9, method: str = "pearson") -> "Recipe":
        return self.add_step(CorrStep(selection, threshold=threshold, method=method))

    def step_normalize(self, selection: Selection = None) -> "Recipe":
        return self.add_step(NormalizeStep(selection))

    def step_range(self, selection: Selection = None, min: float = 0.0, max: float = 1.0) -> "Recipe":
        return self.add_step(RangeStep(selection, min=min, max=max))

    def step_dummy(self, selection: Selection = None, one_hot: bool = False) -> "Recipe":
        return self.add_step(DummyStep(selection, one_hot=one_hot))

    def step_zv(self, selection: Selection = None) -> "Recipe":
        return self.add_step(ZeroVarianceStep(selection))

    def step_impute_mean(self, selection: Selection = None) -> "Recipe":
        return self.add_step(ImputeMeanStep(selection))

    def step_impute_mode(self, selection: Selection = None) -> "Recipe":
        return self.add_step(ImputeModeStep(selection))

    def step_other(self, selection: Selection = None, threshold: float = 0.05, other: str = "other") -> "Recipe":
        return self.add_step(OtherStep(selection, threshold=threshold, other=other))

    def step_yeojohnson(self, selection: Selection = None) -> "Recipe":
        return self.add_step(YeoJohnsonStep(selection))

    # ------------------------------------------------------------------ lifecycle
    def prep(self, training: pd.DataFrame, retain: bool = True) -> "Recipe":
        """Estimate every step on ``training`` and return a new prepared recipe."""
        missing = [c for c in self.formula.columns if c not in training.columns]
        if missing:
            raise RecipeError(f"Training data is missing columns: {missing}")
        if training.empty:
            raise RecipeError("Cannot prep a recipe on an empty frame")

        blueprint = self._blueprint if self.prepared else self.steps
        new = copy.copy(self)
        new._blueprint = copy.deepcopy(blueprint)
        new.steps = copy.deepcopy(blueprint)

        df = training[self.formula.columns].copy()
        for step in new.steps:
            step.fit(df, self.outcome)
            df = step.transform(df)
            logger.debug("prep %s -> %d columns", step.id, df.shape[1])

        new.predictors_ = [c for c in df.columns if c != self.outcome]
        new.prepared = True
        new._training = new._order(df) if retain else None
        logger.info("Recipe prepared on %d rows: %d steps, %d predictors", len(df), len(new.steps), len(new.predictors_))
        return new

    def bake(self, new_data: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Apply prepared steps to ``new_data``; ``None`` returns the retained training set."""
        if not self.prepared:
            raise RecipeError("Recipe has not been prepared; call prep() first")
        if new_data is None:
            return self.juice()
        missing = [c for c in self.formula.predictors if c not in new_data.columns]
        if missing:
            raise RecipeError(f"New data is missing predictor columns: {missing}")
        cols = [c for c in self.formula.columns if c in new_data.columns]
        df = new_data[cols].copy()
        for step in self.steps:
            df = step.transform(df)
        return self._order(df)

    def juice(self) -> pd.DataFrame:
        if not self.prepared:
            raise RecipeError("Recipe has not been prepared; call prep() first")
        if self._training is None:
            raise RecipeError("Training data was not retained; prep(..., retain=True) to use juice()")
        return self._training.copy()

    def _order(self, df: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in self.predictors_ if c not in df.columns]
        if missing:
            raise RecipeError(f"Baked frame lacks prepared predictors: {missing}")
        cols = list(self.predictors_)
        if self.outcome in df.columns:
            cols.append(self.outcome)
        return df[cols]

    # ------------------------------------------------------------------ inspection
    def tidy(self, number: Optional[int] = None) -> pd.DataFrame:
        """One row per step, or the learned parameters of step ``number`` (1-based)."""
        if number is None:
            return pd.DataFrame(
                [
                    {
                        "number": i,
                        "type": step.step_type,
                        "id": step.id,
                        "columns": ", ".join(step.columns_) if step.trained else describe(step.selection),
                        "trained": step.trained,
                    }
                    for i, step in enumerate(self.steps, start=1)
                ],
                columns=["number", "type", "id", "columns", "trained"],
            )
        if not 1 <= number <= len(self.steps):
            raise RecipeError(f"Step number {number} out of range 1..{len(self.steps)}")
        return _params_frame(self.steps[number - 1])

    def summary(self) -> pd.DataFrame:
        """Variables of the original data with their type and role."""
        return pd.DataFrame(
            {
                "variable": self.formula.columns,
                "type": [str(self.template[c].dtype) for c in self.formula.columns],
                "role": ["predictor"] * len(self.formula.predictors) + ["outcome"],
            }
        )

    def __repr__(self) -> str:
        state = "prepared" if self.prepared else "not prepared"
        lines = [f"Recipe: {self.formula} ({state})"]
        lines += [f"  {i}. {step!r}" for i, step in enumerate(self.steps, start=1)]
        return "\n".join(lines)


def _params_frame(step: RecipeStep) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for key, value in step.params().items():
        if isinstance(value, dict):
            rows += [{"terms": term, "statistic": key, "value": v} for term, v in value.items()]
        elif isinstance(value, list):
            rows += [{"terms": term, "statistic": key, "value": True} for term in value]
        else:
            rows.append({"terms": None, "statistic": key, "value": value})
    out = pd.DataFrame(rows, columns=["terms", "statistic", "value"])
    out["id"] = step.id
    return out


def recipe_from_config(formula: Union[Formula, str], data: pd.DataFrame, steps: List[Dict[str, Any]]) -> Recipe:
    """Build a recipe from ``[{"step": "normalize", "columns": ..., **kwargs}, ...]``."""
    rec = Recipe(formula, data)
    for entry in steps or []:
        entry = dict(entry)
        name = entry.pop("step", None)
        if name not in STEP_TYPES:
            raise RecipeError(f"Unknown recipe step: {name!r} (known: {sorted(STEP_TYPES)})")
        selection = entry.pop("columns", None)
        if selection is None and name == "log":
            raise RecipeError("step 'log' needs explicit columns")
        rec.add_step(STEP_TYPES[name](selection, **entry))
    return rec


__all__ = ["Recipe", "STEP_TYPES", "recipe_from_config"]
