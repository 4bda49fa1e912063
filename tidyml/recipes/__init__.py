from .base import RecipeStep
from .categorical import DummyStep, ImputeModeStep, OtherStep
from .filters import CorrStep, ZeroVarianceStep
from .numerical import ImputeMeanStep, LogStep, NormalizeStep, RangeStep, YeoJohnsonStep
from .recipe import STEP_TYPES, Recipe, recipe_from_config
from .selectors import (
    Selector,
    all_nominal_predictors,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
)

__all__ = [
    "Recipe",
    "RecipeStep",
    "recipe_from_config",
    "STEP_TYPES",
    "Selector",
    "all_predictors",
    "all_numeric_predictors",
    "all_nominal_predictors",
    "all_outcomes",
    "LogStep",
    "NormalizeStep",
    "RangeStep",
    "YeoJohnsonStep",
    "ImputeMeanStep",
    "ImputeModeStep",
    "DummyStep",
    "OtherStep",
    "CorrStep",
    "ZeroVarianceStep",
]
