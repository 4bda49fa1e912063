"""Split -> specify -> tune -> select workflows over scikit-learn and gradient boosting engines."""
from importlib import import_module

from .errors import (
    FitError,
    MetricError,
    ModelSpecError,
    RecipeError,
    SplitError,
    TuneError,
    WorkflowError,
)
from .formula import Formula
from .groups import GroupFit, collect_coefficients, fit_by_group
from .metrics import conf_mat, metric_set, roc_curve
from .models import boost_tree, decision_tree, linear_reg, logistic_reg, rand_forest, tune
from .recipes import (
    Recipe,
    all_nominal_predictors,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
)
from .splits import FoldSet, Split, initial_split, vfold_cv
from .tune import (
    ControlGrid,
    finalize_workflow,
    fit_resamples,
    grid_latin_hypercube,
    grid_random,
    grid_regular,
    last_fit,
    tune_grid,
)
from .workflow import FittedWorkflow, Workflow
from .workflow_set import WorkflowSetResults, workflow_map

__version__ = "0.3.0"

__all__ = [
    "WorkflowError",
    "SplitError",
    "RecipeError",
    "ModelSpecError",
    "FitError",
    "MetricError",
    "TuneError",
    "Formula",
    "Split",
    "FoldSet",
    "initial_split",
    "vfold_cv",
    "Recipe",
    "all_predictors",
    "all_numeric_predictors",
    "all_nominal_predictors",
    "all_outcomes",
    "linear_reg",
    "logistic_reg",
    "rand_forest",
    "boost_tree",
    "decision_tree",
    "tune",
    "Workflow",
    "FittedWorkflow",
    "metric_set",
    "conf_mat",
    "roc_curve",
    "ControlGrid",
    "tune_grid",
    "fit_resamples",
    "grid_regular",
    "grid_random",
    "grid_latin_hypercube",
    "finalize_workflow",
    "last_fit",
    "workflow_map",
    "WorkflowSetResults",
    "fit_by_group",
    "collect_coefficients",
    "GroupFit",
    "plots",
    "runner",
]


def __getattr__(name: str):
    # matplotlib is only imported when figures are needed
    if name in {"plots", "runner"}:
        return import_module(f"tidyml.{name}")
    raise AttributeError(f"module 'tidyml' has no attribute {name}")
