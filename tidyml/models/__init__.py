from .engines import build_estimator
from .fitted import FittedModel, fit_model, outcome_levels
from .spec import (
    FAMILIES,
    ModelSpec,
    TuneMarker,
    boost_tree,
    decision_tree,
    is_tune,
    linear_reg,
    logistic_reg,
    rand_forest,
    spec_from_config,
    tune,
)

__all__ = [
    "FAMILIES",
    "ModelSpec",
    "TuneMarker",
    "tune",
    "is_tune",
    "linear_reg",
    "logistic_reg",
    "rand_forest",
    "boost_tree",
    "decision_tree",
    "spec_from_config",
    "build_estimator",
    "FittedModel",
    "fit_model",
    "outcome_levels",
]
