from .control import ControlGrid, control_grid, control_resamples
from .finalize import LastFit, finalize_model, finalize_workflow, last_fit
from .grids import grid_latin_hypercube, grid_random, grid_regular, make_grid
from .params import DEFAULT_PARAMS, Param, finalize_params, parameters
from .results import TuneResults
from .tuner import config_ids, fit_resamples, tune_grid

__all__ = [
    "ControlGrid",
    "control_grid",
    "control_resamples",
    "Param",
    "DEFAULT_PARAMS",
    "parameters",
    "finalize_params",
    "grid_regular",
    "grid_random",
    "grid_latin_hypercube",
    "make_grid",
    "tune_grid",
    "fit_resamples",
    "config_ids",
    "TuneResults",
    "finalize_model",
    "finalize_workflow",
    "last_fit",
    "LastFit",
]
