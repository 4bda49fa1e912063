# tidyml/tune/grids.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.stats import qmc
from sklearn.model_selection import ParameterGrid

from ..errors import TuneError
from .params import Param

logger = logging.getLogger(__name__)


def _frame(rows, params: Dict[str, Param]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=list(params))
    for name, p in params.items():
        if p.integer:
            df[name] = df[name].astype(int)
    return df.drop_duplicates(ignore_index=True)


def grid_regular(params: Dict[str, Param], levels: Union[int, Mapping[str, int]] = 3) -> pd.DataFrame:
    """Full factorial grid: ``levels`` values per parameter (or a per-parameter mapping)."""
    if not params:
        raise TuneError("grid_regular needs at least one parameter")
    if isinstance(levels, Mapping):
        missing = set(params) - set(levels)
        if missing:
            raise TuneError(f"levels missing for parameters {sorted(missing)}")
        per = dict(levels)
    else:
        per = {name: levels for name in params}
    space = {name: p.regular(per[name]) for name, p in params.items()}
    rows = [[point[name] for name in params] for point in ParameterGrid(space)]
    return _frame(rows, params)


def grid_random(params: Dict[str, Param], size: int = 5, seed: Optional[int] = None) -> pd.DataFrame:
    """Independent uniform draws (on the transformed scale) for every parameter."""
    if size < 1:
        raise TuneError(f"grid size must be >= 1, got {size}")
    rng = np.random.default_rng(seed)
    u = rng.random((size, len(params)))
    cols = {name: p.from_unit(u[:, j]) for j, (name, p) in enumerate(params.items())}
    return _frame(pd.DataFrame(cols), params)


def grid_latin_hypercube(params: Dict[str, Param], size: int = 5, seed: Optional[int] = None) -> pd.DataFrame:
    """Space-filling design: every parameter range is cut into ``size`` strata, each used once."""
    if size < 1:
        raise TuneError(f"grid size must be >= 1, got {size}")
    sampler = qmc.LatinHypercube(d=len(params), seed=seed)
    u = sampler.random(n=size)
    cols = {name: p.from_unit(u[:, j]) for j, (name, p) in enumerate(params.items())}
    return _frame(pd.DataFrame(cols), params)


def make_grid(
    grid: Union[int, pd.DataFrame, Sequence[Mapping[str, Any]], Mapping[str, Any], None],
    params: Dict[str, Param],
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Resolve any accepted grid description into a candidate frame.

    * ``int`` -> Latin hypercube of that size
    * DataFrame / list of dicts -> explicit candidates
    * ``{"type": "regular"|"random"|"latin_hypercube", "levels", "size", "seed"}``
    """
    if grid is None:
        grid = 10
    if isinstance(grid, (bool, np.bool_)):
        raise TuneError(f"Invalid grid: {grid!r}")
    if isinstance(grid, (int, np.integer)):
        df = grid_latin_hypercube(params, size=int(grid), seed=seed)
    elif isinstance(grid, pd.DataFrame):
        df = grid.reset_index(drop=True)
    elif isinstance(grid, Mapping):
        kind = grid.get("type", "latin_hypercube")
        grid_seed = grid.get("seed", seed)
        if kind == "regular":
            df = grid_regular(params, levels=grid.get("levels", 3))
        elif kind == "random":
            df = grid_random(params, size=grid.get("size", 10), seed=grid_seed)
        elif kind == "latin_hypercube":
            df = grid_latin_hypercube(params, size=grid.get("size", 10), seed=grid_seed)
        else:
            raise TuneError(f"Unknown grid type: {kind!r}")
    else:
        df = pd.DataFrame(list(grid))

    if df.empty:
        raise TuneError("The tuning grid is empty")
    missing = [p for p in params if p not in df.columns]
    extra = [c for c in df.columns if c not in params]
    if missing or extra:
        raise TuneError(f"Grid columns must match tuned parameters {list(params)}; missing={missing}, extra={extra}")
    df = df[list(params)].drop_duplicates(ignore_index=True)
    logger.info("Tuning grid: %d candidates over %s", len(df), list(params))
    return df


__all__ = ["grid_regular", "grid_random", "grid_latin_hypercube", "make_grid"]
