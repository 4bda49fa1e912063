# tidyml/tune/params.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..errors import TuneError
from ..models import ModelSpec


@dataclass(frozen=True)
class Param:
    """
    Диапазон гиперпараметра (аналог dials).

    Для ``trans="log10"`` границы заданы в степенях десяти:
    ``Param("penalty", -10, 0, trans="log10")`` означает [1e-10, 1].
    ``upper=None`` означает, что граница еще не определена (mtry до finalize).
    """

    name: str
    lower: float
    upper: Optional[float]
    integer: bool = False
    trans: Optional[str] = None

    @property
    def finalized(self) -> bool:
        return self.upper is not None

    def _check(self) -> None:
        if not self.finalized:
            raise TuneError(f"Parameter '{self.name}' has an unknown upper bound; finalize it first")
        if self.upper < self.lower:
            raise TuneError(f"Parameter '{self.name}': upper {self.upper} < lower {self.lower}")

    def _back(self, x: np.ndarray) -> np.ndarray:
        out = np.power(10.0, x) if self.trans == "log10" else x
        if self.integer:
            out = np.round(out).astype(int)
        return out

    def regular(self, levels: int) -> List[Any]:
        """``levels`` evenly spaced values (on the transformed scale), duplicates dropped."""
        self._check()
        if levels < 1:
            raise TuneError(f"levels must be >= 1, got {levels}")
        raw = np.linspace(self.lower, self.upper, levels) if levels > 1 else np.array([(self.lower + self.upper) / 2])
        values = self._back(raw)
        return list(dict.fromkeys(v.item() for v in values))

    def from_unit(self, u: np.ndarray) -> np.ndarray:
        """Map points of [0, 1] onto the range."""
        self._check()
        return self._back(self.lower + np.asarray(u, dtype=float) * (self.upper - self.lower))

    def __repr__(self) -> str:
        upper = "?" if self.upper is None else self.upper
        scale = f" ({self.trans})" if self.trans else ""
        kind = "int" if self.integer else "float"
        return f"{self.name}: [{self.lower}, {upper}]{scale} {kind}"


DEFAULT_PARAMS: Dict[str, Param] = {
    "mtry": Param("mtry", 1, None, integer=True),
    "trees": Param("trees", 1, 2000, integer=True),
    "min_n": Param("min_n", 2, 40, integer=True),
    "tree_depth": Param("tree_depth", 1, 15, integer=True),
    "learn_rate": Param("learn_rate", -10, -1, trans="log10"),
    "loss_reduction": Param("loss_reduction", -10, 1.5, trans="log10"),
    "sample_size": Param("sample_size", 0.1, 1.0),
    "penalty": Param("penalty", -10, 0, trans="log10"),
    "mixture": Param("mixture", 0.0, 1.0),
    "cost_complexity": Param("cost_complexity", -10, -1, trans="log10"),
}


def parameters(spec: ModelSpec, ranges: Optional[Mapping[str, Sequence[float]]] = None) -> Dict[str, Param]:
    """Parameter set for every ``tune()`` argument of ``spec``, keyed by tune id.

    ``ranges`` overrides bounds, e.g. ``{"penalty": [-4, -1], "trees": [100, 500]}``
    (log10 parameters take exponents).
    """
    ranges = dict(ranges or {})
    out: Dict[str, Param] = {}
    for pid, arg in spec.tune_args().items():
        base = DEFAULT_PARAMS.get(arg)
        if base is None and pid not in ranges:
            raise TuneError(f"No default range for '{arg}'; pass it in ranges")
        if base is None:
            base = Param(pid, 0.0, 1.0)
        p = replace(base, name=pid)
        if pid in ranges:
            lo, hi = ranges.pop(pid)
            p = replace(p, lower=lo, upper=hi)
        out[pid] = p
    if ranges:
        raise TuneError(f"Ranges given for parameters that are not tuned: {sorted(ranges)}")
    return out


def finalize_params(params: Dict[str, Param], n_predictors: int) -> Dict[str, Param]:
    """Fill data-dependent bounds: ``mtry`` upper = number of predictors."""
    out = {}
    for pid, p in params.items():
        if not p.finalized:
            p = replace(p, upper=n_predictors)
        out[pid] = p
    return out


def needs_finalize(params: Dict[str, Param]) -> bool:
    return any(not p.finalized for p in params.values())


def as_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


__all__ = ["Param", "DEFAULT_PARAMS", "parameters", "finalize_params", "needs_finalize", "as_python"]
