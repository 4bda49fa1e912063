# tidyml/recipes/selectors.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Union

import pandas as pd

from ..errors import RecipeError


def _is_numeric(s: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(s) and not pd.api.types.is_bool_dtype(s)


def _any(s: pd.Series) -> bool:
    return True


def _is_nominal(s: pd.Series) -> bool:
    return (
        isinstance(s.dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(s)
        or pd.api.types.is_string_dtype(s)
        or pd.api.types.is_bool_dtype(s)
    )


@dataclass(frozen=True)
class Selector:
    """Role/type based column selector, resolved when a step is prepared."""

    name: str
    predicate: Callable[[pd.Series], bool]
    include_outcome: bool = False
    include_predictors: bool = True

    def resolve(self, data: pd.DataFrame, outcome: str) -> List[str]:
        out = []
        for col in data.columns:
            is_outcome = col == outcome
            if is_outcome and not self.include_outcome:
                continue
            if not is_outcome and not self.include_predictors:
                continue
            if self.predicate(data[col]):
                out.append(col)
        return out

    def __repr__(self) -> str:
        return f"{self.name}()"


def all_predictors() -> Selector:
    return Selector("all_predictors", _any)


def all_numeric_predictors() -> Selector:
    return Selector("all_numeric_predictors", _is_numeric)


def all_nominal_predictors() -> Selector:
    return Selector("all_nominal_predictors", _is_nominal)


def all_outcomes() -> Selector:
    return Selector("all_outcomes", _any, include_outcome=True, include_predictors=False)


SELECTORS: Dict[str, Callable[[], Selector]] = {
    "all_predictors": all_predictors,
    "all_numeric_predictors": all_numeric_predictors,
    "all_nominal_predictors": all_nominal_predictors,
    "all_outcomes": all_outcomes,
}

Selection = Union[Selector, str, Sequence[str]]


def as_selection(selection: Selection) -> Union[Selector, List[str]]:
    """Normalize user input: selector object, selector name, one column or a list of columns."""
    if isinstance(selection, Selector):
        return selection
    if isinstance(selection, str):
        if selection in SELECTORS:
            return SELECTORS[selection]()
        return [selection]
    cols = list(selection)
    if not cols:
        raise RecipeError("Empty column selection")
    return cols


def resolve_selection(selection: Union[Selector, List[str]], data: pd.DataFrame, outcome: str) -> List[str]:
    if isinstance(selection, Selector):
        return selection.resolve(data, outcome)
    missing = [c for c in selection if c not in data.columns]
    if missing:
        raise RecipeError(f"Selected columns not found: {missing}")
    return list(selection)


def describe(selection: Union[Selector, List[str]]) -> str:
    if isinstance(selection, Selector):
        return repr(selection)
    return ", ".join(selection)


__all__ = [
    "Selector",
    "Selection",
    "all_predictors",
    "all_numeric_predictors",
    "all_nominal_predictors",
    "all_outcomes",
    "as_selection",
    "resolve_selection",
]
