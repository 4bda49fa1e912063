# tidyml/recipes/base.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List

import pandas as pd

from ..errors import RecipeError
from .selectors import Selection, as_selection, describe, resolve_selection

logger = logging.getLogger(__name__)


class RecipeStep(ABC):
    """Abstract base class for all preprocessing steps.

    A step is prepared once on training rows (``fit``) and then applied,
    unchanged, to any frame (``transform``). Everything learned during
    ``fit`` is stored on attributes ending with ``_``; ``transform`` never
    updates them, which is what keeps test rows out of the preprocessing
    statistics.

    Attributes:
        selection: Columns the step works on (selector or explicit list).
        id (str): Step identifier, assigned by the recipe (``normalize_2``).
        columns_ (List[str]): Columns resolved at prep time.
        trained (bool): Whether ``fit`` has run.
    """

    step_type: ClassVar[str] = "step"
    numeric_only: ClassVar[bool] = False
    requires_columns: ClassVar[bool] = False

    def __init__(self, selection: Selection):
        self.selection = as_selection(selection)
        self.id: str = self.step_type
        self.columns_: List[str] = []
        self.outcome_: str | None = None
        self.trained = False

    def _select(self, data: pd.DataFrame, outcome: str) -> List[str]:
        cols = resolve_selection(self.selection, data, outcome)
        if not cols and self.requires_columns:
            raise RecipeError(f"[{self.id}] selection {describe(self.selection)} matched no columns")
        if self.numeric_only:
            bad = [
                c for c in cols
                if not pd.api.types.is_numeric_dtype(data[c]) or pd.api.types.is_bool_dtype(data[c])
            ]
            if bad:
                raise RecipeError(f"[{self.id}] requires numeric columns, got non-numeric: {bad}")
        self.columns_ = cols
        self.outcome_ = outcome
        return cols

    def _present(self, data: pd.DataFrame) -> List[str]:
        """Prepared columns available in ``data``; only the outcome may be absent."""
        if not self.trained:
            raise RecipeError(f"[{self.id}] has not been trained; call Recipe.prep() first")
        missing = [c for c in self.columns_ if c not in data.columns and c != self.outcome_]
        if missing:
            raise RecipeError(f"[{self.id}] columns missing from new data: {missing}")
        return [c for c in self.columns_ if c in data.columns]

    @abstractmethod
    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        """Learn the step parameters from training data.

        Args:
            data (pd.DataFrame): Training rows as produced by the previous steps.
            outcome (str): Name of the outcome column.
        """

    @abstractmethod
    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        """Apply the learned parameters and return a new frame."""

    def params(self) -> Dict[str, Any]:
        """Learned parameters, for inspection and ``Recipe.tidy``."""
        return {}

    def __repr__(self) -> str:
        state = "trained" if self.trained else "untrained"
        return f"{type(self).__name__}({describe(self.selection)}) [{state}]"
