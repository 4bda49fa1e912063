# tidyml/recipes/filters.py

import logging
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from ..errors import RecipeError
from .base import RecipeStep
from .selectors import Selection, all_numeric_predictors, all_predictors

logger = logging.getLogger(__name__)


def find_correlated(corr: pd.DataFrame, threshold: float) -> List[str]:
    """Columns to drop so that no remaining pair exceeds ``threshold``.

    Repeatedly takes the most correlated pair and drops the member with the
    larger mean absolute correlation to the remaining columns; on a tie the
    later column goes.
    """
    names = list(corr.columns)
    mat = np.nan_to_num(corr.abs().to_numpy(dtype=float, copy=True), nan=0.0)
    np.fill_diagonal(mat, 0.0)
    keep = list(range(len(names)))
    removed: List[str] = []
    while len(keep) > 1:
        sub = mat[np.ix_(keep, keep)]
        if sub.max() <= threshold:
            break
        i, j = np.unravel_index(np.argmax(sub), sub.shape)
        i, j = min(i, j), max(i, j)
        drop = i if sub[i].mean() > sub[j].mean() else j
        removed.append(names[keep[drop]])
        del keep[drop]
    return removed


# ==================================================================================
# CorrStep
# ==================================================================================
class CorrStep(RecipeStep):
    """
    Удаляет предикторы с высокой попарной корреляцией.

    Параметры:
        selection: Колонки-кандидаты (по умолчанию все числовые предикторы).
        threshold (float): Порог абсолютной корреляции.
        method (str): 'pearson', 'spearman' или 'kendall'.
    """

    step_type = "corr"
    numeric_only = True

    def __init__(self, selection: Selection = None, threshold: float = 0.9, method: str = "pearson"):
        super().__init__(selection if selection is not None else all_numeric_predictors())
        if not 0 <= threshold <= 1:
            raise RecipeError(f"corr threshold must be in [0, 1], got {threshold}")
        if method not in ("pearson", "spearman", "kendall"):
            raise RecipeError(f"Unknown correlation method: {method}")
        self.threshold = threshold
        self.method = method
        self.removed_: List[str] = []

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        if len(cols) > 1:
            corr = data[cols].corr(method=self.method)
            self.removed_ = find_correlated(corr, self.threshold)
        logger.info("[%s] removing %d correlated columns: %s", self.id, len(self.removed_), self.removed_)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        self._present(data)
        return data.drop(columns=[c for c in self.removed_ if c in data.columns])

    def params(self) -> Dict[str, Any]:
        return {"removed": list(self.removed_)}


# ==================================================================================
# ZeroVarianceStep
# ==================================================================================
class ZeroVarianceStep(RecipeStep):
    """Удаляет колонки с единственным значением на обучающей выборке."""

    step_type = "zv"

    def __init__(self, selection: Selection = None):
        super().__init__(selection if selection is not None else all_predictors())
        self.removed_: List[str] = []

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        self.removed_ = [c for c in cols if data[c].nunique(dropna=True) <= 1]
        if self.removed_:
            logger.info("[%s] removing zero-variance columns: %s", self.id, self.removed_)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        self._present(data)
        return data.drop(columns=[c for c in self.removed_ if c in data.columns])

    def params(self) -> Dict[str, Any]:
        return {"removed": list(self.removed_)}
