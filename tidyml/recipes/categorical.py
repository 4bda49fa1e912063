# tidyml/recipes/categorical.py

import logging
import re
from typing import Any, Dict, List

import pandas as pd

from ..errors import RecipeError
from .base import RecipeStep
from .selectors import Selection, all_nominal_predictors

logger = logging.getLogger(__name__)


def observed_levels(s: pd.Series) -> List[Any]:
    """Level order of a column: categories for categoricals, sorted values otherwise."""
    if isinstance(s.dtype, pd.CategoricalDtype):
        return list(s.cat.categories)
    values = s.dropna().unique().tolist()
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def _clean(level: Any) -> str:
    return re.sub(r"\W+", "_", str(level)).strip("_") or "blank"


# ==================================================================================
# DummyStep
# ==================================================================================
class DummyStep(RecipeStep):
    """
    Кодирует номинальные колонки индикаторами ``{col}_{level}``.

    По умолчанию первый уровень считается референсным, и отдельной колонки не
    получает; ``one_hot=True`` создает индикатор для каждого уровня.
    Уровни, которых не было на обучающей выборке, дают нули во всех
    индикаторах.
    """

    step_type = "dummy"

    def __init__(self, selection: Selection = None, one_hot: bool = False):
        super().__init__(selection if selection is not None else all_nominal_predictors())
        self.one_hot = one_hot
        self.levels_: Dict[str, List[Any]] = {}
        self.output_cols_: Dict[str, List[str]] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        for col in cols:
            s = data[col]
            if pd.api.types.is_numeric_dtype(s) and not pd.api.types.is_bool_dtype(s):
                raise RecipeError(f"[{self.id}] column '{col}' is numeric; dummy encoding needs a nominal column")
            levels = observed_levels(s)
            if not levels:
                raise RecipeError(f"[{self.id}] column '{col}' has no observed levels")
            self.levels_[col] = levels
            encoded = levels if self.one_hot else levels[1:]
            self.output_cols_[col] = [f"{col}_{_clean(lvl)}" for lvl in encoded]
            logger.debug("[%s] '%s': %d levels -> %d indicators", self.id, col, len(levels), len(encoded))
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            levels = self.levels_[col]
            values = df[col].astype(object)
            unseen = values.notna() & ~values.isin(levels)
            if unseen.any():
                logger.warning(
                    "[%s] '%s' has %d values not seen during prep: %s",
                    self.id, col, int(unseen.sum()), sorted(map(str, values[unseen].unique()))[:5],
                )
            encoded = levels if self.one_hot else levels[1:]
            indicators = {
                name: (values == lvl).to_numpy(dtype=float)
                for name, lvl in zip(self.output_cols_[col], encoded)
            }
            df = df.drop(columns=[col])
            df = pd.concat([df, pd.DataFrame(indicators, index=df.index)], axis=1)
        return df

    def params(self) -> Dict[str, Any]:
        return {"levels": {k: list(map(str, v)) for k, v in self.levels_.items()}}


# ==================================================================================
# OtherStep
# ==================================================================================
class OtherStep(RecipeStep):
    """
    Объединяет редкие категории в одну (по умолчанию 'other').

    Параметры:
        threshold (float): Доля (< 1) или абсолютное число (>= 1) строк,
            ниже которого категория считается редкой.
    """

    step_type = "other"

    def __init__(self, selection: Selection = None, threshold: float = 0.05, other: str = "other"):
        super().__init__(selection if selection is not None else all_nominal_predictors())
        if threshold <= 0:
            raise RecipeError(f"other threshold must be positive, got {threshold}")
        self.threshold = threshold
        self.other = other
        self.keep_: Dict[str, List[Any]] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        for col in cols:
            counts = data[col].value_counts(dropna=True)
            limit = self.threshold * counts.sum() if self.threshold < 1 else self.threshold
            frequent = set(counts[counts >= limit].index)
            self.keep_[col] = [lvl for lvl in observed_levels(data[col]) if lvl in frequent]
            pooled = len(observed_levels(data[col])) - len(self.keep_[col])
            if pooled:
                logger.debug("[%s] '%s': pooling %d rare levels into '%s'", self.id, col, pooled, self.other)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            keep = self.keep_[col]
            values = df[col].astype(object)
            pooled = values.where(values.isna() | values.isin(keep), self.other)
            categories = keep + ([self.other] if self.other not in keep else [])
            df[col] = pd.Categorical(pooled, categories=categories)
        return df

    def params(self) -> Dict[str, Any]:
        return {"keep": {k: list(map(str, v)) for k, v in self.keep_.items()}}


# ==================================================================================
# ImputeModeStep
# ==================================================================================
class ImputeModeStep(RecipeStep):
    """Заполнение пропусков самой частой категорией обучающей выборки."""

    step_type = "impute_mode"

    def __init__(self, selection: Selection = None):
        super().__init__(selection if selection is not None else all_nominal_predictors())
        self.modes_: Dict[str, Any] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        for col in cols:
            modes = data[col].mode(dropna=True)
            if modes.empty:
                raise RecipeError(f"[{self.id}] column '{col}' has no observed values")
            self.modes_[col] = modes.iloc[0]
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            df[col] = df[col].fillna(self.modes_[col])
        return df

    def params(self) -> Dict[str, Any]:
        return {"modes": {k: str(v) for k, v in self.modes_.items()}}


__all__ = ["DummyStep", "OtherStep", "ImputeModeStep", "observed_levels"]
