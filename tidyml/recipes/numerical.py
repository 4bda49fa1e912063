# tidyml/recipes/numerical.py

import logging
import math
from typing import Any, Dict

import numpy as np
import pandas as pd
from scipy.stats import yeojohnson
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from ..errors import RecipeError
from .base import RecipeStep
from .selectors import Selection, all_numeric_predictors

logger = logging.getLogger(__name__)


# ==================================================================================
# LogStep
# ==================================================================================
class LogStep(RecipeStep):
    """
    Логарифм ``log(x + offset, base)`` для выбранных колонок, на месте.

    Stateless: fit только проверяет, что на обучающих данных все значения
    положительны после сдвига.
    """

    step_type = "log"
    numeric_only = True
    requires_columns = True

    def __init__(self, selection: Selection, base: float = math.e, offset: float = 0.0):
        super().__init__(selection)
        if base <= 0 or base == 1:
            raise RecipeError(f"log base must be positive and != 1, got {base}")
        self.base = base
        self.offset = offset

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        bad = [c for c in cols if ((data[c].dropna() + self.offset) <= 0).any()]
        if bad:
            raise RecipeError(f"[{self.id}] non-positive values after offset={self.offset} in {bad}")
        logger.debug("[%s] log transform for %s", self.id, cols)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            with np.errstate(divide="ignore", invalid="ignore"):
                df[col] = np.log(df[col].astype(float) + self.offset) / np.log(self.base)
        return df

    def params(self) -> Dict[str, Any]:
        return {"base": self.base, "offset": self.offset}


# ==================================================================================
# NormalizeStep
# ==================================================================================
class NormalizeStep(RecipeStep):
    """
    Центрирование и масштабирование (StandardScaler) на месте.

    Среднее и стандартное отклонение считаются ТОЛЬКО на обучающих данных.
    """

    step_type = "normalize"
    numeric_only = True

    def __init__(self, selection: Selection = None):
        super().__init__(selection if selection is not None else all_numeric_predictors())
        self.scaler = StandardScaler()
        self.means_: Dict[str, float] = {}
        self.sds_: Dict[str, float] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        if cols:
            self.scaler.fit(data[cols].astype(float))
            self.means_ = dict(zip(cols, map(float, self.scaler.mean_)))
            self.sds_ = dict(zip(cols, map(float, self.scaler.scale_)))
        logger.debug("[%s] normalize fitted on %d columns", self.id, len(cols))
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        cols = self._present(df)
        for col in cols:
            df[col] = (df[col].astype(float) - self.means_[col]) / self.sds_[col]
        return df

    def params(self) -> Dict[str, Any]:
        return {"means": dict(self.means_), "sds": dict(self.sds_)}


# ==================================================================================
# RangeStep
# ==================================================================================
class RangeStep(RecipeStep):
    """
    Масштабирование в диапазон [min, max] (MinMaxScaler), значения новых
    данных обрезаются по границам.
    """

    step_type = "range"
    numeric_only = True

    def __init__(self, selection: Selection = None, min: float = 0.0, max: float = 1.0):
        super().__init__(selection if selection is not None else all_numeric_predictors())
        if not min < max:
            raise RecipeError(f"range requires min < max, got ({min}, {max})")
        self.min = min
        self.max = max
        self.scaler = MinMaxScaler(feature_range=(min, max), clip=True)

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        if cols:
            self.scaler.fit(data[cols].astype(float))
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        cols = self._present(df)
        if not cols:
            return df
        if cols != self.columns_:
            # the scaler expects the full prepared column set
            raise RecipeError(f"[{self.id}] needs all of {self.columns_} to be present")
        df[cols] = self.scaler.transform(df[cols].astype(float))
        return df

    def params(self) -> Dict[str, Any]:
        if not self.columns_:
            return {}
        return {
            "mins": dict(zip(self.columns_, map(float, self.scaler.data_min_))),
            "maxs": dict(zip(self.columns_, map(float, self.scaler.data_max_))),
        }


# ==================================================================================
# YeoJohnsonStep
# ==================================================================================
class YeoJohnsonStep(RecipeStep):
    """
    Преобразование Йео-Джонсона. Работает и с отрицательными значениями;
    параметр ``lambda`` оценивается ТОЛЬКО на обучающих данных.
    """

    step_type = "yeojohnson"
    numeric_only = True

    def __init__(self, selection: Selection = None):
        super().__init__(selection if selection is not None else all_numeric_predictors())
        self.lambdas_: Dict[str, float] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        for col in cols:
            values = data[col].dropna().to_numpy(dtype=float)
            if values.size == 0:
                raise RecipeError(f"[{self.id}] column '{col}' has no observed values")
            _, lmbda = yeojohnson(values)
            self.lambdas_[col] = float(lmbda)
            logger.debug("[%s] lambda for '%s' = %.4f", self.id, col, lmbda)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            values = df[col].to_numpy(dtype=float)
            out = np.full_like(values, np.nan)
            mask = ~np.isnan(values)
            out[mask] = yeojohnson(values[mask], lmbda=self.lambdas_[col])
            df[col] = out
        return df

    def params(self) -> Dict[str, Any]:
        return {"lambdas": dict(self.lambdas_)}


# ==================================================================================
# ImputeMeanStep
# ==================================================================================
class ImputeMeanStep(RecipeStep):
    """Заполнение пропусков средним значением обучающей выборки."""

    step_type = "impute_mean"
    numeric_only = True

    def __init__(self, selection: Selection = None):
        super().__init__(selection if selection is not None else all_numeric_predictors())
        self.means_: Dict[str, float] = {}

    def fit(self, data: pd.DataFrame, outcome: str) -> None:
        cols = self._select(data, outcome)
        for col in cols:
            mean = data[col].mean()
            if pd.isna(mean):
                raise RecipeError(f"[{self.id}] column '{col}' has no observed values")
            self.means_[col] = float(mean)
        self.trained = True

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        for col in self._present(df):
            df[col] = df[col].astype(float).fillna(self.means_[col])
        return df

    def params(self) -> Dict[str, Any]:
        return {"means": dict(self.means_)}
