# tidyml/metrics/regression.py
import logging

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from ..errors import MetricError
from .base import MetricInterface

logger = logging.getLogger(__name__)


def _check(y_true, y_pred):
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if y_true.shape != y_pred.shape:
        raise MetricError(f"truth and estimate lengths differ: {y_true.shape} vs {y_pred.shape}")
    if y_true.size == 0:
        raise MetricError("Cannot compute a metric on zero rows")
    return y_true, y_pred


class RmseMetric(MetricInterface):
    """Вычисляет корень из среднеквадратичной ошибки (RMSE)."""

    name = "rmse"
    direction = "minimize"

    def __call__(self, y_true, y_pred, **kwargs) -> float:
        y_true, y_pred = _check(y_true, y_pred)
        return float(np.sqrt(mean_squared_error(y_true, y_pred)))


class MaeMetric(MetricInterface):
    """Вычисляет среднюю абсолютную ошибку (MAE)."""

    name = "mae"
    direction = "minimize"

    def __call__(self, y_true, y_pred, **kwargs) -> float:
        y_true, y_pred = _check(y_true, y_pred)
        return float(mean_absolute_error(y_true, y_pred))


class RsqMetric(MetricInterface):
    """
    R² как квадрат корреляции истинных и предсказанных значений.

    Для константного прогноза корреляция не определена: возвращается NaN
    с предупреждением, чтобы перебор сетки не прерывался.
    """

    name = "rsq"

    def __call__(self, y_true, y_pred, **kwargs) -> float:
        y_true, y_pred = _check(y_true, y_pred)
        if np.std(y_true) == 0 or np.std(y_pred) == 0:
            logger.warning("rsq: a constant truth or estimate gives an undefined correlation; returning NaN")
            return float("nan")
        return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


class RsqTradMetric(MetricInterface):
    """Классический коэффициент детерминации 1 - SS_res / SS_tot."""

    name = "rsq_trad"

    def __call__(self, y_true, y_pred, **kwargs) -> float:
        y_true, y_pred = _check(y_true, y_pred)
        return float(r2_score(y_true, y_pred))


class MapeMetric(MetricInterface):
    """Вычисляет среднюю абсолютную процентную ошибку (MAPE), в процентах."""

    name = "mape"
    direction = "minimize"

    def __call__(self, y_true, y_pred, **kwargs) -> float:
        y_true, y_pred = _check(y_true, y_pred)
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.mean(np.abs((y_true - y_pred) / y_true)) * 100)
