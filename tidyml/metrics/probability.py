# tidyml/metrics/probability.py
import numpy as np
import pandas as pd
from sklearn.metrics import log_loss, roc_auc_score

from ..errors import MetricError
from .base import MetricInterface, as_codes, event_of


def prob_matrix(y_pred, levels) -> np.ndarray:
    """Probability columns in level order from a frame (``pred_<level>`` or ``<level>``)."""
    if not isinstance(y_pred, pd.DataFrame):
        return np.asarray(y_pred, dtype=float)
    cols = []
    for lvl in levels:
        for name in (f"pred_{lvl}", lvl):
            if name in y_pred.columns:
                cols.append(name)
                break
        else:
            raise MetricError(f"Probability column for level {lvl!r} is missing (expected 'pred_{lvl}')")
    return y_pred[cols].to_numpy(dtype=float)


class _ProbMetric(MetricInterface):
    kind = "prob"

    def _prepare(self, y_true, y_pred, levels):
        if levels is None:
            raise MetricError(f"{self.name} needs the outcome levels")
        t = as_codes(y_true, levels)
        probs = prob_matrix(y_pred, levels)
        if probs.ndim != 2 or probs.shape != (t.size, len(levels)):
            raise MetricError(f"{self.name}: expected probabilities of shape {(t.size, len(levels))}, got {probs.shape}")
        if t.size == 0:
            raise MetricError("Cannot compute a metric on zero rows")
        return t, probs


class RocAucMetric(_ProbMetric):
    """Вычисляет площадь под ROC-кривой (ROC AUC).

    Работает с предсказанными вероятностями. Для двух классов берется
    вероятность положительного класса, для большего числа one-vs-rest
    с macro-усреднением.
    """

    name = "roc_auc"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, probs = self._prepare(y_true, y_pred, levels)
        if len(np.unique(t)) < 2:
            raise MetricError("roc_auc is undefined when truth contains a single class")
        if len(levels) == 2:
            pos = list(levels).index(event_of(levels, event_level))
            return float(roc_auc_score((t == pos).astype(int), probs[:, pos]))
        try:
            return float(
                roc_auc_score(t, probs, multi_class="ovr", average="macro", labels=list(range(len(levels))))
            )
        except ValueError as exc:
            raise MetricError(f"roc_auc: {exc}") from exc


class LogLossMetric(_ProbMetric):
    """Средняя мультиномиальная логарифмическая функция потерь (mn_log_loss)."""

    name = "mn_log_loss"
    direction = "minimize"

    def estimator(self, n_levels: int = 0) -> str:
        return "standard"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, probs = self._prepare(y_true, y_pred, levels)
        probs = np.clip(probs, 1e-15, 1 - 1e-15)
        probs = probs / probs.sum(axis=1, keepdims=True)
        return float(log_loss(t, probs, labels=list(range(len(levels)))))
