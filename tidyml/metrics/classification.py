# tidyml/metrics/classification.py
import numpy as np
from sklearn.metrics import (
    accuracy_score,
    cohen_kappa_score,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
)

from ..errors import MetricError
from .base import MetricInterface, as_codes, event_of


class _ClassMetric(MetricInterface):
    kind = "class"

    def _prepare(self, y_true, y_pred, levels, event_level):
        if levels is None:
            raise MetricError(f"{self.name} needs the outcome levels")
        t = as_codes(y_true, levels)
        p = as_codes(y_pred, levels)
        if t.size == 0:
            raise MetricError("Cannot compute a metric on zero rows")
        pos = list(levels).index(event_of(levels, event_level))
        return t, p, pos, len(levels)


class AccuracyMetric(_ClassMetric):
    """Доля верно классифицированных объектов."""

    name = "accuracy"

    def estimator(self, n_levels: int = 0) -> str:
        return "binary" if n_levels == 2 else "multiclass"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, _, _ = self._prepare(y_true, y_pred, levels, event_level)
        return float(accuracy_score(t, p))


class KapMetric(_ClassMetric):
    """Каппа Коэна: согласие с поправкой на случайное совпадение."""

    name = "kap"

    def estimator(self, n_levels: int = 0) -> str:
        return "binary" if n_levels == 2 else "multiclass"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, _, k = self._prepare(y_true, y_pred, levels, event_level)
        return float(cohen_kappa_score(t, p, labels=list(range(k))))


class RecallMetric(_ClassMetric):
    """Полнота (sensitivity) для положительного класса; macro для > 2 классов."""

    name = "sensitivity"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, pos, k = self._prepare(y_true, y_pred, levels, event_level)
        if k == 2:
            return float(recall_score(t, p, pos_label=pos, average="binary", zero_division=0))
        return float(recall_score(t, p, labels=list(range(k)), average="macro", zero_division=0))


class SpecificityMetric(_ClassMetric):
    """Специфичность: доля верно распознанных отрицательных объектов."""

    name = "specificity"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, pos, k = self._prepare(y_true, y_pred, levels, event_level)
        cm = confusion_matrix(t, p, labels=list(range(k)))
        classes = [pos] if k == 2 else range(k)
        values = []
        for c in classes:
            negatives = cm.sum() - cm[c, :].sum()
            false_pos = cm[:, c].sum() - cm[c, c]
            values.append((negatives - false_pos) / negatives if negatives else 0.0)
        return float(np.mean(values))


class PrecisionMetric(_ClassMetric):
    """Точность (precision) для положительного класса; macro для > 2 классов."""

    name = "precision"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, pos, k = self._prepare(y_true, y_pred, levels, event_level)
        if k == 2:
            return float(precision_score(t, p, pos_label=pos, average="binary", zero_division=0))
        return float(precision_score(t, p, labels=list(range(k)), average="macro", zero_division=0))


class F1Metric(_ClassMetric):
    """F1-мера (f_meas) для положительного класса; macro для > 2 классов."""

    name = "f_meas"

    def __call__(self, y_true, y_pred, levels=None, event_level="first", **kwargs) -> float:
        t, p, pos, k = self._prepare(y_true, y_pred, levels, event_level)
        if k == 2:
            return float(f1_score(t, p, pos_label=pos, average="binary", zero_division=0))
        return float(f1_score(t, p, labels=list(range(k)), average="macro", zero_division=0))
