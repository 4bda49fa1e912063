# tidyml/metrics/metric_set.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..errors import MetricError
from .base import MetricInterface, resolve_levels
from .classification import (
    AccuracyMetric,
    F1Metric,
    KapMetric,
    PrecisionMetric,
    RecallMetric,
    SpecificityMetric,
)
from .probability import LogLossMetric, RocAucMetric
from .regression import MaeMetric, MapeMetric, RmseMetric, RsqMetric, RsqTradMetric

logger = logging.getLogger(__name__)


class RecallAlias(RecallMetric):
    name = "recall"


METRICS: Dict[str, type] = {
    "rmse": RmseMetric,
    "mae": MaeMetric,
    "rsq": RsqMetric,
    "rsq_trad": RsqTradMetric,
    "mape": MapeMetric,
    "accuracy": AccuracyMetric,
    "kap": KapMetric,
    "sensitivity": RecallMetric,
    "recall": RecallAlias,
    "specificity": SpecificityMetric,
    "precision": PrecisionMetric,
    "f_meas": F1Metric,
    "roc_auc": RocAucMetric,
    "mn_log_loss": LogLossMetric,
}

DEFAULT_METRICS = {
    "regression": ("rmse", "rsq"),
    "classification": ("accuracy", "roc_auc"),
}

_MODE_KINDS = {"regression": {"numeric"}, "classification": {"class", "prob"}}


def get_metric(metric: Union[str, MetricInterface]) -> MetricInterface:
    if isinstance(metric, MetricInterface):
        return metric
    try:
        return METRICS[metric]()
    except KeyError:
        raise MetricError(f"Unknown metric: {metric!r} (known: {sorted(METRICS)})") from None


class MetricSet:
    """
    Набор метрик, вычисляемых за один вызов.

    Пример:
        >>> ms = metric_set("accuracy", "roc_auc")
        >>> ms(truth, preds)   # preds: pred_class + pred_<level>
           metric   estimator  estimate
        0  accuracy    binary     0.84
        1  roc_auc     binary     0.91
    """

    def __init__(self, metrics: Sequence[MetricInterface]):
        if not metrics:
            raise MetricError("metric_set needs at least one metric")
        names = [m.name for m in metrics]
        if len(set(names)) != len(names):
            raise MetricError(f"Duplicate metrics in set: {names}")
        kinds = {m.kind for m in metrics}
        if "numeric" in kinds and kinds - {"numeric"}:
            raise MetricError(f"Cannot mix regression and classification metrics: {names}")
        self.metrics: List[MetricInterface] = list(metrics)

    @property
    def names(self) -> List[str]:
        return [m.name for m in self.metrics]

    @property
    def mode(self) -> str:
        return "regression" if self.metrics[0].kind == "numeric" else "classification"

    def direction(self, name: str) -> str:
        return self[name].direction

    def __getitem__(self, name: str) -> MetricInterface:
        for m in self.metrics:
            if m.name == name:
                return m
        raise MetricError(f"Metric {name!r} is not in the set {self.names}")

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __iter__(self):
        return iter(self.metrics)

    def __len__(self) -> int:
        return len(self.metrics)

    def check_mode(self, mode: str) -> None:
        allowed = _MODE_KINDS.get(mode)
        if allowed is None:
            raise MetricError(f"Unknown mode: {mode!r}")
        bad = [m.name for m in self.metrics if m.kind not in allowed]
        if bad:
            raise MetricError(f"Metrics {bad} do not apply to {mode} models")

    def __call__(
        self,
        truth: pd.Series,
        predictions: pd.DataFrame,
        levels: Optional[Sequence[Any]] = None,
        event_level: str = "first",
    ) -> pd.DataFrame:
        """Evaluate every metric.

        Args:
            truth: Observed outcome.
            predictions: ``pred`` for regression; ``pred_class`` and
                ``pred_<level>`` columns for classification.
            levels: Outcome levels; taken from a categorical ``truth`` when omitted.
            event_level: 'first' or 'second' level is the positive class.

        Returns:
            pd.DataFrame with columns ``metric``, ``estimator``, ``estimate``.
        """
        if len(truth) != len(predictions):
            raise MetricError(f"truth has {len(truth)} rows but predictions have {len(predictions)}")
        rows = []
        if self.mode == "regression":
            if "pred" not in predictions.columns:
                raise MetricError("Regression metrics need a 'pred' column")
            for m in self.metrics:
                rows.append({"metric": m.name, "estimator": m.estimator(), "estimate": m(truth, predictions["pred"])})
        else:
            levels = resolve_levels(truth, levels)
            for m in self.metrics:
                if m.kind == "class":
                    if "pred_class" not in predictions.columns:
                        raise MetricError(f"{m.name} needs a 'pred_class' column")
                    value = m(truth, predictions["pred_class"], levels=levels, event_level=event_level)
                else:
                    value = m(truth, predictions, levels=levels, event_level=event_level)
                rows.append({"metric": m.name, "estimator": m.estimator(len(levels)), "estimate": value})
        return pd.DataFrame(rows, columns=["metric", "estimator", "estimate"])

    def __repr__(self) -> str:
        return f"metric_set({', '.join(self.names)})"


def metric_set(*metrics: Union[str, MetricInterface]) -> MetricSet:
    if len(metrics) == 1 and isinstance(metrics[0], (list, tuple)):
        metrics = tuple(metrics[0])
    return MetricSet([get_metric(m) for m in metrics])


def default_metrics(mode: str) -> MetricSet:
    if mode not in DEFAULT_METRICS:
        raise MetricError(f"Unknown mode: {mode!r}")
    return metric_set(*DEFAULT_METRICS[mode])


def as_metric_set(metrics: Any, mode: str) -> MetricSet:
    """None -> defaults for the mode; names / metric objects -> MetricSet; checked against ``mode``."""
    if metrics is None:
        ms = default_metrics(mode)
    elif isinstance(metrics, MetricSet):
        ms = metrics
    elif isinstance(metrics, (str, MetricInterface)):
        ms = metric_set(metrics)
    else:
        ms = metric_set(*metrics)
    ms.check_mode(mode)
    return ms


__all__ = ["METRICS", "MetricSet", "metric_set", "get_metric", "default_metrics", "as_metric_set"]
