from .base import MetricInterface, event_of, resolve_levels
from .classification import (
    AccuracyMetric,
    F1Metric,
    KapMetric,
    PrecisionMetric,
    RecallMetric,
    SpecificityMetric,
)
from .curves import conf_mat, roc_curve
from .metric_set import METRICS, MetricSet, as_metric_set, default_metrics, get_metric, metric_set
from .probability import LogLossMetric, RocAucMetric
from .regression import MaeMetric, MapeMetric, RmseMetric, RsqMetric, RsqTradMetric

__all__ = [
    "MetricInterface",
    "MetricSet",
    "METRICS",
    "metric_set",
    "get_metric",
    "default_metrics",
    "as_metric_set",
    "conf_mat",
    "roc_curve",
    "resolve_levels",
    "event_of",
    "RmseMetric",
    "MaeMetric",
    "RsqMetric",
    "RsqTradMetric",
    "MapeMetric",
    "AccuracyMetric",
    "KapMetric",
    "RecallMetric",
    "SpecificityMetric",
    "PrecisionMetric",
    "F1Metric",
    "RocAucMetric",
    "LogLossMetric",
]
