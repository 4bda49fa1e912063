# tidyml/tune/results.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..errors import TuneError
from ..metrics import MetricSet
from .params import as_python

logger = logging.getLogger(__name__)


def _rank(summary: pd.DataFrame, direction: str) -> pd.DataFrame:
    """Best first; ties keep candidate enumeration order (stable sort)."""
    score = summary["mean"] if direction == "minimize" else -summary["mean"]
    return (
        summary.assign(_score=score)
        .sort_values("_score", kind="mergesort", na_position="last")
        .drop(columns="_score")
        .reset_index(drop=True)
    )


@dataclass
class TuneResults:
    """
    Результаты ``tune_grid`` / ``fit_resamples``.

    Attributes:
        metrics (pd.DataFrame): Сырые записи ``(id, config, <params>, metric, estimator, estimate)``,
            упорядоченные по (кандидат, фолд).
        param_names (List[str]): Настраиваемые параметры.
        metric_set (MetricSet): Вычисленные метрики; первая используется по умолчанию для выбора.
        grid (pd.DataFrame): Кандидаты с их ``config``.
        predictions (pd.DataFrame | None): Предсказания на отложенных строках (``save_pred=True``).
    """

    metrics: pd.DataFrame
    param_names: List[str]
    metric_set: MetricSet
    grid: pd.DataFrame
    workflow: Any = None
    predictions: Optional[pd.DataFrame] = None
    outcome: Optional[str] = None
    resample_ids: List[str] = field(default_factory=list)

    def _metric(self, metric: Optional[str]) -> str:
        if metric is None:
            metric = self.metric_set.names[0]
            logger.info("No metric given; using '%s'", metric)
        if metric not in self.metric_set:
            raise TuneError(f"Metric {metric!r} was not computed; available: {self.metric_set.names}")
        return metric

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Per candidate and metric: mean, min, max, std, n, std_err (or raw records)."""
        if not summarize:
            return self.metrics.copy()
        keys = ["config", *self.param_names, "metric", "estimator"]
        config_order = {cid: i for i, cid in enumerate(self.grid["config"])}
        metric_order = {name: i for i, name in enumerate(self.metric_set.names)}
        rows = []
        for (config, metric), g in self.metrics.groupby(["config", "metric"], sort=False):
            est = g["estimate"].astype(float)
            n = int(est.notna().sum())
            std = float(est.std(ddof=1)) if n > 1 else float("nan")
            first = g.iloc[0]
            rows.append(
                {
                    **{k: first[k] for k in keys},
                    "mean": float(est.mean()),
                    "min": float(est.min()),
                    "max": float(est.max()),
                    "std": std,
                    "n": n,
                    "std_err": std / np.sqrt(n) if n > 1 else float("nan"),
                }
            )
        out = pd.DataFrame(rows, columns=[*keys, "mean", "min", "max", "std", "n", "std_err"])
        order = out["config"].map(config_order) * len(metric_order) + out["metric"].map(metric_order)
        return out.iloc[np.argsort(order.to_numpy(), kind="stable")].reset_index(drop=True)

    def collect_predictions(self) -> pd.DataFrame:
        if self.predictions is None:
            raise TuneError("Predictions were not saved; rerun with ControlGrid(save_pred=True)")
        return self.predictions.copy()

    def show_best(self, metric: Optional[str] = None, n: int = 5) -> pd.DataFrame:
        """Top ``n`` candidates by mean ``metric`` in the metric's direction."""
        metric = self._metric(metric)
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric].reset_index(drop=True)
        return _rank(summary, self.metric_set.direction(metric)).head(n)

    def select_best(self, metric: Optional[str] = None) -> Dict[str, Any]:
        """Parameters of the best candidate; ties go to the first enumerated candidate."""
        best = self.show_best(metric, n=1).iloc[0]
        out = {p: as_python(best[p]) for p in self.param_names}
        out["config"] = best["config"]
        return out

    def select_by_one_std_err(self, metric: Optional[str] = None, *order_by: str) -> Dict[str, Any]:
        """Simplest candidate within one standard error of the best.

        ``order_by`` names the parameters that define "simplest" (ascending;
        prefix with ``-`` for descending), e.g. ``("-penalty",)`` prefers the
        largest penalty.
        """
        metric = self._metric(metric)
        if not order_by:
            raise TuneError("select_by_one_std_err needs at least one parameter to order by")
        direction = self.metric_set.direction(metric)
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric].reset_index(drop=True)
        best = _rank(summary, direction).iloc[0]
        se = 0.0 if pd.isna(best["std_err"]) else float(best["std_err"])
        if direction == "minimize":
            pool = summary[summary["mean"] <= best["mean"] + se]
        else:
            pool = summary[summary["mean"] >= best["mean"] - se]

        cols, ascending = [], []
        for key in order_by:
            name = key.lstrip("-")
            if name not in self.param_names:
                raise TuneError(f"Cannot order by {name!r}; tuned parameters are {self.param_names}")
            cols.append(name)
            ascending.append(not key.startswith("-"))
        chosen = pool.sort_values(cols, ascending=ascending, kind="mergesort").iloc[0]
        out = {p: as_python(chosen[p]) for p in self.param_names}
        out["config"] = chosen["config"]
        return out

    def __repr__(self) -> str:
        return (
            f"<TuneResults {len(self.grid)} candidates x {len(self.resample_ids)} resamples, "
            f"metrics={self.metric_set.names}>"
        )


__all__ = ["TuneResults"]
