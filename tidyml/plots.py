"""matplotlib figures for fits, tuning results, resampled metrics and classifiers.

Every function returns the ``Figure``; with ``path`` it is also written as PNG.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from scipy.stats import gaussian_kde  # noqa: E402

from .errors import WorkflowError  # noqa: E402
from .tune import TuneResults  # noqa: E402
from .workflow import FittedWorkflow  # noqa: E402

logger = logging.getLogger(__name__)

PathLike = Union[str, Path, None]


def _finish(fig, path: PathLike):
    fig.tight_layout()
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, format="png", dpi=140, bbox_inches="tight")
        logger.debug("Saved plot %s", path)
    return fig


def plot_fit(
    data: pd.DataFrame,
    x: str,
    y: str,
    fitted: Optional[FittedWorkflow] = None,
    color: Optional[str] = None,
    path: PathLike = None,
):
    """Scatter of ``y`` against ``x`` with a fitted line.

    Without ``fitted`` the line is an ordinary least-squares fit of ``y`` on
    ``x`` (per ``color`` group when given). With ``fitted`` (a one-predictor
    regression workflow) its predictions over the range of ``x`` are drawn.
    """
    fig, ax = plt.subplots(figsize=(6, 4))
    groups = [(None, data)] if color is None else list(data.groupby(color, observed=True))
    for key, g in groups:
        ax.scatter(g[x], g[y], s=14, alpha=0.7, label=None if key is None else str(key))
        if fitted is None and len(g) > 1 and g[x].nunique() > 1:
            slope, intercept = np.polyfit(g[x].astype(float), g[y].astype(float), 1)
            xs = np.linspace(g[x].min(), g[x].max(), 50)
            ax.plot(xs, intercept + slope * xs)
    if fitted is not None:
        xs = np.linspace(data[x].min(), data[x].max(), 100)
        pred = fitted.predict(pd.DataFrame({x: xs}))
        ax.plot(xs, pred["pred"].to_numpy(), color="black")
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    if color is not None:
        ax.legend(title=color, fontsize=8)
    return _finish(fig, path)


def plot_tune(results: TuneResults, metric: Optional[str] = None, param: Optional[str] = None, path: PathLike = None):
    """Mean resampled metric (± one standard error) against a tuned parameter."""
    if not results.param_names:
        raise WorkflowError("Nothing was tuned; there is no parameter to plot against")
    param = param or results.param_names[0]
    if param not in results.param_names:
        raise WorkflowError(f"{param!r} was not tuned; choose from {results.param_names}")
    summary = results.collect_metrics()
    metrics = [metric] if metric else results.metric_set.names
    fig, axes = plt.subplots(1, len(metrics), figsize=(4.5 * len(metrics), 3.8), squeeze=False)
    for ax, name in zip(axes[0], metrics):
        sub = summary[summary["metric"] == name].sort_values(param, kind="mergesort")
        ax.errorbar(sub[param], sub["mean"], yerr=sub["std_err"].fillna(0), fmt="o-", ms=4, capsize=2)
        if param in ("penalty", "learn_rate", "loss_reduction", "cost_complexity") and (sub[param] > 0).all():
            ax.set_xscale("log")
        ax.set_xlabel(param)
        ax.set_ylabel(name)
        ax.set_title(name)
    return _finish(fig, path)


def plot_resamples(
    metrics: pd.DataFrame,
    metric: str,
    by: str = "config",
    kind: str = "box",
    path: PathLike = None,
):
    """Distribution of per-resample estimates of ``metric`` grouped by ``by``.

    ``metrics`` is a raw metric table (``collect_metrics(summarize=False)``);
    ``kind`` is 'box', 'density' or 'bar' (mean with standard error).
    """
    sub = metrics[metrics["metric"] == metric]
    if sub.empty:
        raise WorkflowError(f"No estimates for metric {metric!r}")
    groups = [(str(k), g["estimate"].astype(float).to_numpy()) for k, g in sub.groupby(by, sort=False)]
    fig, ax = plt.subplots(figsize=(6, 4))
    if kind == "box":
        ax.boxplot([v for _, v in groups])
        ax.set_xticks(range(1, len(groups) + 1))
        ax.set_xticklabels([k for k, _ in groups], rotation=30, ha="right")
        ax.set_ylabel(metric)
    elif kind == "density":
        for label, values in groups:
            if len(values) > 1 and np.std(values) > 0:
                xs = np.linspace(values.min(), values.max(), 200)
                ax.plot(xs, gaussian_kde(values)(xs), label=label)
            else:
                ax.axvline(values.mean(), label=label)
        ax.set_xlabel(metric)
        ax.set_ylabel("density")
        ax.legend(fontsize=8)
    elif kind == "bar":
        means = [v.mean() for _, v in groups]
        errs = [v.std(ddof=1) / np.sqrt(len(v)) if len(v) > 1 else 0.0 for _, v in groups]
        ax.bar(range(len(groups)), means, yerr=errs, capsize=3)
        ax.set_xticks(range(len(groups)))
        ax.set_xticklabels([k for k, _ in groups], rotation=30, ha="right")
        ax.set_ylabel(metric)
    else:
        raise WorkflowError(f"Unknown plot kind: {kind!r} (use box, density or bar)")
    return _finish(fig, path)


def plot_conf_mat(cm: pd.DataFrame, path: PathLike = None):
    """Heatmap of a ``conf_mat`` frame (predictions in rows, truth in columns)."""
    fig, ax = plt.subplots(figsize=(4.5, 4))
    im = ax.imshow(cm.to_numpy(), cmap="Blues")
    ax.set_xticks(range(cm.shape[1]))
    ax.set_xticklabels([str(c) for c in cm.columns])
    ax.set_yticks(range(cm.shape[0]))
    ax.set_yticklabels([str(i) for i in cm.index])
    ax.set_xlabel("Truth")
    ax.set_ylabel("Prediction")
    threshold = cm.to_numpy().max() / 2 if cm.size else 0
    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            value = cm.iat[i, j]
            ax.text(j, i, str(value), ha="center", va="center", color="white" if value > threshold else "black")
    fig.colorbar(im, ax=ax, fraction=0.046)
    return _finish(fig, path)


def plot_roc(curve: pd.DataFrame, path: PathLike = None):
    """ROC curve(s) from ``roc_curve``: sensitivity against 1 - specificity."""
    fig, ax = plt.subplots(figsize=(4.5, 4.5))
    groups = list(curve.groupby("level", sort=False)) if "level" in curve.columns else [(None, curve)]
    for level, g in groups:
        g = g.sort_values(["specificity", "sensitivity"], ascending=[False, True], kind="mergesort")
        ax.plot(1 - g["specificity"], g["sensitivity"], label=None if level is None else str(level))
    ax.plot([0, 1], [0, 1], linestyle="--", color="grey")
    ax.set_xlabel("1 - specificity")
    ax.set_ylabel("sensitivity")
    ax.set_aspect("equal")
    if len(groups) > 1:
        ax.legend(fontsize=8)
    return _finish(fig, path)


def plot_importance(table: pd.DataFrame, top: int = 20, path: PathLike = None):
    """Horizontal bars of a model ``tidy()`` table (importances or absolute coefficients)."""
    value_col = "importance" if "importance" in table.columns else "estimate"
    df = table[table["term"] != "(Intercept)"].copy()
    df["_v"] = df[value_col].abs()
    df = df.sort_values("_v", ascending=False, kind="mergesort").head(top)[::-1]
    fig, ax = plt.subplots(figsize=(6, max(2.5, 0.3 * len(df))))
    ax.barh(df["term"].astype(str), df["_v"])
    ax.set_xlabel(value_col if value_col == "importance" else "|estimate|")
    return _finish(fig, path)


def save(fig, path: PathLike):
    return _finish(fig, path)


def close(fig) -> None:
    plt.close(fig)


__all__ = [
    "plot_fit",
    "plot_tune",
    "plot_resamples",
    "plot_conf_mat",
    "plot_roc",
    "plot_importance",
    "save",
    "close",
]
