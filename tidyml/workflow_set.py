"""Compare several workflows on the same resamples."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from .errors import TuneError
from .splits import FoldSet
from .tune import ControlGrid, TuneResults, fit_resamples, tune_grid
from .workflow import Workflow

logger = logging.getLogger(__name__)


@dataclass
class WorkflowSetResults:
    """Per-workflow ``TuneResults`` keyed by workflow name, in the order given."""

    results: Dict[str, TuneResults]

    def __getitem__(self, name: str) -> TuneResults:
        try:
            return self.results[name]
        except KeyError:
            raise KeyError(f"No workflow named {name!r}; have {list(self.results)}") from None

    def __iter__(self):
        return iter(self.results.items())

    def __len__(self) -> int:
        return len(self.results)

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        frames = []
        for name, res in self.results.items():
            df = res.collect_metrics(summarize=summarize)
            df.insert(0, "wflow_id", name)
            frames.append(df)
        return pd.concat(frames, ignore_index=True)

    def rank_results(self, metric: Optional[str] = None, select_best: bool = True) -> pd.DataFrame:
        """Rank candidates across workflows by mean ``metric``.

        With ``select_best`` only the best candidate of each workflow is kept.
        Ties keep workflow order, then candidate order.
        """
        first = next(iter(self.results.values()))
        metric = first._metric(metric)
        direction = first.metric_set.direction(metric)
        rows = []
        for name, res in self.results.items():
            summary = res.show_best(metric, n=1 if select_best else len(res.grid))
            for rec in summary.to_dict(orient="records"):
                rows.append(
                    {
                        "wflow_id": name,
                        "config": rec["config"],
                        "model": res.workflow.model.family if res.workflow is not None else None,
                        "metric": metric,
                        "mean": rec["mean"],
                        "std_err": rec["std_err"],
                        "n": rec["n"],
                    }
                )
        out = pd.DataFrame(rows)
        score = out["mean"] if direction == "minimize" else -out["mean"]
        out = out.assign(_s=score).sort_values("_s", kind="mergesort").drop(columns="_s").reset_index(drop=True)
        out.insert(0, "rank", range(1, len(out) + 1))
        return out


def workflow_map(
    workflows: Mapping[str, Workflow],
    resamples: FoldSet,
    grid: Any = 10,
    metrics: Any = None,
    control: Optional[ControlGrid] = None,
) -> WorkflowSetResults:
    """Tune (or resample, when nothing is tuned) every workflow on the same folds."""
    if not workflows:
        raise TuneError("workflow_map needs at least one workflow")
    modes = {wf.model.mode for wf in workflows.values() if wf.model is not None}
    if len(modes) > 1:
        raise TuneError(f"All workflows must share a mode, got {sorted(modes)}")
    results: Dict[str, TuneResults] = {}
    for name, wf in workflows.items():
        logger.info("workflow_map: %s", name)
        if wf.model is not None and wf.model.tunable():
            results[name] = tune_grid(wf, resamples, grid=grid, metrics=metrics, control=control)
        else:
            results[name] = fit_resamples(wf, resamples, metrics=metrics, control=control)
    return WorkflowSetResults(results=results)


__all__ = ["WorkflowSetResults", "workflow_map"]
