# tidyml/tune/tuner.py
"""Grid search over resamples.

Per fold the recipe is prepared once on the analysis rows; every candidate
is then fitted on the baked analysis rows and scored on the baked
assessment rows. Folds are independent, so with ``n_jobs != 1`` they run
in joblib workers, each returning its own record buffer; the buffers are
merged and ordered by (candidate, fold) once all workers are done.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from ..errors import TuneError
from ..metrics import MetricSet, as_metric_set
from ..splits import FoldSet, Split
from ..workflow import Workflow, predict_frame
from .control import ControlGrid
from .grids import make_grid
from .params import as_python, finalize_params, needs_finalize, parameters
from .results import TuneResults

logger = logging.getLogger(__name__)

Candidate = Tuple[str, Dict[str, Any]]


def config_ids(n: int) -> List[str]:
    width = max(2, len(str(n))) if n > 1 else 1
    return [f"Preprocessor1_Model{i:0{width}d}" for i in range(1, n + 1)]


def _candidates(grid: pd.DataFrame) -> List[Candidate]:
    ids = config_ids(len(grid))
    records = grid.to_dict(orient="records")
    return [(cid, {k: as_python(v) for k, v in rec.items()}) for cid, rec in zip(ids, records)]


def _evaluate_fold(
    workflow: Workflow,
    split: Split,
    candidates: List[Candidate],
    metrics: MetricSet,
    control: ControlGrid,
) -> Tuple[List[Dict[str, Any]], List[pd.DataFrame]]:
    """Fit and score every candidate on one fold; returns this fold's own buffers."""
    analysis = split.analysis()
    assessment = split.assessment()
    prepped = workflow.recipe_for(split.data).prep(analysis)
    baked_train = prepped.juice()
    baked_test = prepped.bake(assessment)
    outcome = prepped.outcome
    args_of = workflow.model.tune_args()

    records: List[Dict[str, Any]] = []
    preds: List[pd.DataFrame] = []
    for config, values in candidates:
        spec = workflow.model.update(**{args_of[pid]: v for pid, v in values.items()})
        fitted = workflow.fit_prepped(prepped, baked_train, seed=control.seed, model=spec)
        pred = predict_frame(fitted.model, baked_test[prepped.predictors_])
        truth = baked_test[outcome]
        scores = metrics(truth, pred, levels=fitted.levels, event_level=control.event_level)
        for row in scores.itertuples(index=False):
            records.append(
                {"id": split.id, "config": config, **values,
                 "metric": row.metric, "estimator": row.estimator, "estimate": row.estimate}
            )
        if control.save_pred:
            frame = pred.reset_index(drop=True)
            frame.insert(0, "row", split.out_id + 1)
            frame.insert(0, "id", split.id)
            frame[outcome] = truth.reset_index(drop=True)
            frame["config"] = config
            for pid, v in values.items():
                frame[pid] = v
            preds.append(frame)
    logger.debug("%s: %d candidates scored on %d rows", split.id, len(candidates), len(assessment))
    return records, preds


def _run(workflow, resamples, candidates, metrics, control) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
    if control.n_jobs == 1:
        folds = tqdm(resamples, desc="folds", disable=not control.verbose)
        buffers = [_evaluate_fold(workflow, split, candidates, metrics, control) for split in folds]
    else:
        buffers = Parallel(n_jobs=control.n_jobs, verbose=10 if control.verbose else 0)(
            delayed(_evaluate_fold)(workflow, split, candidates, metrics, control) for split in resamples
        )

    records = [r for recs, _ in buffers for r in recs]
    metrics_df = pd.DataFrame(records)
    config_order = {cid: i for i, (cid, _) in enumerate(candidates)}
    fold_order = {fid: i for i, fid in enumerate(resamples.ids)}
    metric_order = {name: i for i, name in enumerate(metrics.names)}
    metrics_df = (
        metrics_df.assign(
            _c=metrics_df["config"].map(config_order),
            _f=metrics_df["id"].map(fold_order),
            _m=metrics_df["metric"].map(metric_order),
        )
        .sort_values(["_c", "_f", "_m"], kind="mergesort")
        .drop(columns=["_c", "_f", "_m"])
        .reset_index(drop=True)
    )

    predictions = None
    if control.save_pred:
        frames = [f for _, fs in buffers for f in fs]
        predictions = pd.concat(frames, ignore_index=True)
        predictions = (
            predictions.assign(_c=predictions["config"].map(config_order), _f=predictions["id"].map(fold_order))
            .sort_values(["_c", "_f", "row"], kind="mergesort")
            .drop(columns=["_c", "_f"])
            .reset_index(drop=True)
        )
    return metrics_df, predictions


def _prepare(workflow: Workflow, resamples: FoldSet, metrics, control: Optional[ControlGrid]):
    if workflow.model is None:
        raise TuneError("Workflow has no model")
    if workflow.model.mode == "unknown":
        raise TuneError(f"{workflow.model.family}: set the mode before tuning")
    if len(resamples) == 0:
        raise TuneError("No resamples to evaluate")
    return as_metric_set(metrics, workflow.model.mode), control or ControlGrid()


def tune_grid(
    workflow: Workflow,
    resamples: FoldSet,
    grid: Any = 10,
    metrics: Any = None,
    control: Optional[ControlGrid] = None,
    ranges: Optional[Dict[str, Any]] = None,
) -> TuneResults:
    """Evaluate every grid candidate on every resample.

    Args:
        workflow: Workflow whose model has ``tune()`` arguments.
        resamples: Folds from ``vfold_cv``.
        grid: Number of Latin hypercube points, an explicit frame / list of
            dicts, or a ``{"type": ..., ...}`` description (see ``make_grid``).
        metrics: Metric names, a ``MetricSet`` or None for the mode defaults.
        control: ``ControlGrid`` options.
        ranges: Per-parameter range overrides for generated grids.

    Returns:
        TuneResults
    """
    metric_set, control = _prepare(workflow, resamples, metrics, control)
    pids = list(workflow.model.tune_args())
    if not pids:
        raise TuneError("Model has no tune() arguments; use fit_resamples() instead")

    explicit = isinstance(grid, (pd.DataFrame, list, tuple))
    if explicit:
        params = dict.fromkeys(pids)
    else:
        params = parameters(workflow.model, ranges)
        if needs_finalize(params):
            # data-dependent bounds come from the preprocessed training rows
            probe = workflow.recipe_for(resamples.data).prep(resamples.data, retain=False)
            params = finalize_params(params, len(probe.predictors_))
    grid_df = make_grid(grid, params, seed=control.seed)
    candidates = _candidates(grid_df)

    logger.info(
        "tune_grid: %d candidates x %d resamples (%s, n_jobs=%d)",
        len(candidates), len(resamples), workflow.model.family, control.n_jobs,
    )
    metrics_df, predictions = _run(workflow, resamples, candidates, metric_set, control)
    grid_out = grid_df.copy()
    grid_out.insert(0, "config", [cid for cid, _ in candidates])
    return TuneResults(
        metrics=metrics_df,
        param_names=pids,
        metric_set=metric_set,
        grid=grid_out,
        workflow=workflow,
        predictions=predictions,
        outcome=workflow.recipe_for(resamples.data).outcome,
        resample_ids=resamples.ids,
    )


def fit_resamples(
    workflow: Workflow,
    resamples: FoldSet,
    metrics: Any = None,
    control: Optional[ControlGrid] = None,
) -> TuneResults:
    """Resample a fully specified workflow (a single candidate)."""
    metric_set, control = _prepare(workflow, resamples, metrics, control)
    pending = workflow.model.tunable()
    if pending:
        raise TuneError(f"Workflow still has tune() arguments {pending}; use tune_grid() or finalize_workflow()")
    candidates: List[Candidate] = [(config_ids(1)[0], {})]
    logger.info("fit_resamples: %s over %d resamples", workflow.model.family, len(resamples))
    metrics_df, predictions = _run(workflow, resamples, candidates, metric_set, control)
    return TuneResults(
        metrics=metrics_df,
        param_names=[],
        metric_set=metric_set,
        grid=pd.DataFrame({"config": [candidates[0][0]]}),
        workflow=workflow,
        predictions=predictions,
        outcome=workflow.recipe_for(resamples.data).outcome,
        resample_ids=resamples.ids,
    )


__all__ = ["tune_grid", "fit_resamples", "config_ids"]
