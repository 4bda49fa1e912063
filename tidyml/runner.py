"""Config-driven experiment: load -> split -> folds -> recipe -> model -> tune -> select -> last fit -> artifacts."""
from __future__ import annotations

import logging
import platform
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd
import sklearn

from shared import artifacts as A
from shared.configs import ResolvedConfig, compute_fingerprint, section_fingerprints
from shared.io import read_dataset
from shared.seed import set_global_seed
from shared.timer import StageTimer

from . import plots
from .errors import TuneError
from .formula import Formula
from .metrics import conf_mat, roc_curve
from .models import spec_from_config
from .recipes import recipe_from_config
from .splits import initial_split, vfold_cv
from .tune import ControlGrid, LastFit, TuneResults, finalize_workflow, fit_resamples, last_fit, tune_grid
from .workflow import Workflow

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    run_id: str
    run_dir: Path
    best_params: Dict[str, Any]
    tune_results: TuneResults
    last_fit: LastFit
    manifest: Dict[str, Any]

    @property
    def final_metrics(self) -> pd.DataFrame:
        return self.last_fit.collect_metrics()


def _select(results: TuneResults, section: Mapping[str, Any]) -> Dict[str, Any]:
    metric = section.get("select_metric")
    rule = section.get("select", "best")
    if rule == "one_std_err":
        order_by = section.get("order_by") or []
        if not order_by:
            raise TuneError("tune.select=one_std_err needs tune.order_by")
        return results.select_by_one_std_err(metric, *order_by)
    return results.select_best(metric)


def _save_plots(run_dir: Path, results: TuneResults, final: LastFit, mode: str, event_level: str) -> list:
    out_dir = run_dir / "plots"
    saved = []

    def keep(fig, name):
        path = out_dir / name
        plots.save(fig, path)
        plots.close(fig)
        saved.append(path.name)

    raw = results.collect_metrics(summarize=False)
    for metric in results.metric_set.names:
        keep(plots.plot_resamples(raw, metric, by="config", kind="box"), f"resamples_{metric}.png")
    if results.param_names:
        keep(plots.plot_tune(results), "tune.png")

    preds = final.collect_predictions()
    outcome = final.fitted.outcome
    if mode == "classification":
        cm = conf_mat(preds[outcome], preds["pred_class"], levels=final.fitted.levels)
        keep(plots.plot_conf_mat(cm), "conf_mat.png")
        prob_cols = [f"pred_{lvl}" for lvl in final.fitted.levels]
        curve = roc_curve(preds[outcome], preds[prob_cols], levels=final.fitted.levels, event_level=event_level)
        keep(plots.plot_roc(curve), "roc_curve.png")
    else:
        keep(plots.plot_fit(preds, x=outcome, y="pred"), "pred_vs_truth.png")
    keep(plots.plot_importance(final.fitted.tidy()), "importance.png")
    return saved


def run_workflow(cfg: Union[ResolvedConfig, Mapping[str, Any]], root: Optional[Union[str, Path]] = None) -> RunResult:
    """Run the experiment described by a resolved config and write its artifacts.

    Args:
        cfg: ``load_config(...)`` result or an already resolved mapping.
        root: Directory for run folders (default ``output.dir`` or ``artifacts/runs``).

    Returns:
        RunResult with the run folder, selected parameters, tuning results and the last fit.
    """
    if isinstance(cfg, ResolvedConfig):
        resolved, fingerprint = dict(cfg.resolved), cfg.fingerprint
        sources, schema_version = list(cfg.sources), cfg.schema_version
    else:
        resolved, fingerprint = dict(cfg), compute_fingerprint(cfg)
        sources, schema_version = [], "unknown"

    for key in ("formula", "dataset", "model"):
        if key not in resolved:
            raise KeyError(f"Config is missing the '{key}' section")

    name = str(resolved.get("name") or resolved.get("run_tag") or "workflow")
    seed = resolved.get("seed")
    if seed is not None:
        set_global_seed(int(seed))
    output = dict(resolved.get("output") or {})
    tune_cfg = dict(resolved.get("tune") or {})
    split_cfg = dict(resolved.get("split") or {})
    folds_cfg = dict(resolved.get("resamples") or {})

    timer = StageTimer()
    with timer:
        with timer.stage("load"):
            ds = resolved["dataset"]
            data = read_dataset(ds["path"], categorical=ds.get("categorical"), levels=ds.get("levels"))
            formula = Formula.parse(resolved["formula"], data.columns)

        with timer.stage("split"):
            split = initial_split(
                data,
                prop=split_cfg.get("prop", 0.75),
                strata=split_cfg.get("strata"),
                seed=split_cfg.get("seed", seed),
            )
            train = split.training()
            folds = vfold_cv(
                train,
                v=folds_cfg.get("v", 10),
                repeats=folds_cfg.get("repeats", 1),
                strata=folds_cfg.get("strata"),
                seed=folds_cfg.get("seed", seed),
            )

        rec = recipe_from_config(formula, train, resolved.get("recipe") or [])
        spec = spec_from_config(resolved["model"])
        wf = Workflow().add_recipe(rec).add_model(spec)
        event_level = tune_cfg.get("event_level", "first")
        control = ControlGrid(
            save_pred=bool(tune_cfg.get("save_pred", output.get("save_pred", False))),
            verbose=bool(tune_cfg.get("verbose", False)),
            n_jobs=int(tune_cfg.get("n_jobs", 1)),
            seed=tune_cfg.get("seed", seed),
            event_level=event_level,
        )
        metrics = tune_cfg.get("metrics")

        with timer.stage("tune"):
            if spec.tunable():
                grid = tune_cfg.get("grid", 10)
                ranges = grid.get("ranges") if isinstance(grid, Mapping) else None
                results = tune_grid(wf, folds, grid=grid, metrics=metrics, control=control, ranges=ranges)
            else:
                results = fit_resamples(wf, folds, metrics=metrics, control=control)

        best = _select(results, tune_cfg) if results.param_names else {"config": results.grid["config"].iloc[0]}
        final_wf = finalize_workflow(wf, best) if spec.tunable() else wf

        with timer.stage("last_fit"):
            final = last_fit(final_wf, split, metrics=results.metric_set, seed=control.seed, event_level=event_level)

    run_id = A.make_run_id(name, spec.mode, fingerprint, seed)
    run_dir = A.path(run_id, root or output.get("dir"))
    A.save_frame(run_dir, "metrics_summary.csv", results.collect_metrics())
    A.save_frame(run_dir, "metrics_folds.csv", results.collect_metrics(summarize=False))
    A.save_frame(run_dir, "final_metrics.csv", final.collect_metrics())
    A.save_frame(run_dir, "test_predictions.csv", final.collect_predictions())
    A.save_frame(run_dir, "recipe_steps.csv", final.fitted.recipe.tidy())
    A.save_frame(run_dir, "model_terms.csv", final.fitted.tidy())
    if control.save_pred:
        A.save_frame(run_dir, "cv_predictions.csv", results.collect_predictions())
    A.save_json(run_dir, "best_params.json", best)
    A.save_json(run_dir, "config.json", resolved)
    final.fitted.save(run_dir / "model.joblib")

    plot_files = _save_plots(run_dir, results, final, spec.mode, event_level) if output.get("plots", True) else []

    manifest = {
        "run_id": run_id,
        "name": name,
        "created_at": time.strftime("%Y-%m-%dT%H:%M:%S"),
        "fingerprint": fingerprint,
        "section_fingerprints": section_fingerprints(resolved),
        "schema_version": schema_version,
        "sources": sources,
        "seed": seed,
        "formula": str(formula),
        "model": {"family": spec.family, "engine": spec.engine, "mode": spec.mode},
        "data": {"path": str(resolved["dataset"]["path"]), "n_rows": len(data),
                 "n_train": len(split.in_id), "n_test": len(split.out_id)},
        "resamples": {"ids": folds.ids, "v": folds.v, "repeats": folds.repeats},
        "n_candidates": len(results.grid),
        "best_params": best,
        "final_metrics": {r.metric: r.estimate for r in final.collect_metrics().itertuples()},
        "timings": timer.as_dict(),
        "plots": plot_files,
        "versions": {
            "python": platform.python_version(),
            "numpy": np.__version__,
            "pandas": pd.__version__,
            "sklearn": sklearn.__version__,
        },
    }
    A.save_manifest(run_dir, manifest)
    logger.info("Run %s finished in %.2fs -> %s", run_id, timer.get("total") or 0.0, run_dir)
    return RunResult(run_id=run_id, run_dir=run_dir, best_params=best, tune_results=results,
                     last_fit=final, manifest=manifest)


__all__ = ["run_workflow", "RunResult"]
