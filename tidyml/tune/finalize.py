# tidyml/tune/finalize.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pandas as pd

from ..errors import TuneError
from ..metrics import MetricSet, as_metric_set
from ..models import ModelSpec
from ..splits import Split
from ..workflow import FittedWorkflow, Workflow, predict_frame

logger = logging.getLogger(__name__)


def finalize_model(spec: ModelSpec, params: Mapping[str, Any]) -> ModelSpec:
    """Replace every ``tune()`` marker with its value from ``params`` (keyed by tune id)."""
    args_of = spec.tune_args()
    missing = [pid for pid in args_of if pid not in params]
    if missing:
        raise TuneError(f"No values for tuned parameters {missing}")
    return spec.update(**{arg: params[pid] for pid, arg in args_of.items()})


def finalize_workflow(workflow: Workflow, params: Mapping[str, Any]) -> Workflow:
    if workflow.model is None:
        raise TuneError("Workflow has no model")
    final = workflow.update_model(finalize_model(workflow.model, params))
    logger.info("Finalized %s with %s", workflow.model.family, {k: v for k, v in params.items() if k != "config"})
    return final


@dataclass
class LastFit:
    """Final model fitted on the training subset and scored on the test subset."""

    metrics: pd.DataFrame
    predictions: pd.DataFrame
    fitted: FittedWorkflow
    split: Split
    metric_set: MetricSet

    def collect_metrics(self) -> pd.DataFrame:
        return self.metrics.copy()

    def collect_predictions(self) -> pd.DataFrame:
        return self.predictions.copy()

    def extract_workflow(self) -> FittedWorkflow:
        return self.fitted

    def extract_fit(self):
        return self.fitted.extract_fit()

    def __repr__(self) -> str:
        scores = ", ".join(f"{r.metric}={r.estimate:.4f}" for r in self.metrics.itertuples())
        return f"<LastFit {self.fitted.model.family}: {scores}>"


def last_fit(
    workflow: Workflow,
    split: Split,
    metrics: Any = None,
    seed: Optional[int] = None,
    event_level: str = "first",
) -> LastFit:
    """Fit ``workflow`` on ``split.training()`` and evaluate on ``split.testing()``."""
    if workflow.model is None:
        raise TuneError("Workflow has no model")
    pending = workflow.model.tunable()
    if pending:
        raise TuneError(f"Workflow still has tune() arguments {pending}; call finalize_workflow() first")
    metric_set = as_metric_set(metrics, workflow.model.mode)

    fitted = workflow.fit(split.training(), seed=seed)
    baked_test = fitted.recipe.bake(split.testing())
    preds = predict_frame(fitted.model, baked_test[fitted.recipe.predictors_])
    truth = baked_test[fitted.outcome]
    scores = metric_set(truth, preds, levels=fitted.levels, event_level=event_level)
    scores["config"] = "Preprocessor1_Model1"

    predictions = preds.reset_index(drop=True)
    predictions.insert(0, "row", split.out_id + 1)
    predictions.insert(0, "id", "train/test split")
    predictions[fitted.outcome] = truth.reset_index(drop=True)
    logger.info(
        "last_fit on %d/%d rows: %s",
        len(split.in_id), len(split.out_id),
        ", ".join(f"{m}={v:.4f}" for m, v in zip(scores["metric"], scores["estimate"])),
    )
    return LastFit(metrics=scores, predictions=predictions, fitted=fitted, split=split, metric_set=metric_set)


__all__ = ["finalize_model", "finalize_workflow", "last_fit", "LastFit"]
