"""One model per group: ``{group key: GroupFit}`` instead of nested list columns."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from .errors import WorkflowError
from .workflow import FittedWorkflow, Workflow

logger = logging.getLogger(__name__)


@dataclass
class GroupFit:
    """Fit of one group: row count, fitted workflow and its coefficient / importance table."""

    key: Any
    n: int
    fitted: FittedWorkflow
    coefficients: pd.DataFrame


def fit_by_group(
    data: pd.DataFrame,
    by: Union[str, Sequence[str]],
    workflow: Workflow,
    seed: Optional[int] = None,
    min_rows: int = 2,
) -> Dict[Any, GroupFit]:
    """Fit ``workflow`` separately on each group of ``data``.

    Groups come out in sorted key order. The workflow formula decides which
    columns are used, so it should not include the grouping columns.
    Groups with fewer than ``min_rows`` rows are skipped with a warning.
    """
    by_cols: List[str] = [by] if isinstance(by, str) else list(by)
    missing = [c for c in by_cols if c not in data.columns]
    if missing:
        raise KeyError(f"Grouping columns not found: {missing}")

    fits: Dict[Any, GroupFit] = {}
    key_arg = by_cols[0] if len(by_cols) == 1 else by_cols
    for key, g in data.groupby(key_arg, sort=True, observed=True):
        if len(g) < min_rows:
            logger.warning("Group %r has %d rows (< %d), skipped", key, len(g), min_rows)
            continue
        fitted = workflow.fit(g, seed=seed)
        fits[key] = GroupFit(key=key, n=len(g), fitted=fitted, coefficients=fitted.tidy())
        logger.debug("Group %r: fitted on %d rows", key, len(g))
    if not fits:
        raise WorkflowError(f"No group of {by_cols} had at least {min_rows} rows")
    logger.info("fit_by_group: %d groups over %s", len(fits), by_cols)
    return fits


def collect_coefficients(fits: Dict[Any, GroupFit], by: Union[str, Sequence[str]] = "group") -> pd.DataFrame:
    """Stack per-group tables with the group key (and row count) in front."""
    by_cols = [by] if isinstance(by, str) else list(by)
    frames = []
    for key, gf in fits.items():
        df = gf.coefficients.copy()
        values = key if isinstance(key, tuple) else (key,)
        for col, value in reversed(list(zip(by_cols, values))):
            df.insert(0, col, value)
        df["n"] = gf.n
        frames.append(df)
    return pd.concat(frames, ignore_index=True)


__all__ = ["GroupFit", "fit_by_group", "collect_coefficients"]
