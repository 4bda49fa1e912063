# tidyml/metrics/curves.py
from typing import Any, Optional, Sequence

import pandas as pd
from sklearn.metrics import confusion_matrix
from sklearn.metrics import roc_curve as _sk_roc_curve

from ..errors import MetricError
from .base import as_codes, event_of, resolve_levels
from .probability import prob_matrix


def conf_mat(truth: pd.Series, estimate: Any, levels: Optional[Sequence[Any]] = None) -> pd.DataFrame:
    """Confusion matrix with predictions in rows and truth in columns."""
    levels = resolve_levels(truth, levels)
    t = as_codes(truth, levels)
    p = as_codes(estimate, levels)
    cm = confusion_matrix(t, p, labels=list(range(len(levels)))).T
    out = pd.DataFrame(cm, index=pd.Index(levels, name="Prediction"), columns=pd.Index(levels, name="Truth"))
    return out


def roc_curve(
    truth: pd.Series,
    probs: pd.DataFrame,
    levels: Optional[Sequence[Any]] = None,
    event_level: str = "first",
) -> pd.DataFrame:
    """ROC curve points (``threshold``, ``specificity``, ``sensitivity``).

    Two levels: one curve for the positive class. More levels: one-vs-all
    curves stacked with a ``level`` column.
    """
    levels = resolve_levels(truth, levels)
    t = as_codes(truth, levels)
    mat = prob_matrix(probs, levels)
    if len(levels) == 2:
        targets = [list(levels).index(event_of(levels, event_level))]
    else:
        targets = list(range(len(levels)))

    frames = []
    for k in targets:
        y = (t == k).astype(int)
        if y.min() == y.max():
            raise MetricError(f"ROC curve for level {levels[k]!r} is undefined: truth has a single class")
        fpr, tpr, thr = _sk_roc_curve(y, mat[:, k])
        frame = pd.DataFrame({"threshold": thr, "specificity": 1 - fpr, "sensitivity": tpr})
        if len(levels) > 2:
            frame.insert(0, "level", levels[k])
        frames.append(frame)
    return pd.concat(frames, ignore_index=True)


__all__ = ["conf_mat", "roc_curve"]
