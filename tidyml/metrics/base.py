# tidyml/metrics/base.py
from abc import ABC, abstractmethod
from typing import Any, ClassVar, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import MetricError

EVENT_LEVELS = ("first", "second")


class MetricInterface(ABC):
    """Базовый класс метрики.

    ``kind``: 'numeric' (регрессия), 'class' (метки) или 'prob' (вероятности).
    ``direction``: 'maximize' или 'minimize', по нему выбирается лучший кандидат.
    """

    name: ClassVar[str] = "metric"
    kind: ClassVar[str] = "numeric"
    direction: ClassVar[str] = "maximize"

    @abstractmethod
    def __call__(self, y_true: Any, y_pred: Any, **kwargs) -> float:
        # kwargs: levels, event_level
        pass

    def estimator(self, n_levels: int = 0) -> str:
        if self.kind == "numeric":
            return "standard"
        return "binary" if n_levels == 2 else "macro"

    def __repr__(self) -> str:
        return f"{self.name}()"


def resolve_levels(truth: pd.Series, levels: Optional[Sequence[Any]] = None) -> List[Any]:
    """Outcome levels in order; categories of a categorical truth take precedence."""
    if levels is None:
        if isinstance(truth.dtype, pd.CategoricalDtype):
            levels = list(truth.cat.categories)
        else:
            levels = sorted(pd.Series(truth).dropna().unique().tolist(), key=str)
    levels = list(levels)
    unknown = set(pd.Series(truth).dropna().unique().tolist()) - set(levels)
    if unknown:
        raise MetricError(f"Truth has values outside the outcome levels {levels}: {sorted(map(str, unknown))}")
    if len(levels) < 2:
        raise MetricError(f"Classification metrics need at least 2 outcome levels, got {levels}")
    return levels


def event_of(levels: Sequence[Any], event_level: str = "first") -> Any:
    """Positive class for binary metrics."""
    if event_level not in EVENT_LEVELS:
        raise MetricError(f"event_level must be one of {EVENT_LEVELS}, got {event_level!r}")
    return levels[0] if event_level == "first" else levels[1]


def as_codes(values: Any, levels: Sequence[Any]) -> np.ndarray:
    codes = pd.Categorical(np.asarray(values, dtype=object), categories=list(levels)).codes
    if (codes < 0).any():
        raise MetricError(f"Values outside the outcome levels {list(levels)}")
    return codes.astype(int)
