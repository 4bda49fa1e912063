# tidyml/tune/control.py
from dataclasses import dataclass
from typing import Optional

from ..errors import TuneError
from ..metrics.base import EVENT_LEVELS


@dataclass(frozen=True)
class ControlGrid:
    """Tuning loop options.

    Attributes:
        save_pred (bool): Keep held-out predictions for ``collect_predictions``.
        verbose (bool): Progress bar over folds.
        n_jobs (int): joblib workers over folds (1 = sequential, -1 = all cores).
        seed (int | None): Seed handed to every model fit.
        event_level (str): 'first' or 'second' outcome level is the positive class.
    """

    save_pred: bool = False
    verbose: bool = False
    n_jobs: int = 1
    seed: Optional[int] = None
    event_level: str = "first"

    def __post_init__(self):
        if self.n_jobs == 0:
            raise TuneError("n_jobs must be non-zero")
        if self.event_level not in EVENT_LEVELS:
            raise TuneError(f"event_level must be one of {EVENT_LEVELS}, got {self.event_level!r}")


control_grid = ControlGrid
control_resamples = ControlGrid

__all__ = ["ControlGrid", "control_grid", "control_resamples"]
