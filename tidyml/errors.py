"""Exceptions raised by the workflow layer.

Each error also derives from the builtin a caller would naturally catch
(``ValueError`` for bad input, ``RuntimeError`` for estimator failures).
"""


class WorkflowError(Exception):
    """Base class for all tidyml errors."""


class SplitError(WorkflowError, ValueError):
    """Split or fold parameters are incompatible with the data."""


class RecipeError(WorkflowError, ValueError):
    """A recipe cannot be prepared or applied."""


class ModelSpecError(WorkflowError, ValueError):
    """Invalid family / engine / mode combination or unresolved tuning marker."""


class FitError(WorkflowError, RuntimeError):
    """The underlying estimator failed to fit or predict."""


class MetricError(WorkflowError, ValueError):
    """Metric prerequisites are not met (mode, positive class, columns)."""


class TuneError(WorkflowError, ValueError):
    """Invalid grid, control or selection request."""


__all__ = [
    "WorkflowError",
    "SplitError",
    "RecipeError",
    "ModelSpecError",
    "FitError",
    "MetricError",
    "TuneError",
]
