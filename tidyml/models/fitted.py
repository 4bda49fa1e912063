# tidyml/models/fitted.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np
import pandas as pd

from ..errors import FitError, ModelSpecError
from .engines import build_estimator
from .spec import LINEAR_FAMILIES, ModelSpec

logger = logging.getLogger(__name__)


def outcome_levels(y: pd.Series) -> List[Any]:
    if isinstance(y.dtype, pd.CategoricalDtype):
        return list(y.cat.categories)
    return sorted(y.dropna().unique().tolist(), key=str)


# ==================================================================================
# FittedModel
# ==================================================================================
@dataclass
class FittedModel:
    """Fitted estimator tagged by model family.

    Attributes:
        family (str): ``linear_reg``, ``logistic_reg``, ``rand_forest``,
            ``boost_tree`` or ``decision_tree``.
        spec (ModelSpec): The resolved specification that was fitted.
        estimator: The engine object (scikit-learn / xgboost / lightgbm / catboost).
        features (List[str]): Predictor columns, in the order the estimator saw them.
        levels (List): Outcome levels for classification.
        classes (List[int]): Level codes seen during fit; the estimator was
            trained on their positions 0..k-1, so unobserved levels get no column.
    """

    family: str
    spec: ModelSpec
    estimator: Any
    features: List[str]
    levels: Optional[List[Any]] = None
    n_train: int = field(default=0)
    classes: Optional[List[int]] = None

    @property
    def mode(self) -> str:
        return self.spec.mode

    @property
    def engine(self) -> str:
        return self.spec.engine

    def _matrix(self, X: pd.DataFrame) -> np.ndarray:
        missing = [c for c in self.features if c not in X.columns]
        if missing:
            raise FitError(f"{self.family}: prediction data lacks columns {missing}")
        return X[self.features].to_numpy(dtype=float)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Numeric predictions (regression) or predicted levels (classification)."""
        if self.mode == "classification":
            probs = self.predict_proba(X)
            codes = probs.to_numpy().argmax(axis=1)
            return np.asarray(self.levels, dtype=object)[codes]
        try:
            return np.asarray(self.estimator.predict(self._matrix(X)), dtype=float).ravel()
        except FitError:
            raise
        except Exception as exc:
            raise FitError(f"{self.family}/{self.engine} predict failed: {exc}") from exc

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        """Class probabilities, one column per level in level order."""
        if self.mode != "classification":
            raise ModelSpecError(f"{self.family} is a regression model; probabilities are not available")
        try:
            raw = np.asarray(self.estimator.predict_proba(self._matrix(X)), dtype=float)
        except FitError:
            raise
        except Exception as exc:
            raise FitError(f"{self.family}/{self.engine} predict_proba failed: {exc}") from exc
        # estimators only know the levels they saw during fit
        classes = np.asarray(self.classes if self.classes is not None else np.arange(raw.shape[1]), dtype=int)
        out = np.zeros((raw.shape[0], len(self.levels)))
        out[:, classes] = raw
        return pd.DataFrame(out, columns=list(self.levels), index=X.index)

    def tidy(self) -> pd.DataFrame:
        """Coefficients for linear families, variable importances for trees."""
        est = self.estimator
        if self.family in LINEAR_FAMILIES:
            coef = np.atleast_2d(est.coef_)
            intercept = np.atleast_1d(est.intercept_)
            if coef.shape[0] == 1:
                return pd.DataFrame(
                    {"term": ["(Intercept)", *self.features], "estimate": [float(intercept[0]), *map(float, coef[0])]}
                )
            # multinomial: one block per class
            seen = self.classes if self.classes is not None else list(range(len(self.levels)))
            classes = [self.levels[seen[int(c)]] for c in est.classes_]
            rows = []
            for cls, b0, b in zip(classes, intercept, coef):
                rows.append({"class": cls, "term": "(Intercept)", "estimate": float(b0)})
                rows += [{"class": cls, "term": t, "estimate": float(v)} for t, v in zip(self.features, b)]
            return pd.DataFrame(rows)
        importances = getattr(est, "feature_importances_", None)
        if importances is None:
            return pd.DataFrame(columns=["term", "importance"])
        out = pd.DataFrame({"term": self.features, "importance": np.asarray(importances, dtype=float)})
        return out.sort_values("importance", ascending=False, kind="mergesort").reset_index(drop=True)

    def __repr__(self) -> str:
        return f"<FittedModel {self.family}/{self.engine} ({self.mode}, {len(self.features)} predictors, n={self.n_train})>"


def fit_model(spec: ModelSpec, X: pd.DataFrame, y: pd.Series, seed: Optional[int] = None) -> FittedModel:
    """Fit ``spec`` on predictors ``X`` and outcome ``y``.

    Raises:
        ModelSpecError: Mode not set, unresolved ``tune()`` arguments,
            outcome type does not match the mode, non-numeric predictors.
        FitError: The engine failed; the original exception is chained.
    """
    spec.check_ready()
    non_numeric = [
        c for c in X.columns
        if not pd.api.types.is_numeric_dtype(X[c]) or pd.api.types.is_bool_dtype(X[c])
    ]
    if non_numeric:
        raise ModelSpecError(f"Predictors must be numeric, got {non_numeric}; add step_dummy() to the recipe")
    if y.isna().any():
        raise FitError(f"Outcome '{y.name}' contains {int(y.isna().sum())} missing values")

    levels, classes = None, None
    if spec.mode == "classification":
        if pd.api.types.is_numeric_dtype(y) and not isinstance(y.dtype, pd.CategoricalDtype):
            raise ModelSpecError(f"Classification needs a categorical outcome, '{y.name}' is {y.dtype}")
        levels = outcome_levels(y)
        codes = pd.Categorical(y, categories=levels).codes.astype(int)
        # contiguous codes: xgboost rejects label sets with gaps
        observed, target = np.unique(codes, return_inverse=True)
        classes = observed.tolist()
        n_classes = len(classes)
    else:
        if not pd.api.types.is_numeric_dtype(y) or pd.api.types.is_bool_dtype(y):
            raise ModelSpecError(f"Regression needs a numeric outcome, '{y.name}' is {y.dtype}")
        target = y.to_numpy(dtype=float)
        n_classes = 0

    estimator = build_estimator(spec, n_features=X.shape[1], n_classes=n_classes, seed=seed)
    try:
        estimator.fit(X.to_numpy(dtype=float), target)
    except Exception as exc:
        raise FitError(f"{spec.family}/{spec.engine} fit failed on {len(X)} rows: {exc}") from exc
    logger.debug("fitted %s/%s on %d rows x %d predictors", spec.family, spec.engine, *X.shape)
    return FittedModel(
        family=spec.family,
        spec=spec,
        estimator=estimator,
        features=list(X.columns),
        levels=levels,
        n_train=len(X),
        classes=classes,
    )


__all__ = ["FittedModel", "fit_model", "outcome_levels"]
