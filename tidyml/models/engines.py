# tidyml/models/engines.py
"""Translate parsnip-style main arguments into engine estimators.

Defaults follow the engines' own defaults except where a main argument is
given; ``engine_args`` are passed through last and win over everything.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

import numpy as np
import sklearn
from sklearn.ensemble import (
    GradientBoostingClassifier,
    GradientBoostingRegressor,
    RandomForestClassifier,
    RandomForestRegressor,
)
from sklearn.linear_model import ElasticNet, Lasso, LinearRegression, LogisticRegression, Ridge
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

from ..errors import ModelSpecError
from .spec import ModelSpec

logger = logging.getLogger(__name__)

_SKLEARN_VERSION = tuple(int(p) for p in re.findall(r"\d+", sklearn.__version__)[:2])
# LogisticRegression(penalty=...) is deprecated from 1.8
_LOGREG_RATIO_ONLY = _SKLEARN_VERSION >= (1, 8)


def _int(value: Any, name: str, lower: int = 1) -> int:
    try:
        out = int(round(float(value)))
    except (TypeError, ValueError) as exc:
        raise ModelSpecError(f"{name} must be an integer, got {value!r}") from exc
    if out < lower:
        raise ModelSpecError(f"{name} must be >= {lower}, got {value!r}")
    return out


def _mtry(value: Any, n_features: int) -> int:
    mtry = _int(value, "mtry")
    if mtry > n_features:
        logger.warning("mtry=%d exceeds %d predictors, using %d", mtry, n_features, n_features)
    return min(mtry, n_features)


# ==================================================================================
# sklearn
# ==================================================================================
def _linear_reg(args: Dict[str, Any], seed: Optional[int]):
    penalty = args.get("penalty")
    mixture = 1.0 if args.get("mixture") is None else float(args["mixture"])
    if not 0 <= mixture <= 1:
        raise ModelSpecError(f"mixture must be in [0, 1], got {mixture}")
    if not penalty:
        return LinearRegression()
    penalty = float(penalty)
    if mixture == 0:
        return Ridge(alpha=penalty, random_state=seed)
    if mixture == 1:
        return Lasso(alpha=penalty, max_iter=10000, random_state=seed)
    return ElasticNet(alpha=penalty, l1_ratio=mixture, max_iter=10000, random_state=seed)


def _logistic(C: float, l1_ratio: float, seed: Optional[int]):
    solver = {} if l1_ratio == 0 else {"solver": "saga", "max_iter": 5000, "random_state": seed}
    if _LOGREG_RATIO_ONLY:
        # 1.8+: the penalty type follows from l1_ratio, C=inf means unpenalized
        return LogisticRegression(C=C, l1_ratio=l1_ratio, **{"max_iter": 1000, **solver})
    if np.isinf(C):
        return LogisticRegression(penalty=None, max_iter=1000)
    if l1_ratio == 0:
        return LogisticRegression(penalty="l2", C=C, max_iter=1000)
    penalty = "l1" if l1_ratio == 1 else "elasticnet"
    extra = {} if l1_ratio == 1 else {"l1_ratio": l1_ratio}
    return LogisticRegression(penalty=penalty, C=C, **extra, **solver)


def _logistic_reg(args: Dict[str, Any], seed: Optional[int]):
    penalty = args.get("penalty")
    mixture = 1.0 if args.get("mixture") is None else float(args["mixture"])
    if not 0 <= mixture <= 1:
        raise ModelSpecError(f"mixture must be in [0, 1], got {mixture}")
    if not penalty:
        return _logistic(np.inf, 0.0, seed)
    return _logistic(1.0 / float(penalty), mixture, seed)


def _rand_forest(args, mode, n_features, seed):
    params: Dict[str, Any] = {
        "n_estimators": _int(args.get("trees", 500), "trees"),
        "min_samples_split": _int(args.get("min_n", 2), "min_n", lower=2),
        "random_state": seed,
        "n_jobs": 1,
    }
    if "mtry" in args:
        params["max_features"] = _mtry(args["mtry"], n_features)
    elif mode == "regression":
        params["max_features"] = max(1, n_features // 3)
    cls = RandomForestRegressor if mode == "regression" else RandomForestClassifier
    return cls(**params)


def _decision_tree(args, mode, seed):
    params: Dict[str, Any] = {
        "ccp_alpha": float(args.get("cost_complexity", 0.0)),
        "max_depth": _int(args["tree_depth"], "tree_depth") if "tree_depth" in args else None,
        "min_samples_split": _int(args.get("min_n", 2), "min_n", lower=2),
        "random_state": seed,
    }
    cls = DecisionTreeRegressor if mode == "regression" else DecisionTreeClassifier
    return cls(**params)


def _boost_sklearn(args, mode, n_features, seed):
    params: Dict[str, Any] = {
        "n_estimators": _int(args.get("trees", 100), "trees"),
        "max_depth": _int(args.get("tree_depth", 3), "tree_depth"),
        "learning_rate": float(args.get("learn_rate", 0.1)),
        "min_samples_split": _int(args.get("min_n", 2), "min_n", lower=2),
        "min_impurity_decrease": float(args.get("loss_reduction", 0.0)),
        "subsample": float(args.get("sample_size", 1.0)),
        "random_state": seed,
    }
    if "mtry" in args:
        params["max_features"] = _mtry(args["mtry"], n_features)
    cls = GradientBoostingRegressor if mode == "regression" else GradientBoostingClassifier
    return cls(**params)


# ==================================================================================
# gradient boosting libraries
# ==================================================================================
def _setup_xgboost(args, mode, n_features, n_classes, seed):
    try:
        import xgboost as xgb
    except ImportError:
        raise ImportError("XGBoost is not installed. Please `pip install xgboost`. ")

    params: Dict[str, Any] = {
        "n_estimators": _int(args.get("trees", 15), "trees"),
        "max_depth": _int(args.get("tree_depth", 6), "tree_depth"),
        "learning_rate": float(args.get("learn_rate", 0.3)),
        "min_child_weight": float(args.get("min_n", 1)),
        "gamma": float(args.get("loss_reduction", 0.0)),
        "subsample": float(args.get("sample_size", 1.0)),
        "random_state": seed if seed is not None else 0,
        "n_jobs": 1,
        "verbosity": 0,
    }
    if "mtry" in args:
        # xgboost expects the proportion of columns per split
        params["colsample_bynode"] = _mtry(args["mtry"], n_features) / n_features
    if mode == "regression":
        params["objective"] = "reg:squarederror"
        return xgb.XGBRegressor(**params)
    params["objective"] = "binary:logistic" if n_classes == 2 else "multi:softprob"
    return xgb.XGBClassifier(**params)


def _setup_lightgbm(args, mode, n_features, n_classes, seed):
    try:
        import lightgbm as lgb
    except ImportError:
        raise ImportError("LightGBM is not installed. Please `pip install lightgbm`. ")

    params: Dict[str, Any] = {
        "n_estimators": _int(args.get("trees", 100), "trees"),
        "max_depth": _int(args["tree_depth"], "tree_depth") if "tree_depth" in args else -1,
        "learning_rate": float(args.get("learn_rate", 0.1)),
        "min_child_samples": _int(args.get("min_n", 20), "min_n"),
        "min_split_gain": float(args.get("loss_reduction", 0.0)),
        "random_state": seed,
        "n_jobs": 1,
        "verbose": -1,
    }
    if "sample_size" in args and float(args["sample_size"]) < 1:
        params["subsample"] = float(args["sample_size"])
        params["subsample_freq"] = 1
    if "mtry" in args:
        params["colsample_bytree"] = _mtry(args["mtry"], n_features) / n_features
    if mode == "regression":
        return lgb.LGBMRegressor(**params)
    return lgb.LGBMClassifier(**params)


def _setup_catboost(args, mode, n_features, n_classes, seed):
    try:
        from catboost import CatBoostClassifier, CatBoostRegressor
    except ImportError:
        raise ImportError("CatBoost is not installed. Please `pip install catboost`. ")

    params: Dict[str, Any] = {
        "iterations": _int(args.get("trees", 100), "trees"),
        "depth": _int(args.get("tree_depth", 6), "tree_depth"),
        "learning_rate": float(args["learn_rate"]) if "learn_rate" in args else None,
        "random_seed": seed if seed is not None else 0,
        "thread_count": 1,
        "verbose": False,
        "allow_writing_files": False,
    }
    if "sample_size" in args:
        params["bootstrap_type"] = "Bernoulli"
        params["subsample"] = float(args["sample_size"])
    if "mtry" in args:
        params["rsm"] = _mtry(args["mtry"], n_features) / n_features
    for unsupported in ("min_n", "loss_reduction"):
        if unsupported in args:
            logger.debug("catboost: '%s' has no symmetric-tree equivalent, ignored", unsupported)
    params = {k: v for k, v in params.items() if v is not None}
    if mode == "regression":
        return CatBoostRegressor(**params)
    return CatBoostClassifier(**params)


_BOOSTERS = {
    "xgboost": _setup_xgboost,
    "lightgbm": _setup_lightgbm,
    "catboost": _setup_catboost,
}


def build_estimator(spec: ModelSpec, n_features: int, n_classes: int = 0, seed: Optional[int] = None):
    """Instantiate the (unfitted) engine estimator for a ready spec."""
    spec.check_ready()
    if n_features < 1:
        raise ModelSpecError("No predictors left after preprocessing")
    args = {k: v for k, v in spec.args.items() if v is not None}
    mode = spec.mode

    if spec.family == "linear_reg":
        est = _linear_reg(args, seed)
    elif spec.family == "logistic_reg":
        est = _logistic_reg(args, seed)
    elif spec.family == "rand_forest":
        est = _rand_forest(args, mode, n_features, seed)
    elif spec.family == "decision_tree":
        est = _decision_tree(args, mode, seed)
    elif spec.family == "boost_tree" and spec.engine == "sklearn":
        est = _boost_sklearn(args, mode, n_features, seed)
    elif spec.family == "boost_tree":
        est = _BOOSTERS[spec.engine](args, mode, n_features, n_classes, seed)
    else:
        raise ModelSpecError(f"No engine mapping for {spec.family}/{spec.engine}")

    if spec.engine_args:
        try:
            est.set_params(**spec.engine_args)
        except ValueError as exc:
            raise ModelSpecError(f"Invalid engine arguments for {spec.engine}: {exc}") from exc
    logger.debug("built %s for %s (%s, %s)", type(est).__name__, spec.family, spec.engine, mode)
    return est


__all__ = ["build_estimator"]
