"""Train/test splits and v-fold cross-validation.

All row references are positional (``iloc``) indices into the frame the
split was made from; ``training()`` / ``testing()`` keep the original index
labels so predictions can always be joined back to the source rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from shared.seed import derive_seed
from .errors import SplitError

logger = logging.getLogger(__name__)


@dataclass
class Split:
    data: pd.DataFrame
    in_id: np.ndarray
    out_id: np.ndarray
    id: str = "Resample1"

    def training(self) -> pd.DataFrame:
        return self.data.iloc[self.in_id]

    def testing(self) -> pd.DataFrame:
        return self.data.iloc[self.out_id]

    # rsample vocabulary for resamples
    analysis = training
    assessment = testing

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"<Split {self.id}: {len(self.in_id)}/{len(self.out_id)}/{len(self.data)}>"


@dataclass
class FoldSet:
    splits: List[Split]
    v: int
    repeats: int = 1
    strata: Optional[str] = None
    seed: Optional[int] = None
    data: pd.DataFrame = field(default=None, repr=False)

    def __iter__(self) -> Iterator[Split]:
        return iter(self.splits)

    def __len__(self) -> int:
        return len(self.splits)

    def __getitem__(self, i: int) -> Split:
        return self.splits[i]

    @property
    def ids(self) -> List[str]:
        return [s.id for s in self.splits]

    def summary(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "id": self.ids,
                "analysis": [len(s.in_id) for s in self.splits],
                "assessment": [len(s.out_id) for s in self.splits],
            }
        )


def strata_labels(data: pd.DataFrame, strata: str, breaks: int = 4) -> np.ndarray:
    """Labels used for stratified sampling.

    Numeric columns with more distinct values than ``breaks`` are binned into
    quantiles, everything else is used as is.
    """
    if strata not in data.columns:
        raise SplitError(f"Strata column '{strata}' not found")
    col = data[strata]
    if col.isna().any():
        raise SplitError(f"Strata column '{strata}' contains missing values")
    if pd.api.types.is_numeric_dtype(col) and not pd.api.types.is_bool_dtype(col) and col.nunique() > breaks:
        return pd.qcut(col, q=breaks, labels=False, duplicates="drop").to_numpy()
    return col.astype(str).to_numpy()


def initial_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    strata: Optional[str] = None,
    seed: Optional[int] = None,
    breaks: int = 4,
) -> Split:
    """Partition rows into a training subset (``floor(prop * n)`` rows) and a test subset."""
    n = len(data)
    if not 0 < prop < 1:
        raise SplitError(f"prop must be in (0, 1), got {prop}")
    n_train = int(np.floor(prop * n))
    if n_train < 1 or n - n_train < 1:
        raise SplitError(f"prop={prop} leaves an empty subset for {n} rows")

    stratify = None
    if strata is not None:
        stratify = strata_labels(data, strata, breaks)
        smallest = pd.Series(stratify).value_counts().min()
        if smallest < 2:
            raise SplitError(f"A stratum of '{strata}' has only {smallest} row; need at least 2")

    idx = np.arange(n)
    try:
        tr, te = train_test_split(idx, train_size=n_train, stratify=stratify, random_state=seed, shuffle=True)
    except ValueError as exc:
        raise SplitError(str(exc)) from exc
    split = Split(data=data, in_id=np.sort(tr), out_id=np.sort(te))
    logger.info("initial_split: %d training / %d testing rows (strata=%s)", len(tr), len(te), strata)
    return split


def vfold_cv(
    data: pd.DataFrame,
    v: int = 10,
    repeats: int = 1,
    strata: Optional[str] = None,
    seed: Optional[int] = None,
    breaks: int = 4,
) -> FoldSet:
    """V-fold cross-validation; within one repeat every row is held out exactly once."""
    n = len(data)
    if v < 2:
        raise SplitError(f"v must be >= 2, got {v}")
    if v > n:
        raise SplitError(f"v={v} is larger than the number of rows ({n})")
    if repeats < 1:
        raise SplitError(f"repeats must be >= 1, got {repeats}")

    labels = None
    if strata is not None:
        labels = strata_labels(data, strata, breaks)
        counts = pd.Series(labels).value_counts()
        if counts.min() < v:
            raise SplitError(
                f"Stratum '{counts.idxmin()}' of '{strata}' has {counts.min()} rows, fewer than v={v}"
            )

    idx = np.arange(n)
    width = len(str(v))
    splits: List[Split] = []
    for r in range(repeats):
        rs = derive_seed(seed, r)
        if labels is not None:
            folds_iter = StratifiedKFold(n_splits=v, shuffle=True, random_state=rs).split(idx, labels)
        else:
            folds_iter = KFold(n_splits=v, shuffle=True, random_state=rs).split(idx)
        for k, (tr, va) in enumerate(folds_iter, start=1):
            fold_id = f"Fold{k:0{width}d}"
            if repeats > 1:
                fold_id = f"Repeat{r + 1}_{fold_id}"
            splits.append(Split(data=data, in_id=np.sort(tr), out_id=np.sort(va), id=fold_id))

    logger.info("vfold_cv: %d folds x %d repeats over %d rows (strata=%s)", v, repeats, n, strata)
    return FoldSet(splits=splits, v=v, repeats=repeats, strata=strata, seed=seed, data=data)


__all__ = ["Split", "FoldSet", "initial_split", "vfold_cv", "strata_labels"]
