from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from shared.validators import assert_columns_present, assert_no_duplicate_columns, assert_not_empty

logger = logging.getLogger(__name__)

_READERS = {
    ".csv": pd.read_csv,
    ".parquet": pd.read_parquet,
    ".pq": pd.read_parquet,
    ".feather": pd.read_feather,
}


def read_dataset(
    path: Union[str, Path],
    categorical: Optional[Sequence[str]] = None,
    levels: Optional[Mapping[str, Sequence[Any]]] = None,
) -> pd.DataFrame:
    """Read a tabular file into a DataFrame.

    Args:
        path: CSV, Parquet or Feather file.
        categorical: Columns converted to ``category`` dtype. Levels are sorted
            unless given in ``levels``.
        levels: Explicit level order per column. The first level is the event
            (positive class) for classification metrics.

    Returns:
        pd.DataFrame with a fresh RangeIndex.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    reader = _READERS.get(p.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported dataset format: {p.suffix} (expected one of {sorted(_READERS)})")
    df = reader(p)
    assert_no_duplicate_columns(df)
    assert_not_empty(df, p.name)

    levels = dict(levels or {})
    to_cat = list(categorical or []) + [c for c in levels if c not in (categorical or [])]
    assert_columns_present(df, to_cat)
    for col in to_cat:
        if col in levels:
            observed = set(df[col].dropna().unique())
            declared = list(levels[col])
            unknown = observed - set(declared)
            if unknown:
                raise ValueError(f"Column '{col}' has values outside declared levels: {sorted(map(str, unknown))}")
            df[col] = pd.Categorical(df[col], categories=declared)
        else:
            df[col] = df[col].astype("category")

    logger.info("Loaded %s: %d rows x %d columns", p.name, len(df), df.shape[1])
    return df.reset_index(drop=True)


def write_frame(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() in (".parquet", ".pq"):
        df.to_parquet(p, index=False)
    else:
        df.to_csv(p, index=False)
    return p


__all__ = ["read_dataset", "write_frame"]
