from typing import Iterable

import pandas as pd


def assert_no_duplicate_columns(df: pd.DataFrame) -> None:
    dupes = df.columns[df.columns.duplicated()].tolist()
    if dupes:
        raise ValueError(f"Duplicate columns: {dupes}")


def assert_columns_present(df: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Missing columns: {missing}")


def assert_not_empty(df: pd.DataFrame, what: str = "data") -> None:
    if len(df) == 0:
        raise ValueError(f"{what} has no rows")
