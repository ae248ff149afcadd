"""
Column Pruner: project a table down to the fields used by the analysis.
"""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from .errors import SchemaError


def require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    """Raise SchemaError listing every column of `columns` absent from `df`"""
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise SchemaError(f"Missing required columns: {missing}")


def _as_list(columns: Iterable[str]) -> List[str]:
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def keep_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """
    Return a new table with exactly `columns`, in the order given.

    Row order and row count are preserved.
    """
    columns = _as_list(columns)
    require_columns(df, columns)
    if len(set(columns)) != len(columns):
        raise SchemaError(f"Duplicate column names in keep-set: {columns}")
    return df.loc[:, columns].copy()


def drop_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Return a new table without `columns`"""
    columns = _as_list(columns)
    require_columns(df, columns)
    return df.drop(columns=columns).copy()
