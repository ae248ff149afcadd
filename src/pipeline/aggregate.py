"""
Aggregator: grouped counts / sums over a tidy table.

Output contract:
- Every distinct key in the input appears in the output (missing -> "UNKNOWN")
- Keys are unique and sorted, so identical input gives identical output
- Sum treats missing values as zero
"""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Optional

import pandas as pd

from .errors import SchemaError
from .prune import require_columns

logger = logging.getLogger(__name__)

MISSING_KEY = "UNKNOWN"
OPERATIONS = ("count", "sum")


def _group_keys(values: pd.Series) -> pd.Series:
    """Replace missing keys with MISSING_KEY so no group is dropped"""
    if not values.isna().any():
        return values
    if isinstance(values.dtype, pd.CategoricalDtype):
        if MISSING_KEY not in values.cat.categories:
            values = values.cat.add_categories([MISSING_KEY])
        return values.fillna(MISSING_KEY)
    return values.astype(object).where(values.notna(), MISSING_KEY)


def _sort_index(result: pd.Series) -> pd.Series:
    try:
        return result.sort_index()
    except TypeError:
        # Mixed key types (e.g. ints plus "UNKNOWN"): order by string form
        order = sorted(result.index, key=lambda k: (isinstance(k, str), str(k)))
        return result.reindex(order)


def aggregate(
    df: pd.DataFrame,
    key: str,
    op: str = "count",
    value_column: Optional[str] = None,
) -> pd.Series:
    """
    Group `df` by `key` and count rows or sum `value_column`.

    Args:
        df: Tidy table
        key: Grouping column (raw or derived, e.g. "BORO", "season", "hour")
        op: "count" or "sum"
        value_column: Numeric column to sum (required for op="sum")

    Returns:
        Series indexed by key (index name = key), sorted by key
    """
    if op not in OPERATIONS:
        raise ValueError(f"op must be one of {OPERATIONS}, got {op!r}")
    if op == "sum" and value_column is None:
        raise ValueError("op='sum' requires value_column")

    require_columns(df, [key] + ([value_column] if op == "sum" else []))
    keys = _group_keys(df[key])

    if op == "count":
        result = keys.groupby(keys, observed=True, sort=False).size()
        result.name = "count"
    else:
        values = pd.to_numeric(df[value_column], errors="coerce")
        bad = values.isna() & df[value_column].notna()
        if bad.any():
            raise SchemaError(f"{value_column} is not numeric (e.g. {df[value_column][bad].iloc[0]!r})")
        result = values.fillna(0).groupby(keys, observed=True, sort=False).sum()
        result.name = value_column

    result.index.name = key
    result = _sort_index(result)

    logger.debug("[aggregate] %s by %s: %d groups", op, key, len(result))
    return result


def to_mapping(agg: pd.Series) -> Dict[Hashable, float]:
    """Plain dict view of an aggregate"""
    return {k: v.item() if hasattr(v, "item") else v for k, v in agg.items()}


def crosstab(df: pd.DataFrame, row_key: str, col_key: str) -> pd.DataFrame:
    """
    Two-key count table (rows x columns), both axes sorted.

    Missing keys are counted under MISSING_KEY like in `aggregate`.
    """
    require_columns(df, [row_key, col_key])
    rows = _group_keys(df[row_key])
    cols = _group_keys(df[col_key])
    table = pd.crosstab(rows, cols)
    table.index.name = row_key
    table.columns.name = col_key
    return table.sort_index(axis=0).sort_index(axis=1)


def daily_series(
    df: pd.DataFrame,
    date_column: str,
    unique_id: str,
    value_column: Optional[str] = None,
    fill_missing: bool = True,
) -> pd.DataFrame:
    """
    Build a daily TimeSeries [unique_id, ds, y] from a tidy table.

    Counts rows per day, or sums `value_column` per day. With
    `fill_missing`, days absent between min and max get y=0 so the
    series has no gaps. Rows with a missing date are dropped and counted.
    """
    require_columns(df, [date_column])
    if not pd.api.types.is_datetime64_any_dtype(df[date_column]):
        raise SchemaError(f"{date_column} must be a parsed date column")

    undated = df[date_column].isna()
    if undated.any():
        logger.warning(
            "[aggregate] %s: dropped %d/%d rows without a date",
            unique_id,
            int(undated.sum()),
            len(df),
        )
        df = df.loc[~undated]

    if value_column is None:
        per_day = aggregate(df, date_column, op="count")
    else:
        per_day = aggregate(df, date_column, op="sum", value_column=value_column)

    per_day = per_day.astype(float)
    if fill_missing and not per_day.empty:
        full_range = pd.date_range(per_day.index.min(), per_day.index.max(), freq="D")
        n_missing = len(full_range) - len(per_day)
        if n_missing:
            logger.info("[aggregate] %s: filled %d missing days with 0", unique_id, n_missing)
        per_day = per_day.reindex(full_range, fill_value=0.0)

    series = pd.DataFrame({
        "unique_id": unique_id,
        "ds": pd.DatetimeIndex(per_day.index).normalize(),
        "y": per_day.to_numpy(),
    })
    return series.reset_index(drop=True)
