"""
Type Normalizer: parse raw string columns into typed columns.

Steps:
1. Parse dates to calendar dates (unparseable rows dropped and counted)
2. Parse times to datetime.time (fail loud unless drop is requested)
3. Convert numeric / categorical columns
4. Derive hour-of-day, season, weekday and year

Weekday convention: Monday..Sunday with fixed English labels (WEEKDAYS),
independent of the process locale.
"""

from __future__ import annotations

import logging
import warnings
from datetime import datetime, time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .errors import ParseError, SchemaError
from .prune import require_columns

logger = logging.getLogger(__name__)

SEASONS = ("Winter", "Spring", "Summer", "Fall")
SEASON_BY_MONTH = {
    12: "Winter", 1: "Winter", 2: "Winter",
    3: "Spring", 4: "Spring", 5: "Spring",
    6: "Summer", 7: "Summer", 8: "Summer",
    9: "Fall", 10: "Fall", 11: "Fall",
}
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DIRECTIVES = ("date", "time", "int", "float", "category")


def _blank_to_na(values: pd.Series) -> pd.Series:
    """Treat empty / whitespace-only strings as missing"""
    if values.dtype == object or pd.api.types.is_string_dtype(values):
        stripped = values.map(lambda v: v.strip() if isinstance(v, str) else v)
        return stripped.mask(stripped == "")
    return values


def _sample(values: pd.Series, n: int = 5) -> List:
    return values.head(n).tolist()


def _local_timestamp(value, fmt: Optional[str]):
    if pd.isna(value):
        return pd.NaT
    try:
        stamp = pd.Timestamp(value) if fmt is None else pd.to_datetime(value, format=fmt)
    except (ValueError, TypeError):
        return pd.NaT
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp


def _parse_dates(values: pd.Series, fmt: Optional[str]) -> pd.Series:
    """
    Vectorized parse with an explicit format, or per-value inference
    (format="mixed") when none is given.

    Values carrying different UTC offsets cannot share one tz-aware dtype;
    they are parsed one by one and kept at their local wall time.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", FutureWarning)
            parsed = pd.to_datetime(values, format=fmt or "mixed", errors="coerce")
    except ValueError:
        parsed = None

    if parsed is None or not pd.api.types.is_datetime64_any_dtype(parsed):
        parsed = pd.to_datetime(values.map(lambda v: _local_timestamp(v, fmt)))
    return parsed


def parse_date_column(
    df: pd.DataFrame,
    column: str,
    fmt: Optional[str] = None,
) -> pd.DataFrame:
    """
    Parse `column` into calendar dates (datetime64, midnight).

    Rows whose value is missing or unparseable are dropped, never coerced
    to a placeholder date. The number of dropped rows is logged.
    Already-parsed datetime columns are only normalized (idempotent).
    """
    require_columns(df, [column])
    out = df.copy()
    values = out[column]

    if pd.api.types.is_datetime64_any_dtype(values):
        parsed = values
    else:
        parsed = _parse_dates(_blank_to_na(values), fmt)

    if getattr(parsed.dt, "tz", None) is not None:
        parsed = parsed.dt.tz_localize(None)

    bad = parsed.isna()
    n_bad = int(bad.sum())
    if n_bad:
        logger.warning(
            "[prepare] %s: dropped %d/%d rows with unparseable date, e.g. %s",
            column,
            n_bad,
            len(out),
            _sample(values[bad]),
        )

    out = out.loc[~bad].copy()
    out[column] = parsed[~bad].dt.normalize()
    return out.reset_index(drop=True)


def _to_time(value, fmt: str) -> Optional[time]:
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, float) and np.isnan(value):
        return None
    try:
        return datetime.strptime(str(value).strip(), fmt).time()
    except ValueError:
        return None


def parse_time_column(
    df: pd.DataFrame,
    column: str,
    fmt: str = "%H:%M:%S",
    on_error: str = "raise",
) -> pd.DataFrame:
    """
    Parse `column` into datetime.time values.

    Args:
        df: Input table
        column: Time-of-day column
        fmt: strptime format for string values
        on_error: "raise" (ParseError on any unparseable value) or "drop"

    Returns:
        New table with `column` holding datetime.time objects
    """
    if on_error not in ("raise", "drop"):
        raise ValueError(f"on_error must be 'raise' or 'drop', got {on_error!r}")
    require_columns(df, [column])

    out = df.copy()
    values = out[column]
    parsed = values.map(lambda v: _to_time(v, fmt))
    bad = parsed.isna()
    n_bad = int(bad.sum())

    if n_bad and on_error == "raise":
        raise ParseError(
            f"{column}: {n_bad} value(s) not parseable as time ({fmt}), "
            f"e.g. {_sample(values[bad])}"
        )
    if n_bad:
        logger.warning(
            "[prepare] %s: dropped %d/%d rows with unparseable time", column, n_bad, len(out)
        )

    out = out.loc[~bad].copy()
    out[column] = parsed[~bad].astype(object)
    return out.reset_index(drop=True)


def _parse_numeric(values: pd.Series, column: str, kind: str) -> pd.Series:
    cleaned = _blank_to_na(values)
    numeric = pd.to_numeric(cleaned, errors="coerce")
    bad = numeric.isna() & cleaned.notna()
    if bad.any():
        raise ParseError(
            f"{column}: {int(bad.sum())} value(s) not parseable as {kind}, "
            f"e.g. {_sample(cleaned[bad])}"
        )
    if kind == "int":
        if not (numeric.dropna() % 1 == 0).all():
            raise ParseError(f"{column}: non-integral values for int column")
        return numeric.astype("Int64")
    return numeric.astype(float)


def _parse_category(values: pd.Series) -> pd.Series:
    if isinstance(values.dtype, pd.CategoricalDtype):
        return values
    cleaned = _blank_to_na(values)
    return cleaned.astype("category")


def normalize_types(
    df: pd.DataFrame,
    directives: Mapping[str, str],
    time_policy: str = "raise",
    formats: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """
    Apply {column: kind} directives in order.

    kind is one of DIRECTIVES. Date rows that fail to parse are dropped;
    time failures follow `time_policy`; numeric failures raise ParseError.
    `formats` optionally maps a date/time column to its strptime format.
    """
    require_columns(df, directives.keys())
    formats = dict(formats or {})
    out = df.copy()

    for column, kind in directives.items():
        if kind == "date":
            out = parse_date_column(out, column, fmt=formats.get(column))
        elif kind == "time":
            out = parse_time_column(
                out, column, fmt=formats.get(column, "%H:%M:%S"), on_error=time_policy
            )
        elif kind in ("int", "float"):
            out[column] = _parse_numeric(out[column], column, kind)
        elif kind == "category":
            out[column] = _parse_category(out[column])
        else:
            raise ValueError(f"Unknown directive {kind!r} for {column}; expected one of {DIRECTIVES}")

    logger.info("[prepare] normalized %d columns, %d rows", len(directives), len(out))
    logger.debug("[prepare] dtypes=%s", directive_summary(out))
    return out


def season_of_month(month: int) -> str:
    """Map a month number (1-12) to Winter/Spring/Summer/Fall"""
    try:
        return SEASON_BY_MONTH[int(month)]
    except KeyError:
        raise ValueError(f"month must be in 1..12, got {month}") from None


def _require_datetime(df: pd.DataFrame, column: str) -> None:
    require_columns(df, [column])
    if not pd.api.types.is_datetime64_any_dtype(df[column]):
        raise SchemaError(f"{column} must be a parsed date column (got {df[column].dtype})")


def add_season(df: pd.DataFrame, date_column: str, out: str = "season") -> pd.DataFrame:
    """Derive an ordered season categorical from the month of `date_column`"""
    _require_datetime(df, date_column)
    result = df.copy()
    labels = result[date_column].dt.month.map(season_of_month)
    result[out] = pd.Categorical(labels, categories=SEASONS, ordered=True)
    return result


def add_weekday(df: pd.DataFrame, date_column: str, out: str = "weekday") -> pd.DataFrame:
    """Derive a Monday..Sunday ordered categorical from `date_column`"""
    _require_datetime(df, date_column)
    result = df.copy()
    labels = result[date_column].dt.dayofweek.map(lambda i: WEEKDAYS[i])
    result[out] = pd.Categorical(labels, categories=WEEKDAYS, ordered=True)
    return result


def add_hour(df: pd.DataFrame, time_column: str, out: str = "hour") -> pd.DataFrame:
    """Derive integer hour-of-day (0-23) from a parsed time or datetime column"""
    require_columns(df, [time_column])
    result = df.copy()
    values = result[time_column]

    if pd.api.types.is_datetime64_any_dtype(values):
        result[out] = values.dt.hour.astype(int)
        return result

    if not values.map(lambda v: isinstance(v, time)).all():
        raise SchemaError(f"{time_column} must hold parsed time values; run parse_time_column first")
    result[out] = values.map(lambda v: v.hour).astype(int)
    return result


def add_year(df: pd.DataFrame, date_column: str, out: str = "year") -> pd.DataFrame:
    _require_datetime(df, date_column)
    result = df.copy()
    result[out] = result[date_column].dt.year.astype(int)
    return result


def melt_date_columns(
    df: pd.DataFrame,
    id_columns: Sequence[str],
    value_name: str,
    date_format: str = "%m/%d/%y",
    date_column: str = "date",
) -> pd.DataFrame:
    """
    Reshape a wide table with one column per date into long format.

    Every column outside `id_columns` must be a date header in
    `date_format`; anything else raises SchemaError.

    Returns:
        DataFrame with columns [*id_columns, date_column, value_name]
    """
    id_columns = list(id_columns)
    require_columns(df, id_columns)

    date_cols = [c for c in df.columns if c not in id_columns]
    if not date_cols:
        raise SchemaError("No date columns to melt")

    parsed = pd.to_datetime(pd.Series(date_cols, dtype=object), format=date_format, errors="coerce")
    bad = [c for c, p in zip(date_cols, parsed) if pd.isna(p)]
    if bad:
        raise SchemaError(f"Columns outside id set are not dates ({date_format}): {bad[:5]}")

    long = df.melt(
        id_vars=id_columns,
        value_vars=date_cols,
        var_name=date_column,
        value_name=value_name,
    )
    long[date_column] = pd.to_datetime(long[date_column], format=date_format)
    long = long.sort_values(id_columns + [date_column], kind="stable").reset_index(drop=True)

    logger.info(
        "[prepare] melted %d date columns -> %d rows (%s to %s)",
        len(date_cols),
        len(long),
        parsed.min().date(),
        parsed.max().date(),
    )
    return long


def add_daily_increment(
    df: pd.DataFrame,
    group_columns: Union[str, Iterable[str]],
    value_column: str,
    out: str,
    date_column: str = "date",
) -> pd.DataFrame:
    """
    Convert cumulative counts to per-day increments within each group.

    The first day of each group keeps its cumulative value. Corrections in
    the source can make increments negative; they are kept as reported.
    """
    groups = [group_columns] if isinstance(group_columns, str) else list(group_columns)
    require_columns(df, groups + [value_column, date_column])

    result = df.sort_values(groups + [date_column], kind="stable").reset_index(drop=True)
    diffs = result.groupby(groups, dropna=False, sort=False)[value_column].diff()
    result[out] = diffs.fillna(result[value_column])
    return result


def derive_calendar_fields(
    df: pd.DataFrame,
    date_column: str,
    time_column: Optional[str] = None,
) -> pd.DataFrame:
    """Add year, season, weekday (and hour when a time column is given)"""
    result = add_year(df, date_column)
    result = add_season(result, date_column)
    result = add_weekday(result, date_column)
    if time_column is not None:
        result = add_hour(result, time_column)
    return result


def directive_summary(df: pd.DataFrame) -> Dict[str, str]:
    """Column -> dtype name, for logging what normalization produced"""
    return {col: str(dtype) for col, dtype in df.dtypes.items()}
