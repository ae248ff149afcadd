"""
Validate Daily Series Integrity

Hard gates before a series reaches the forecast adapter:
- Uniqueness: no duplicates on [unique_id, ds]
- Frequency: expected daily index vs observed
- Monotonic: increasing time
- Values: nulls and non-finite values
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from .errors import ModelFitError, SchemaError
from .prune import require_columns

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Results of time series validation"""
    is_valid: bool
    n_rows: int
    n_duplicates: int
    n_missing_days: int
    missing_days: List[pd.Timestamp]
    n_nulls: int
    n_non_finite: int
    is_monotonic: bool


def validate_daily_series(df: pd.DataFrame) -> ValidationResult:
    """
    Validate a [unique_id, ds, y] daily series.

    Args:
        df: DataFrame with columns [unique_id, ds, y]

    Returns:
        ValidationResult with detailed findings
    """
    require_columns(df, ["unique_id", "ds", "y"])

    if df.empty:
        return ValidationResult(
            is_valid=False, n_rows=0, n_duplicates=0, n_missing_days=0,
            missing_days=[], n_nulls=0, n_non_finite=0, is_monotonic=True,
        )

    # Check 1: Duplicates
    n_duplicates = int(df.duplicated(subset=["unique_id", "ds"], keep=False).sum())

    # Check 2: Missing days
    ds = pd.to_datetime(df["ds"])
    expected = pd.date_range(start=ds.min(), end=ds.max(), freq="D")
    missing_days = sorted(set(expected) - set(ds))

    # Check 3: Monotonic (as delivered, not after sorting)
    is_monotonic = bool(ds.is_monotonic_increasing)

    # Check 4: Values
    y = pd.to_numeric(df["y"], errors="coerce")
    n_nulls = int(y.isna().sum())
    n_non_finite = int((~np.isfinite(y.dropna().to_numpy(dtype=float))).sum())

    is_valid = (
        n_duplicates == 0
        and not missing_days
        and is_monotonic
        and n_nulls == 0
        and n_non_finite == 0
    )

    return ValidationResult(
        is_valid=is_valid,
        n_rows=len(df),
        n_duplicates=n_duplicates,
        n_missing_days=len(missing_days),
        missing_days=missing_days[:10],
        n_nulls=n_nulls,
        n_non_finite=n_non_finite,
        is_monotonic=is_monotonic,
    )


def assert_valid_series(df: pd.DataFrame) -> ValidationResult:
    """Raise ModelFitError if the series violates the daily contract"""
    try:
        result = validate_daily_series(df)
    except SchemaError as exc:
        raise ModelFitError(f"Series is not in [unique_id, ds, y] format: {exc}") from exc

    if not result.is_valid:
        log_validation_report(result)
        raise ModelFitError(
            f"Invalid daily series: rows={result.n_rows}, "
            f"duplicates={result.n_duplicates}, "
            f"missing_days={result.n_missing_days}, "
            f"nulls={result.n_nulls}, non_finite={result.n_non_finite}, "
            f"monotonic={result.is_monotonic}"
        )
    return result


def log_validation_report(result: ValidationResult) -> None:
    """Log a human-readable validation report"""
    status = "PASS" if result.is_valid else "FAIL"
    level = logging.INFO if result.is_valid else logging.WARNING
    logger.log(level, "[validate] === Validation Report: %s ===", status)
    logger.log(level, "[validate] rows=%d duplicates=%d", result.n_rows, result.n_duplicates)
    logger.log(level, "[validate] missing days=%d", result.n_missing_days)
    if result.missing_days:
        logger.log(level, "[validate]   first missing: %s", result.missing_days[:5])
    logger.log(level, "[validate] nulls=%d non_finite=%d", result.n_nulls, result.n_non_finite)
    logger.log(level, "[validate] monotonic=%s", result.is_monotonic)
