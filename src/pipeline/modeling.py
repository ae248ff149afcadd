"""
Trend / Forecast Adapter

Two modes over a daily [unique_id, ds, y] series:
1. Linear trend - OLS of y on days since 1970-01-01 (statsmodels)
2. Forecast - automatic ARIMA order selection (statsforecast AutoARIMA)

Model fitting is delegated to the libraries; this module only reshapes
inputs, guards against degenerate data and extracts results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import ModelFitError, SchemaError
from .prune import require_columns
from .validate import assert_valid_series

logger = logging.getLogger(__name__)

EPOCH = pd.Timestamp("1970-01-01")
MIN_TREND_OBSERVATIONS = 3
MIN_FORECAST_OBSERVATIONS = 3


@dataclass(frozen=True)
class LinearTrend:
    """OLS fit of y = intercept + slope * x"""
    slope: float
    intercept: float
    p_value: float
    r_squared: float
    n_obs: int


@dataclass(frozen=True)
class ForecastResult:
    """Point forecast and confidence band over `horizon` steps"""
    horizon: int
    level: int
    model_name: str
    ds: np.ndarray
    mean: np.ndarray
    lower: np.ndarray
    upper: np.ndarray

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "ds": self.ds,
            "mean": self.mean,
            "lower": self.lower,
            "upper": self.upper,
        })


def encode_dates(ds) -> np.ndarray:
    """Days since 1970-01-01 as float (monotonic and injective over dates)"""
    stamps = pd.to_datetime(pd.Series(ds))
    return ((stamps - EPOCH) / pd.Timedelta(days=1)).to_numpy(dtype=float)


def _finite_values(values, name: str, minimum: int) -> np.ndarray:
    try:
        arr = np.asarray(pd.to_numeric(pd.Series(values), errors="raise"), dtype=float)
    except (ValueError, TypeError) as exc:
        raise ModelFitError(f"{name} is not numeric: {exc}") from exc

    if len(arr) < minimum:
        raise ModelFitError(f"{name}: need at least {minimum} observations, got {len(arr)}")
    if not np.isfinite(arr).all():
        raise ModelFitError(f"{name}: {int((~np.isfinite(arr)).sum())} non-finite value(s)")
    return arr


def _ols(x: np.ndarray, y: np.ndarray) -> LinearTrend:
    """
    Fit y ~ x with statsmodels.

    x is centered before fitting for conditioning; the intercept is mapped
    back to x = 0. The slope and its p-value are unaffected by centering.
    """
    import statsmodels.api as sm

    if np.ptp(x) == 0:
        raise ModelFitError("Degenerate regressor: all x values are identical")

    x0 = float(x.mean())
    design = sm.add_constant(x - x0, has_constant="add")
    try:
        fit = sm.OLS(y, design).fit()
    except (ValueError, np.linalg.LinAlgError) as exc:
        raise ModelFitError(f"OLS fit failed: {exc}") from exc

    b0, slope = (float(v) for v in fit.params)
    p_value = float(fit.pvalues[1])
    if not np.isfinite(p_value):
        # Zero residual variance: exact fit, t statistic is 0/0 or +-inf
        p_value = 1.0 if np.isclose(slope, 0.0, atol=1e-12) else 0.0

    r_squared = float(fit.rsquared) if np.isfinite(fit.rsquared) else 1.0

    return LinearTrend(
        slope=slope,
        intercept=b0 - slope * x0,
        p_value=p_value,
        r_squared=r_squared,
        n_obs=int(fit.nobs),
    )


def fit_linear_trend(series: pd.DataFrame) -> LinearTrend:
    """
    OLS of y against days since epoch.

    Args:
        series: DataFrame with columns [ds, y]

    Returns:
        LinearTrend with slope (per day), intercept (at 1970-01-01),
        two-sided p-value of the slope, R^2 and n_obs
    """
    try:
        require_columns(series, ["ds", "y"])
    except SchemaError as exc:
        raise ModelFitError(str(exc)) from exc

    if series["ds"].duplicated().any():
        raise ModelFitError("Series has duplicate dates; aggregate before fitting")

    y = _finite_values(series["y"], "y", MIN_TREND_OBSERVATIONS)
    x = encode_dates(series["ds"])

    trend = _ols(x, y)
    logger.info(
        "[modeling] linear trend: slope=%.4f/day intercept=%.4f p=%.3g r2=%.3f n=%d",
        trend.slope,
        trend.intercept,
        trend.p_value,
        trend.r_squared,
        trend.n_obs,
    )
    return trend


def fit_linear_relationship(df: pd.DataFrame, x: str, y: str) -> LinearTrend:
    """OLS of column `y` on column `x` (rows with missing x or y excluded)"""
    try:
        require_columns(df, [x, y])
    except SchemaError as exc:
        raise ModelFitError(str(exc)) from exc

    pair = df[[x, y]].dropna()
    xs = _finite_values(pair[x], x, MIN_TREND_OBSERVATIONS)
    ys = _finite_values(pair[y], y, MIN_TREND_OBSERVATIONS)

    fit = _ols(xs, ys)
    logger.info(
        "[modeling] %s ~ %s: slope=%.4f intercept=%.4f p=%.3g n=%d",
        y, x, fit.slope, fit.intercept, fit.p_value, fit.n_obs,
    )
    return fit


def forecast_auto_arima(
    series: pd.DataFrame,
    season_length: int = 365,
    horizon: int = 120,
    level: int = 95,
) -> ForecastResult:
    """
    Forecast a daily series with statsforecast AutoARIMA.

    Args:
        series: [unique_id, ds, y] daily series without gaps
        season_length: Observations per seasonal cycle (365 for yearly on daily data)
        horizon: Number of days to forecast
        level: Confidence level (%) of the prediction interval

    Returns:
        ForecastResult with exactly `horizon` points

    Raises:
        ModelFitError: too few observations, non-finite values, gaps or fit failure
    """
    from statsforecast import StatsForecast
    from statsforecast.models import AutoARIMA

    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}")

    try:
        require_columns(series, ["unique_id", "ds", "y"])
    except SchemaError as exc:
        raise ModelFitError(str(exc)) from exc

    _finite_values(series["y"], "y", MIN_FORECAST_OBSERVATIONS)
    assert_valid_series(series)

    n_obs = len(series)
    if season_length > 1 and n_obs < 2 * season_length:
        logger.warning(
            "[modeling] %d observations < 2 seasonal cycles of %d; fitting non-seasonal ARIMA",
            n_obs,
            season_length,
        )
        season_length = 1

    # AutoARIMA cost grows with n_obs * season_length; yearly seasonality on
    # multi-year daily data takes minutes
    logger.info(
        "[modeling] fitting AutoARIMA on %d observations (season_length=%d, horizon=%d)",
        n_obs,
        season_length,
        horizon,
    )

    df = series[["unique_id", "ds", "y"]].copy()
    df["ds"] = pd.to_datetime(df["ds"])
    df["y"] = df["y"].astype(float)

    model = AutoARIMA(season_length=season_length)
    sf = StatsForecast(models=[model], freq="D", n_jobs=1)

    try:
        forecast_df = sf.forecast(df=df, h=horizon, level=[level])
    except Exception as exc:
        raise ModelFitError(f"AutoARIMA fit failed: {exc}") from exc

    if "ds" not in forecast_df.columns:
        forecast_df = forecast_df.reset_index()

    name = getattr(model, "alias", type(model).__name__)
    lo_col = f"{name}-lo-{level}"
    hi_col = f"{name}-hi-{level}"
    missing = [c for c in (name, lo_col, hi_col) if c not in forecast_df.columns]
    if missing:
        raise ModelFitError(f"Forecast output missing columns: {missing}")

    forecast_df = forecast_df.sort_values("ds").reset_index(drop=True)
    result = ForecastResult(
        horizon=horizon,
        level=level,
        model_name=name,
        ds=forecast_df["ds"].to_numpy(),
        mean=forecast_df[name].to_numpy(dtype=float),
        lower=forecast_df[lo_col].to_numpy(dtype=float),
        upper=forecast_df[hi_col].to_numpy(dtype=float),
    )

    if len(result.mean) != horizon:
        raise ModelFitError(f"Expected {horizon} forecast points, got {len(result.mean)}")

    logger.info(
        "[modeling] %s(season_length=%d) forecast %d days from %s",
        name,
        season_length,
        horizon,
        pd.Timestamp(result.ds[0]).date(),
    )
    return result
