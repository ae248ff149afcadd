"""
Shared EDA pipeline

Load -> prune -> normalize -> aggregate -> trend/forecast:
1. config - Defaults + EDA_* environment overrides
2. ingest - Remote CSV with timeout and bounded retry
3. prune - Keep/drop a fixed set of columns
4. prepare - Parse dates/times, derive hour/season/weekday
5. aggregate - Deterministic grouped counts and sums, daily series
6. validate - Daily series integrity gate
7. modeling - OLS trend and AutoARIMA forecast
"""

from .aggregate import aggregate, crosstab, daily_series, to_mapping
from .config import PipelineConfig, load_config
from .errors import ModelFitError, ParseError, PipelineError, RetrievalError, SchemaError
from .ingest import load_csv
from .modeling import (
    ForecastResult,
    LinearTrend,
    fit_linear_relationship,
    fit_linear_trend,
    forecast_auto_arima,
)
from .prepare import (
    SEASONS,
    WEEKDAYS,
    add_daily_increment,
    add_hour,
    add_season,
    add_weekday,
    melt_date_columns,
    normalize_types,
    season_of_month,
)
from .prune import drop_columns, keep_columns
from .validate import validate_daily_series

__all__ = [
    "PipelineConfig",
    "load_config",
    "PipelineError",
    "RetrievalError",
    "SchemaError",
    "ParseError",
    "ModelFitError",
    "load_csv",
    "keep_columns",
    "drop_columns",
    "normalize_types",
    "add_hour",
    "add_season",
    "add_weekday",
    "season_of_month",
    "melt_date_columns",
    "add_daily_increment",
    "SEASONS",
    "WEEKDAYS",
    "aggregate",
    "crosstab",
    "daily_series",
    "to_mapping",
    "validate_daily_series",
    "LinearTrend",
    "ForecastResult",
    "fit_linear_trend",
    "fit_linear_relationship",
    "forecast_auto_arima",
]
