from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd
import requests

from src.pipeline.aggregate import aggregate, crosstab, daily_series
from src.pipeline.config import PipelineConfig
from src.pipeline.errors import ParseError
from src.pipeline.ingest import load_csv
from src.pipeline.modeling import ForecastResult, LinearTrend, fit_linear_trend, forecast_auto_arima
from src.pipeline.prepare import derive_calendar_fields, normalize_types
from src.pipeline.prune import keep_columns

from .columns import (
    BORO,
    DATE_FORMAT,
    DEMOGRAPHIC_COLUMNS,
    INCIDENT_KEY,
    KEEP_COLUMNS,
    MURDER_FALSE,
    MURDER_FLAG,
    MURDER_TRUE,
    NULL_CODES,
    OCCUR_DATE,
    OCCUR_TIME,
    SERIES_ID,
    TIME_FORMAT,
    UNKNOWN,
)

logger = logging.getLogger(__name__)

# summary name -> grouping column
SUMMARY_KEYS = {
    "borough": BORO,
    "year": "year",
    "season": "season",
    "weekday": "weekday",
    "hour": "hour",
    "murder": MURDER_FLAG,
    "perp_age": "PERP_AGE_GROUP",
    "perp_sex": "PERP_SEX",
    "perp_race": "PERP_RACE",
    "vic_age": "VIC_AGE_GROUP",
    "vic_sex": "VIC_SEX",
    "vic_race": "VIC_RACE",
}


@dataclass
class ShootingsReport:
    incidents: pd.DataFrame
    summaries: Dict[str, pd.Series]
    borough_murders: pd.DataFrame
    daily: pd.DataFrame
    trend: LinearTrend
    forecast: Optional[ForecastResult] = None
    meta: Dict[str, object] = field(default_factory=dict)


def _clean_codes(values: pd.Series) -> pd.Series:
    """Provider null placeholders -> UNKNOWN, everything else stripped and upper-cased"""
    cleaned = values.astype("string").str.strip().str.upper()
    is_null = cleaned.isna() | cleaned.isin([c.upper() for c in NULL_CODES])
    return cleaned.mask(is_null, UNKNOWN).astype(object)


def _parse_murder_flag(values: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(values):
        return values

    lowered = values.astype("string").str.strip().str.lower()
    flags = pd.Series(pd.NA, index=values.index, dtype="boolean")
    flags[lowered.isin(MURDER_TRUE)] = True
    flags[lowered.isin(MURDER_FALSE)] = False

    bad = flags.isna()
    if bad.any():
        raise ParseError(
            f"{MURDER_FLAG}: {int(bad.sum())} value(s) not a boolean flag, "
            f"e.g. {values[bad].head(5).tolist()}"
        )
    return flags.astype(bool)


def prepare_incidents(raw: pd.DataFrame, time_policy: str = "raise") -> pd.DataFrame:
    """
    Raw incident CSV -> tidy incident table.

    Steps:
    1. Keep KEEP_COLUMNS
    2. Parse OCCUR_DATE (rows with bad dates dropped) and OCCUR_TIME
    3. Murder flag to bool, demographic codes normalized (blank -> UNKNOWN)
    4. Derive year, season, weekday (Monday..Sunday) and hour

    Args:
        raw: DataFrame from load_csv
        time_policy: "raise" or "drop" for unparseable OCCUR_TIME

    Returns:
        Tidy table sorted by date then time
    """
    df = keep_columns(raw, KEEP_COLUMNS)
    df = normalize_types(
        df,
        {OCCUR_DATE: "date", OCCUR_TIME: "time"},
        time_policy=time_policy,
        formats={OCCUR_DATE: DATE_FORMAT, OCCUR_TIME: TIME_FORMAT},
    )

    df[INCIDENT_KEY] = df[INCIDENT_KEY].astype("string").str.strip()
    df[BORO] = _clean_codes(df[BORO])
    df[MURDER_FLAG] = _parse_murder_flag(df[MURDER_FLAG])
    for col in DEMOGRAPHIC_COLUMNS:
        df[col] = _clean_codes(df[col])

    df = derive_calendar_fields(df, OCCUR_DATE, OCCUR_TIME)
    df = df.sort_values([OCCUR_DATE, OCCUR_TIME], kind="stable").reset_index(drop=True)

    logger.info(
        "[shootings] prepared %d incidents, %s to %s",
        len(df),
        df[OCCUR_DATE].min().date() if len(df) else None,
        df[OCCUR_DATE].max().date() if len(df) else None,
    )
    return df


def summarize_incidents(df: pd.DataFrame) -> Dict[str, pd.Series]:
    """Row counts per borough, calendar field, murder flag and demographic code"""
    return {name: aggregate(df, key, op="count") for name, key in SUMMARY_KEYS.items()}


def run_shootings_pipeline(
    config: Optional[PipelineConfig] = None,
    raw: Optional[pd.DataFrame] = None,
    forecast: bool = True,
    session: Optional[requests.Session] = None,
) -> ShootingsReport:
    """
    Load -> prepare -> summarize -> trend (-> forecast) for the incident data.

    `raw` skips the download (tests and offline runs).
    """
    config = config or PipelineConfig()

    if raw is None:
        raw = load_csv(config.shootings_url, session=session, config=config)

    incidents = prepare_incidents(raw, time_policy=config.time_parse_policy)
    summaries = summarize_incidents(incidents)
    borough_murders = crosstab(incidents, BORO, MURDER_FLAG)

    daily = daily_series(incidents, OCCUR_DATE, unique_id=SERIES_ID)
    trend = fit_linear_trend(daily)

    result = None
    if forecast:
        result = forecast_auto_arima(
            daily,
            season_length=config.season_length,
            horizon=config.horizon,
            level=config.confidence_level,
        )

    meta = {
        "raw_rows": int(len(raw)),
        "incident_rows": int(len(incidents)),
        "dropped_rows": int(len(raw) - len(incidents)),
        "days": int(len(daily)),
    }
    logger.info("[shootings] done: %s", meta)

    return ShootingsReport(
        incidents=incidents,
        summaries=summaries,
        borough_murders=borough_murders,
        daily=daily,
        trend=trend,
        forecast=result,
        meta=meta,
    )
