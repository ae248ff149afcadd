from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np
import pandas as pd
import requests

from src.pipeline.aggregate import aggregate, daily_series
from src.pipeline.config import PipelineConfig
from src.pipeline.errors import SchemaError
from src.pipeline.ingest import load_csv
from src.pipeline.modeling import (
    ForecastResult,
    LinearTrend,
    fit_linear_relationship,
    fit_linear_trend,
    forecast_auto_arima,
)
from src.pipeline.prepare import add_daily_increment, melt_date_columns, normalize_types
from src.pipeline.prune import drop_columns

from .columns import (
    CASES,
    CASES_PER_THOU,
    DATE,
    DATE_FORMAT,
    DEATHS,
    DEATHS_PER_THOU,
    DROP_COLUMNS,
    ID_COLUMNS,
    NEW_CASES,
    NEW_DEATHS,
    POPULATION,
    SERIES_ID,
    STATE,
)

logger = logging.getLogger(__name__)


@dataclass
class CovidReport:
    counties: pd.DataFrame
    states: pd.DataFrame
    state_cases: pd.Series
    state_deaths: pd.Series
    national: pd.DataFrame
    trend: LinearTrend
    mortality: LinearTrend
    forecast: Optional[ForecastResult] = None
    meta: Dict[str, object] = field(default_factory=dict)


def _tidy_counts(raw: pd.DataFrame, value_name: str, extra_ids=()) -> pd.DataFrame:
    wide = drop_columns(raw, [c for c in DROP_COLUMNS if c in raw.columns])
    ids = list(ID_COLUMNS) + list(extra_ids)
    long = melt_date_columns(wide, ids, value_name, date_format=DATE_FORMAT, date_column=DATE)
    directives = {value_name: "int"}
    directives.update({col: "int" for col in extra_ids})
    return normalize_types(long, directives)


def prepare_us_cases(raw_cases: pd.DataFrame, raw_deaths: pd.DataFrame) -> pd.DataFrame:
    """
    Wide JHU cumulative tables -> one long county-level table.

    Returns:
        DataFrame [Admin2, Province_State, Country_Region, Combined_Key,
        date, cases, Population, deaths], sorted by ids then date
    """
    cases = _tidy_counts(raw_cases, CASES)
    deaths = _tidy_counts(raw_deaths, DEATHS, extra_ids=(POPULATION,))

    keys = list(ID_COLUMNS) + [DATE]
    try:
        merged = cases.merge(deaths, on=keys, how="inner", validate="one_to_one")
    except pd.errors.MergeError as exc:
        raise SchemaError(f"Case and death tables do not align one-to-one: {exc}") from exc

    if len(merged) != len(cases):
        logger.warning(
            "[covid] %d case rows have no matching death row and were dropped",
            len(cases) - len(merged),
        )

    merged = merged[keys + [CASES, POPULATION, DEATHS]]
    logger.info(
        "[covid] prepared %d county-day rows across %d states",
        len(merged),
        merged[STATE].nunique(),
    )
    return merged.sort_values(keys, kind="stable").reset_index(drop=True)


def summarize_states(counties: pd.DataFrame) -> pd.DataFrame:
    """
    Per state per day totals with daily increments and per-thousand rates.

    Missing counts are treated as zero. Rates are NaN where population is 0.
    """
    states = (
        counties.fillna({CASES: 0, DEATHS: 0, POPULATION: 0})
        .groupby([STATE, DATE], as_index=False, sort=True, dropna=False)[[CASES, DEATHS, POPULATION]]
        .sum()
    )
    states = add_daily_increment(states, STATE, CASES, NEW_CASES, date_column=DATE)
    states = add_daily_increment(states, STATE, DEATHS, NEW_DEATHS, date_column=DATE)

    population = states[POPULATION].astype(float).replace(0, np.nan)
    states[CASES_PER_THOU] = states[CASES].astype(float) * 1000 / population
    states[DEATHS_PER_THOU] = states[DEATHS].astype(float) * 1000 / population
    return states


def latest_by_state(states: pd.DataFrame) -> pd.DataFrame:
    """Rows of the most recent date in the table, one per state"""
    if states.empty:
        return states.copy()
    last = states[DATE].max()
    return states[states[DATE] == last].reset_index(drop=True)


def national_new_cases(states: pd.DataFrame) -> pd.DataFrame:
    """Daily US new cases as a [unique_id, ds, y] series"""
    return daily_series(states, DATE, unique_id=SERIES_ID, value_column=NEW_CASES)


def state_mortality_fit(states: pd.DataFrame) -> LinearTrend:
    """OLS of deaths per thousand on cases per thousand, latest day, populated states"""
    latest = latest_by_state(states)
    latest = latest[(latest[POPULATION] > 0) & (latest[CASES] > 0)]
    return fit_linear_relationship(latest, CASES_PER_THOU, DEATHS_PER_THOU)


def run_covid_pipeline(
    config: Optional[PipelineConfig] = None,
    raw_cases: Optional[pd.DataFrame] = None,
    raw_deaths: Optional[pd.DataFrame] = None,
    forecast: bool = True,
    session: Optional[requests.Session] = None,
) -> CovidReport:
    """
    Load -> reshape -> state summaries -> trend, mortality fit (-> forecast).

    `raw_cases` / `raw_deaths` skip the download (tests and offline runs).
    """
    config = config or PipelineConfig()

    if raw_cases is None:
        raw_cases = load_csv(config.covid_cases_url, session=session, config=config)
    if raw_deaths is None:
        raw_deaths = load_csv(config.covid_deaths_url, session=session, config=config)

    counties = prepare_us_cases(raw_cases, raw_deaths)
    states = summarize_states(counties)
    latest = latest_by_state(states)

    state_cases = aggregate(latest, STATE, op="sum", value_column=CASES)
    state_deaths = aggregate(latest, STATE, op="sum", value_column=DEATHS)

    national = national_new_cases(states)
    trend = fit_linear_trend(national)
    mortality = state_mortality_fit(states)

    result = None
    if forecast:
        result = forecast_auto_arima(
            national,
            season_length=config.season_length,
            horizon=config.horizon,
            level=config.confidence_level,
        )

    meta = {
        "county_rows": int(len(counties)),
        "states": int(states[STATE].nunique()),
        "days": int(len(national)),
        "total_cases": int(state_cases.sum()),
        "total_deaths": int(state_deaths.sum()),
    }
    logger.info("[covid] done: %s", meta)

    return CovidReport(
        counties=counties,
        states=states,
        state_cases=state_cases,
        state_deaths=state_deaths,
        national=national,
        trend=trend,
        mortality=mortality,
        forecast=result,
        meta=meta,
    )
