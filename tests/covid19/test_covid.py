"""Tests for the COVID-19 (JHU CSSE US) pipeline.

Run with:
    pytest tests/covid19/ -v
"""

from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from src.pipeline.aggregate import to_mapping
from src.pipeline.config import PipelineConfig
from src.pipeline.errors import ModelFitError, ParseError, SchemaError
from src.covid19.tasks import (
    national_new_cases,
    prepare_us_cases,
    run_covid_pipeline,
    state_mortality_fit,
    summarize_states,
)

COUNTIES = [
    # Admin2, state, population, cases/day, deaths/day
    ("Franklin", "Ohio", 1_300_000, 40, 1),
    ("Cuyahoga", "Ohio", 1_200_000, 30, 1),
    ("Salt Lake", "Utah", 1_100_000, 20, 0),
    ("King", "Washington", 2_200_000, 50, 2),
]


def make_wide(n_days=28, deaths=False, start="2020-03-01"):
    """Wide JHU-style table of cumulative counts, all values as strings."""
    dates = pd.date_range(start, periods=n_days, freq="D")
    rng = np.random.default_rng(1 if deaths else 0)
    rows = []
    for i, (admin2, state, pop, per_day_cases, per_day_deaths) in enumerate(COUNTIES):
        per_day = per_day_deaths if deaths else per_day_cases
        daily = rng.poisson(per_day, n_days) if per_day else np.zeros(n_days, dtype=int)
        row = {
            "UID": str(84000000 + i),
            "iso2": "US",
            "iso3": "USA",
            "code3": "840",
            "FIPS": f"{39000 + i}.0",
            "Admin2": admin2,
            "Province_State": state,
            "Country_Region": "US",
            "Lat": "40.0",
            "Long_": "-83.0",
            "Combined_Key": f"{admin2}, {state}, US",
        }
        if deaths:
            row["Population"] = str(pop)
        for day, value in zip(dates, np.cumsum(daily)):
            row[f"{day.month}/{day.day}/{day:%y}"] = str(int(value))
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture
def counties():
    return prepare_us_cases(make_wide(), make_wide(deaths=True))


@pytest.fixture
def states(counties):
    return summarize_states(counties)


@pytest.mark.smoke
class TestPrepareUsCases:
    def test_long_format(self, counties):
        assert list(counties.columns) == [
            "Admin2", "Province_State", "Country_Region", "Combined_Key",
            "date", "cases", "Population", "deaths",
        ]
        assert len(counties) == len(COUNTIES) * 28
        assert counties["cases"].dtype == "Int64"
        assert pd.api.types.is_datetime64_any_dtype(counties["date"])

    def test_geo_columns_dropped(self, counties):
        assert not {"UID", "FIPS", "Lat", "Long_"} & set(counties.columns)

    def test_cumulative_values_preserved(self, counties):
        raw = make_wide()
        last_col = raw.columns[-1]
        king = counties[(counties["Admin2"] == "King")].sort_values("date")

        assert king["cases"].iloc[-1] == int(raw.loc[3, last_col])

    @pytest.mark.fail_loud
    def test_misaligned_tables_raise(self):
        deaths = make_wide(deaths=True)
        deaths = pd.concat([deaths, deaths.iloc[[0]]], ignore_index=True)

        with pytest.raises(SchemaError, match="one-to-one"):
            prepare_us_cases(make_wide(), deaths)

    @pytest.mark.fail_loud
    def test_non_numeric_count_raises(self):
        cases = make_wide()
        cases.iloc[0, -1] = "n/a"

        with pytest.raises(ParseError, match="cases"):
            prepare_us_cases(cases, make_wide(deaths=True))


class TestSummarizeStates:
    def test_state_totals_are_county_sums(self, counties, states):
        last = states["date"].max()
        ohio = states[(states["Province_State"] == "Ohio") & (states["date"] == last)].iloc[0]
        expected = counties[(counties["Province_State"] == "Ohio") & (counties["date"] == last)]

        assert ohio["cases"] == expected["cases"].sum()
        assert ohio["Population"] == 2_500_000

    def test_new_cases_sum_to_cumulative(self, states):
        for state, group in states.groupby("Province_State"):
            assert group["new_cases"].sum() == group["cases"].iloc[-1], state

    def test_per_thousand_rates(self, states):
        row = states.iloc[-1]

        assert row["cases_per_thou"] == pytest.approx(row["cases"] * 1000 / row["Population"])

    def test_zero_population_rate_is_nan(self, counties):
        counties = counties.copy()
        counties.loc[counties["Province_State"] == "Utah", "Population"] = 0

        states = summarize_states(counties)

        assert states.loc[states["Province_State"] == "Utah", "deaths_per_thou"].isna().all()


class TestNationalSeries:
    def test_daily_series_without_gaps(self, states):
        national = national_new_cases(states)

        assert list(national.columns) == ["unique_id", "ds", "y"]
        assert len(national) == 28
        assert national["ds"].is_monotonic_increasing
        assert national["y"].sum() == states.groupby("Province_State")["cases"].last().sum()


class TestMortalityFit:
    def test_fit_across_states(self, states):
        fit = state_mortality_fit(states)

        assert fit.n_obs == 3
        assert np.isfinite(fit.slope)

    @pytest.mark.fail_loud
    def test_too_few_states_raises(self, states):
        only_ohio = states[states["Province_State"] == "Ohio"]

        with pytest.raises(ModelFitError):
            state_mortality_fit(only_ohio)


@pytest.mark.smoke
class TestRunPipeline:
    def test_offline_run(self):
        cfg = PipelineConfig(season_length=7, horizon=21)

        report = run_covid_pipeline(
            cfg, raw_cases=make_wide(), raw_deaths=make_wide(deaths=True)
        )

        assert set(report.state_cases.index) == {"Ohio", "Utah", "Washington"}
        assert report.meta["states"] == 3
        assert report.meta["total_cases"] == int(report.state_cases.sum())
        assert len(report.forecast.mean) == 21
        assert np.all(report.forecast.upper > report.forecast.lower)

    def test_state_aggregates_sorted(self):
        report = run_covid_pipeline(
            raw_cases=make_wide(), raw_deaths=make_wide(deaths=True), forecast=False
        )

        assert list(report.state_deaths.index) == ["Ohio", "Utah", "Washington"]
        assert to_mapping(report.state_deaths)["Utah"] == 0
        assert report.forecast is None

    def test_both_files_downloaded(self):
        session = MagicMock()
        cases_resp, deaths_resp = MagicMock(), MagicMock()
        cases_resp.text = make_wide().to_csv(index=False)
        deaths_resp.text = make_wide(deaths=True).to_csv(index=False)
        session.get.side_effect = [cases_resp, deaths_resp]

        report = run_covid_pipeline(session=session, forecast=False)

        assert session.get.call_count == 2
        assert report.meta["days"] == 28
