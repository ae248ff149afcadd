"""
Aggregator Tests

- Completeness: output keys == distinct input keys, counts sum to row count
- Determinism: identical input -> identical ordering and values
- Sum treats NA as zero
"""

import logging

import numpy as np
import pandas as pd
import pytest

from src.pipeline.aggregate import MISSING_KEY, aggregate, crosstab, daily_series, to_mapping
from src.pipeline.errors import SchemaError
from src.pipeline.prepare import add_season


@pytest.fixture
def incidents():
    boroughs = ["BROOKLYN"] * 6 + ["QUEENS"] * 4
    rng = np.random.default_rng(0)
    order = rng.permutation(len(boroughs))
    return pd.DataFrame({
        "INCIDENT_KEY": [str(i) for i in range(10)],
        "BORO": [boroughs[i] for i in order],
        "victims": [1, 2, None, 1, 1, 3, 1, None, 2, 1],
    })


@pytest.mark.smoke
class TestCount:
    def test_borough_counts_exact(self, incidents):
        agg = aggregate(incidents, "BORO", op="count")

        assert to_mapping(agg) == {"BROOKLYN": 6, "QUEENS": 4}

    def test_keys_match_distinct_values(self, incidents):
        agg = aggregate(incidents, "INCIDENT_KEY")

        assert set(agg.index) == set(incidents["INCIDENT_KEY"])
        assert agg.sum() == len(incidents)

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_completeness_random_tables(self, seed):
        rng = np.random.default_rng(seed)
        df = pd.DataFrame({"k": rng.choice(list("ABCDEFG"), size=200)})

        agg = aggregate(df, "k")

        assert set(agg.index) == set(df["k"].unique())
        assert int(agg.sum()) == len(df)
        assert agg.index.is_unique

    def test_deterministic_and_sorted(self, incidents):
        first = aggregate(incidents, "BORO")
        second = aggregate(incidents.sample(frac=1, random_state=7), "BORO")

        pd.testing.assert_series_equal(first, second)
        assert list(first.index) == sorted(first.index)

    def test_index_named_after_key(self, incidents):
        agg = aggregate(incidents, "BORO")

        assert agg.index.name == "BORO"
        assert agg.name == "count"

    def test_missing_key_kept_as_unknown(self):
        df = pd.DataFrame({"BORO": ["BRONX", None, "BRONX", np.nan]})

        agg = aggregate(df, "BORO")

        assert to_mapping(agg) == {"BRONX": 2, MISSING_KEY: 2}
        assert int(agg.sum()) == len(df)

    def test_integer_keys_sorted_numerically(self):
        df = pd.DataFrame({"hour": [23, 2, 11, 2, 0]})

        agg = aggregate(df, "hour")

        assert list(agg.index) == [0, 2, 11, 23]

    def test_categorical_keys_follow_category_order(self):
        df = pd.DataFrame({"d": pd.to_datetime(["2020-10-01", "2020-01-01", "2020-07-01", "2020-01-15"])})
        df = add_season(df, "d")

        agg = aggregate(df, "season")

        # Only observed seasons, in Winter..Fall order
        assert list(agg.index) == ["Winter", "Summer", "Fall"]
        assert to_mapping(agg) == {"Winter": 2, "Summer": 1, "Fall": 1}


class TestSum:
    def test_sum_treats_na_as_zero(self, incidents):
        agg = aggregate(incidents, "BORO", op="sum", value_column="victims")

        expected = (
            incidents.assign(victims=incidents["victims"].fillna(0))
            .groupby("BORO")["victims"].sum()
        )
        assert to_mapping(agg) == pytest.approx(expected.to_dict())
        assert agg.name == "victims"

    def test_sum_string_numbers(self):
        df = pd.DataFrame({"state": ["A", "A", "B"], "cases": ["1", "2", "5"]})

        assert to_mapping(aggregate(df, "state", op="sum", value_column="cases")) == {"A": 3, "B": 5}

    @pytest.mark.fail_loud
    def test_sum_requires_value_column(self, incidents):
        with pytest.raises(ValueError):
            aggregate(incidents, "BORO", op="sum")

    @pytest.mark.fail_loud
    def test_sum_non_numeric_raises(self):
        df = pd.DataFrame({"state": ["A"], "cases": ["many"]})

        with pytest.raises(SchemaError):
            aggregate(df, "state", op="sum", value_column="cases")


@pytest.mark.fail_loud
class TestAggregateFailures:
    def test_unknown_op(self, incidents):
        with pytest.raises(ValueError):
            aggregate(incidents, "BORO", op="mean")

    def test_missing_key_column(self, incidents):
        with pytest.raises(SchemaError):
            aggregate(incidents, "PRECINCT")


class TestCrosstab:
    def test_counts_and_sorted_axes(self):
        df = pd.DataFrame({
            "BORO": ["QUEENS", "BRONX", "QUEENS", "BRONX", "BRONX"],
            "murder": [True, False, False, False, True],
        })

        table = crosstab(df, "BORO", "murder")

        assert list(table.index) == ["BRONX", "QUEENS"]
        assert list(table.columns) == [False, True]
        assert table.loc["BRONX", False] == 2
        assert table.loc["QUEENS", True] == 1
        assert int(table.to_numpy().sum()) == len(df)


class TestDailySeries:
    def test_counts_per_day_with_gap_filled(self):
        df = pd.DataFrame({
            "date": pd.to_datetime(["2020-01-01", "2020-01-01", "2020-01-03"]),
        })

        series = daily_series(df, "date", unique_id="s")

        assert list(series.columns) == ["unique_id", "ds", "y"]
        assert series["ds"].tolist() == list(pd.date_range("2020-01-01", periods=3, freq="D"))
        assert series["y"].tolist() == [2.0, 0.0, 1.0]
        assert (series["unique_id"] == "s").all()

    def test_no_fill_keeps_observed_days(self):
        df = pd.DataFrame({"date": pd.to_datetime(["2020-01-01", "2020-01-03"])})

        series = daily_series(df, "date", unique_id="s", fill_missing=False)

        assert len(series) == 2

    def test_sum_per_day(self):
        df = pd.DataFrame({
            "date": pd.to_datetime(["2020-01-02", "2020-01-01", "2020-01-02"]),
            "new_cases": [5, 1, None],
        })

        series = daily_series(df, "date", unique_id="us", value_column="new_cases")

        assert series["y"].tolist() == [1.0, 5.0]

    def test_rows_without_date_dropped_and_logged(self, caplog):
        df = pd.DataFrame({"date": pd.to_datetime(["2020-01-01", None, "2020-01-03"])})

        with caplog.at_level(logging.WARNING):
            series = daily_series(df, "date", unique_id="s")

        assert series["ds"].tolist() == list(pd.date_range("2020-01-01", periods=3, freq="D"))
        assert series["y"].tolist() == [1.0, 0.0, 1.0]
        assert "dropped 1/3" in caplog.text

    @pytest.mark.fail_loud
    def test_requires_parsed_dates(self):
        df = pd.DataFrame({"date": ["2020-01-01"]})

        with pytest.raises(SchemaError):
            daily_series(df, "date", unique_id="s")
