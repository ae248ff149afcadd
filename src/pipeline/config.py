"""
Pipeline Configuration

Defaults live on a frozen Settings-style dataclass; EDA_* variables from the
environment (or a local .env) override them, explicit kwargs override both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace

from dotenv import find_dotenv, load_dotenv

SHOOTINGS_URL = (
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"
)
_JHU_BASE = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
)
COVID_CASES_URL = _JHU_BASE + "time_series_covid19_confirmed_US.csv"
COVID_DEATHS_URL = _JHU_BASE + "time_series_covid19_deaths_US.csv"

TIME_POLICIES = ("raise", "drop")


@dataclass(frozen=True)
class PipelineConfig:
    # Sources
    shootings_url: str = SHOOTINGS_URL
    covid_cases_url: str = COVID_CASES_URL
    covid_deaths_url: str = COVID_DEATHS_URL

    # HTTP
    http_timeout: float = 60.0
    http_retries: int = 1
    backoff_factor: float = 0.5

    # Preparation
    time_parse_policy: str = "raise"

    # Forecasting
    season_length: int = 365
    horizon: int = 120
    confidence_level: int = 95

    log_level: str = "INFO"

    def __post_init__(self):
        if self.time_parse_policy not in TIME_POLICIES:
            raise ValueError(
                f"time_parse_policy must be one of {TIME_POLICIES}, got {self.time_parse_policy!r}"
            )
        if self.horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {self.horizon}")
        if self.season_length < 1:
            raise ValueError(f"season_length must be >= 1, got {self.season_length}")
        if not 0 < self.confidence_level < 100:
            raise ValueError(f"confidence_level must be in (0, 100), got {self.confidence_level}")
        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be > 0, got {self.http_timeout}")


_ENV_VARS = {
    "http_timeout": ("EDA_HTTP_TIMEOUT", float),
    "http_retries": ("EDA_HTTP_RETRIES", int),
    "horizon": ("EDA_HORIZON", int),
    "season_length": ("EDA_SEASON_LENGTH", int),
    "time_parse_policy": ("EDA_TIME_POLICY", str),
    "log_level": ("EDA_LOG_LEVEL", str),
}


def load_config(**overrides) -> PipelineConfig:
    """
    Load configuration from environment.

    Reads EDA_* variables from a .env file (searched upward from the working
    directory) or the process environment.
    Keyword overrides that are not None take precedence.
    """
    load_dotenv(find_dotenv(usecwd=True))

    known = {f.name for f in fields(PipelineConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown config fields: {sorted(unknown)}")

    values = {}
    for name, (var, cast) in _ENV_VARS.items():
        raw = os.getenv(var)
        if raw is None or raw == "":
            continue
        try:
            values[name] = cast(raw)
        except ValueError as exc:
            raise ValueError(f"{var}={raw!r} is not a valid {cast.__name__}") from exc

    values.update({k: v for k, v in overrides.items() if v is not None})
    return replace(PipelineConfig(), **values)
