"""
COVID-19 US cases and deaths (Johns Hopkins CSSE time series).

Modules:
- columns: provider schema the pipeline depends on
- tasks: reshape, summarize and model the case/death tables
"""

from .tasks import (
    CovidReport,
    national_new_cases,
    prepare_us_cases,
    run_covid_pipeline,
    state_mortality_fit,
    summarize_states,
)

__all__ = [
    "CovidReport",
    "prepare_us_cases",
    "summarize_states",
    "national_new_cases",
    "state_mortality_fit",
    "run_covid_pipeline",
]
