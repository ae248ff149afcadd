"""
NYPD shooting incidents (NYC Open Data, historic).

Modules:
- columns: provider schema the pipeline depends on
- tasks: prepare, summarize and model the incident table
"""

from .columns import KEEP_COLUMNS
from .tasks import (
    ShootingsReport,
    prepare_incidents,
    run_shootings_pipeline,
    summarize_incidents,
)

__all__ = [
    "KEEP_COLUMNS",
    "ShootingsReport",
    "prepare_incidents",
    "summarize_incidents",
    "run_shootings_pipeline",
]
