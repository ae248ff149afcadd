"""Column names published by NYC Open Data for dataset 833y-fsy8."""

from __future__ import annotations

INCIDENT_KEY = "INCIDENT_KEY"
OCCUR_DATE = "OCCUR_DATE"
OCCUR_TIME = "OCCUR_TIME"
BORO = "BORO"
MURDER_FLAG = "STATISTICAL_MURDER_FLAG"

DEMOGRAPHIC_COLUMNS = (
    "PERP_AGE_GROUP",
    "PERP_SEX",
    "PERP_RACE",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
)

KEEP_COLUMNS = (
    INCIDENT_KEY,
    OCCUR_DATE,
    OCCUR_TIME,
    BORO,
    MURDER_FLAG,
    *DEMOGRAPHIC_COLUMNS,
)

DATE_FORMAT = "%m/%d/%Y"
TIME_FORMAT = "%H:%M:%S"

# Placeholders the provider uses for "not recorded"
NULL_CODES = ("", "(null)", "NULL", "(NULL)")
UNKNOWN = "UNKNOWN"

MURDER_TRUE = ("true", "y", "yes", "1")
MURDER_FALSE = ("false", "n", "no", "0")

SERIES_ID = "nypd_shootings"
