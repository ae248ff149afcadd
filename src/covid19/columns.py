"""Column names of the JHU CSSE time_series_covid19_*_US.csv files."""

from __future__ import annotations

ADMIN2 = "Admin2"
STATE = "Province_State"
COUNTRY = "Country_Region"
COMBINED_KEY = "Combined_Key"
POPULATION = "Population"

# Identifiers and coordinates not used by the analysis
DROP_COLUMNS = ("UID", "iso2", "iso3", "code3", "FIPS", "Lat", "Long_")

ID_COLUMNS = (ADMIN2, STATE, COUNTRY, COMBINED_KEY)

# Header cells of the per-day columns, e.g. "1/22/20"
DATE_FORMAT = "%m/%d/%y"

DATE = "date"
CASES = "cases"
DEATHS = "deaths"
NEW_CASES = "new_cases"
NEW_DEATHS = "new_deaths"
CASES_PER_THOU = "cases_per_thou"
DEATHS_PER_THOU = "deaths_per_thou"

SERIES_ID = "us_new_cases"
