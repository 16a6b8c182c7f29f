"""
Configuration constants for data sources, fitting and missing-value handling.
"""

from typing import Literal

# JHU CSSE time series, US counties, one column per day
JHU_BASE_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series"
)
COVID_CASES_URL = f"{JHU_BASE_URL}/time_series_covid19_confirmed_US.csv"
# the deaths file is the one carrying county population
COVID_DEATHS_URL = f"{JHU_BASE_URL}/time_series_covid19_deaths_US.csv"

NYPD_SHOOTINGS_URL = (
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD"
)

REPORTS_DIR = "reports"

# Trend fitting
DEFAULT_DEGREE = 4
CURVE_STEPS = 200

# Contiguous US, excludes Alaska, Hawaii and territories
LATITUDE_BOUNDS = (25.0, 50.0)

# NYPD age group encoding
AGE_GROUPS = ["<18", "18-24", "25-44", "45-64", "65+"]
UNKNOWN = "UNKNOWN"
AGE_COLUMNS = ("VIC_AGE_GROUP", "PERP_AGE_GROUP")

# Missing values, per kind of column:
# - "unknown": coalesce into the UNKNOWN category
# - "drop": drop the row
# - "keep": leave as is
MissingPolicy = Literal["unknown", "drop", "keep"]

MISSING_POLICY: dict[str, MissingPolicy] = {
    "age_group": "unknown",
    "coordinates": "drop",
}

STATE_ABBREVIATIONS = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "District of Columbia": "DC", "Florida": "FL", "Georgia": "GA", "Hawaii": "HI",
    "Idaho": "ID", "Illinois": "IL", "Indiana": "IN", "Iowa": "IA",
    "Kansas": "KS", "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME",
    "Maryland": "MD", "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN",
    "Mississippi": "MS", "Missouri": "MO", "Montana": "MT", "Nebraska": "NE",
    "Nevada": "NV", "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM",
    "New York": "NY", "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH",
    "Oklahoma": "OK", "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI",
    "South Carolina": "SC", "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX",
    "Utah": "UT", "Vermont": "VT", "Virginia": "VA", "Washington": "WA",
    "West Virginia": "WV", "Wisconsin": "WI", "Wyoming": "WY",
}
