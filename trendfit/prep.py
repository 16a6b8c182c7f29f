"""
Data preparation for the COVID-19 and NYPD shooting reports.

Every step takes a DataFrame and returns a new one, and logs how many rows
it kept.
"""

import logging
import re

import polars as pl

from trendfit import config
from trendfit.models import Observation

log = logging.getLogger(__name__)

DATE_COLUMN = re.compile(r"^\d{1,2}/\d{1,2}/\d{2}$")

COVID_ID_COLUMNS = ["Province_State", "Lat", "Long_"]


def _log_rows(step: str, before: int, after: int):
    log.info(f"[{step}] {before:,} -> {after:,} rows ({before - after:,} removed)")


def load_csv(source: str) -> pl.DataFrame:
    """Read a CSV from a local path or URL."""
    df = pl.read_csv(source, infer_schema_length=10000)
    log.info(f"Loaded {len(df):,} rows x {df.width} columns from {source}")
    return df


def as_frame(source: str | pl.DataFrame) -> pl.DataFrame:
    if isinstance(source, pl.DataFrame):
        return source
    return load_csv(source)


# ── COVID-19 ──────────────────────────────────────────────────────────────────


def covid_to_long(df: pl.DataFrame) -> pl.DataFrame:
    """Unpivot the per-day case columns into (date, cases) rows."""
    missing = [c for c in COVID_ID_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns: {missing}")

    date_cols = [c for c in df.columns if DATE_COLUMN.match(c)]
    if not date_cols:
        raise ValueError("No date columns (M/D/YY) found")

    long = df.unpivot(
        index=COVID_ID_COLUMNS,
        on=date_cols,
        variable_name="date",
        value_name="cases",
    ).with_columns(
        pl.col("date").str.to_date("%m/%d/%y"),
        pl.col("cases").cast(pl.Float64),
    )
    log.info(f"[covid_to_long] {len(df):,} rows x {len(date_cols)} days -> {len(long):,} rows")
    return long


def covid_latest_by_state(long: pl.DataFrame) -> pl.DataFrame:
    """Cumulative cases per state on the latest date.

    Coordinates are the mean over the state's counties, ignoring the 0/0
    placeholders used for unassigned cases. A state without any located
    county gets null coordinates.
    """
    located = (pl.col("Lat") != 0) & (pl.col("Long_") != 0)

    latest = long.filter(pl.col("date") == pl.col("date").max())
    by_state = (
        latest.group_by("Province_State")
        .agg(
            pl.col("date").first(),
            pl.col("cases").sum(),
            pl.col("Lat").filter(located).mean(),
            pl.col("Long_").filter(located).mean(),
        )
        .rename({"Province_State": "state"})
        .sort("state")
    )
    _log_rows("covid_latest_by_state", len(long), len(by_state))
    return by_state


def state_population(deaths: pl.DataFrame) -> pl.DataFrame:
    """Population per state, summed from the county rows of the deaths file."""
    return (
        deaths.group_by("Province_State")
        .agg(pl.col("Population").sum().alias("population"))
        .rename({"Province_State": "state"})
        .sort("state")
    )


def join_population(
    df: pl.DataFrame,
    population: pl.DataFrame,
    on: str = "state",
) -> pl.DataFrame:
    """Inner join on state, adds `cases_per_100k`. States without a population
    (or with population 0) are dropped."""
    joined = df.join(
        population.select(on, "population").filter(pl.col("population") > 0),
        on=on,
        how="inner",
    ).with_columns(
        (pl.col("cases") / pl.col("population") * 100_000).alias("cases_per_100k"),
    ).sort(on)
    _log_rows("join_population", len(df), len(joined))
    return joined


def filter_latitude(
    df: pl.DataFrame,
    column: str = "Lat",
    bounds: tuple[float, float] = config.LATITUDE_BOUNDS,
) -> pl.DataFrame:
    """Keep rows with latitude within bounds (inclusive), null drops."""
    low, high = bounds
    kept = df.filter(pl.col(column).is_between(low, high))
    _log_rows("filter_latitude", len(df), len(kept))
    return kept


# ── NYPD shootings ────────────────────────────────────────────────────────────


def parse_shootings(df: pl.DataFrame, date_column: str = "OCCUR_DATE") -> pl.DataFrame:
    """Parse the occurrence date and add `year` and `month` columns."""
    if df.schema[date_column] == pl.String:
        df = df.with_columns(pl.col(date_column).str.to_date("%m/%d/%Y"))

    return df.with_columns(
        pl.col(date_column).dt.year().alias("year"),
        pl.col(date_column).dt.month().alias("month"),
    )


def clean_age_groups(
    df: pl.DataFrame,
    columns: tuple[str, ...] | list[str] = config.AGE_COLUMNS,
    policy: config.MissingPolicy = config.MISSING_POLICY["age_group"],
) -> pl.DataFrame:
    """Handle age groups outside the known encoding (nulls, "(null)", typos).

    - "unknown": replace with UNKNOWN
    - "drop": drop the row
    - "keep": leave as is
    """
    if policy not in ("unknown", "drop", "keep"):
        raise ValueError(f"Unsupported age group policy: {policy}")

    present = [c for c in columns if c in df.columns]
    if not present:
        raise ValueError(f"None of the age group columns {columns} present")

    before = len(df)
    for col in present:
        known = pl.col(col).is_in(config.AGE_GROUPS).fill_null(False)
        if policy == "unknown":
            df = df.with_columns(
                pl.when(known)
                .then(pl.col(col))
                .otherwise(pl.lit(config.UNKNOWN))
                .alias(col)
            )
        elif policy == "drop":
            df = df.filter(known)

    _log_rows(f"clean_age_groups:{policy}", before, len(df))
    return df


def drop_missing_coords(
    df: pl.DataFrame,
    lat: str = "Latitude",
    lon: str = "Longitude",
    policy: config.MissingPolicy = config.MISSING_POLICY["coordinates"],
) -> pl.DataFrame:
    """Handle rows without coordinates. Only "drop" and "keep" make sense here."""
    if policy == "keep":
        return df
    if policy != "drop":
        raise ValueError(f"Unsupported coordinate policy: {policy}")

    kept = df.filter(pl.col(lat).is_not_null() & pl.col(lon).is_not_null())
    _log_rows("drop_missing_coords", len(df), len(kept))
    return kept


def monthly_counts(df: pl.DataFrame, by: str | None = None) -> pl.DataFrame:
    """Number of incidents per (year, month), optionally per group too."""
    keys = ["year", "month"] if by is None else [by, "year", "month"]
    return df.group_by(keys).agg(pl.len().alias("shootings")).sort(keys)


def age_group_shares(
    df: pl.DataFrame,
    column: str = "VIC_AGE_GROUP",
    by: str | None = None,
) -> pl.DataFrame:
    """Percentage of incidents per age group, within each `by` group if given.

    ## Returns
    - shares (DataFrame): columns [by], column, count, percent (2 decimals)
    """
    keys = [column] if by is None else [by, column]
    total = pl.col("count").sum()
    if by is not None:
        total = total.over(by)

    return (
        df.group_by(keys)
        .agg(pl.len().alias("count"))
        .with_columns((pl.col("count") / total * 100).round(2).alias("percent"))
        .sort(keys)
    )


def to_observations(df: pl.DataFrame, x: str, y: str) -> list[Observation]:
    return [Observation(float(a), float(b)) for a, b in df.select(x, y).iter_rows()]
