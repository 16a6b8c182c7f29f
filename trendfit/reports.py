"""
The two reports: COVID-19 cases by US state, and NYPD shootings by age
group, borough and month.

Each report chains preparation, trend fitting and plotting, and returns a
`Report`. Fit errors propagate unless `fallback=True`, in which case a
lower degree is tried.
"""

import logging
import os

import polars as pl
from plotly import graph_objects as go

from trendfit import config, plotting, prep
from trendfit.models import (
    PolynomialModel,
    fit_frame,
    fit_groups,
    fit_with_fallback,
)

log = logging.getLogger(__name__)


class Report:
    """Tables, fitted models and figures of one analysis."""

    def __init__(
        self,
        name: str,
        tables: dict[str, pl.DataFrame],
        models: dict[str, PolynomialModel],
        figures: dict[str, go.Figure],
    ) -> None:
        self.name = name
        self.tables = tables
        self.models = models
        self.figures = figures

    def __str__(self) -> str:
        lines = [f"Report: {self.name}"]
        for k, t in self.tables.items():
            lines.append(f"  - table {k}: {len(t)} rows")
        for k, m in self.models.items():
            lines.append(
                f"  - model {k}: degree {m.degree}, R2 {m.r2:.4f}, p-value {m.p_value:.4g}"
            )
        return "\n".join(lines)

    def save(self, directory: str = config.REPORTS_DIR):
        """Write tables as csv and figures as html, under `directory/name`."""
        out = os.path.join(directory, self.name)
        os.makedirs(out, exist_ok=True)

        for k, t in self.tables.items():
            t.write_csv(os.path.join(out, f"{k}.csv"))
        for k, fig in self.figures.items():
            fig.write_html(os.path.join(out, f"{k}.html"))

        log.info(f"Saved {len(self.tables)} tables, {len(self.figures)} figures to {out}")
        return out


def _fit(samples, x, y, degree, fallback, verbose) -> PolynomialModel:
    if fallback:
        return fit_with_fallback(samples, degree, x=x, y=y, verbose=verbose)
    return fit_frame(samples, x, y, degree, verbose=verbose)


def covid_report(
    cases_source: str | pl.DataFrame = config.COVID_CASES_URL,
    population_source: str | pl.DataFrame = config.COVID_DEATHS_URL,
    x: str = "Lat",
    y: str = "cases",
    degree: int = config.DEFAULT_DEGREE,
    latitude_bounds: tuple[float, float] = config.LATITUDE_BOUNDS,
    fallback: bool = False,
    verbose=False,
) -> Report:
    """Cumulative COVID-19 cases per state, trend against latitude (or `x`).

    ## parameters
    - cases_source: JHU confirmed cases time series (path, URL or frame).
    - population_source: JHU deaths time series, for its Population column.
    - x, y: columns to fit, of the per-state table.
    """
    cases = prep.as_frame(cases_source)
    population = prep.state_population(prep.as_frame(population_source))

    states = prep.covid_latest_by_state(prep.covid_to_long(cases))
    states = prep.join_population(states, population)
    contiguous = prep.filter_latitude(states, "Lat", latitude_bounds)

    model = _fit(contiguous, x, y, degree, fallback, verbose)
    log.info(f"covid trend: degree {model.degree}, R2 {model.r2:.4f}, p {model.p_value:.4g}")

    shares = states.select(
        "state",
        "cases",
        "population",
        pl.col("cases_per_100k").round(2),
        (pl.col("cases") / pl.col("cases").sum() * 100).round(2).alias("percent_of_cases"),
    ).sort("cases", descending=True)

    figures = {
        "trend": plotting.trend_plot(
            contiguous, x, y, model, title=f"COVID-19 {y} by state vs {x}"
        ),
        "map": plotting.state_choropleth(
            states, "cases_per_100k", title="COVID-19 cases per 100k"
        ),
    }

    return Report(
        "covid",
        tables={"states": shares, "trend": model.predict_frame(contiguous)},
        models={"cases": model},
        figures=figures,
    )


def shooting_report(
    source: str | pl.DataFrame = config.NYPD_SHOOTINGS_URL,
    missing_policy: dict[str, config.MissingPolicy] | None = None,
    degree: int = config.DEFAULT_DEGREE,
    fallback: bool = False,
    verbose=False,
) -> Report:
    """NYPD shootings: age group shares, and the seasonal trend of monthly
    counts (month 1-12 against shootings per year-month), overall and per
    borough.
    """
    policy = dict(config.MISSING_POLICY)
    if missing_policy:
        policy.update(missing_policy)

    incidents = prep.parse_shootings(prep.as_frame(source))
    incidents = prep.clean_age_groups(incidents, policy=policy["age_group"])

    age_columns = [c for c in config.AGE_COLUMNS if c in incidents.columns]
    tables = {}
    for col in age_columns:
        tables[f"{col.lower()}_shares"] = prep.age_group_shares(incidents, col)
        tables[f"{col.lower()}_by_boro"] = prep.age_group_shares(incidents, col, by="BORO")

    monthly = prep.monthly_counts(incidents)
    tables["monthly"] = monthly

    model = _fit(monthly, "month", "shootings", degree, fallback, verbose)
    log.info(f"shooting trend: degree {model.degree}, R2 {model.r2:.4f}, p {model.p_value:.4g}")

    boro_monthly = prep.monthly_counts(incidents, by="BORO")
    boro_models = fit_groups(
        boro_monthly,
        "BORO",
        "month",
        "shootings",
        degree,
        fallback=fallback,
        verbose=verbose,
    )

    located = prep.drop_missing_coords(incidents, policy=policy["coordinates"])

    figures = {
        "trend": plotting.trend_plot(
            monthly, "month", "shootings", model, title="Shootings per month"
        ),
        "map": plotting.shooting_map(located),
    }

    models = {"monthly": model}
    models.update({f"monthly_{boro}": m for boro, m in boro_models.items()})

    return Report("shootings", tables=tables, models=models, figures=figures)
