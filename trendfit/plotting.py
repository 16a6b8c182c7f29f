"""Plotting functions for the reports. Based on plotly"""

from plotly import graph_objects as go
from plotly import io as pio
from polars import DataFrame

from trendfit import config
from trendfit.models import PolynomialModel


def set_plotly_template():
    plot_temp = pio.templates["plotly_white"]
    plot_temp.layout.width = 800
    plot_temp.layout.height = 500
    plot_temp.layout.autosize = False
    pio.templates.default = plot_temp


def trend_plot(
    samples: DataFrame,
    x: str,
    y: str,
    model: PolynomialModel,
    title: str | None = None,
) -> go.Figure:
    """Scatter of the observations with the fitted polynomial on top."""
    curve = model.curve(config.CURVE_STEPS)

    fig = go.Figure()
    fig.add_traces(
        [
            go.Scatter(
                x=samples[x].to_list(),
                y=samples[y].to_list(),
                mode="markers",
                name="observed",
            ),
            go.Scatter(
                x=curve["x"].to_list(),
                y=curve["y_pred"].to_list(),
                mode="lines",
                name=f"degree {model.degree} fit (R2 {model.r2:.2f})",
            ),
        ]
    )
    fig.update_layout(
        title=title or f"{y} vs {x}",
        xaxis_title=x,
        yaxis_title=y,
    )
    return fig


def state_choropleth(
    df: DataFrame,
    value: str,
    state: str = "state",
    title: str | None = None,
) -> go.Figure:
    """Map of US states colored by `value`. Rows that are not a state (cruise
    ships, territories) are not drawn."""
    rows = [
        (config.STATE_ABBREVIATIONS[s], v)
        for s, v in df.select(state, value).iter_rows()
        if s in config.STATE_ABBREVIATIONS
    ]

    fig = go.Figure(
        go.Choropleth(
            locations=[r[0] for r in rows],
            z=[r[1] for r in rows],
            locationmode="USA-states",
            colorscale="Reds",
            colorbar_title=value,
        )
    )
    fig.update_layout(title=title or value, geo_scope="usa")
    return fig


def shooting_map(
    df: DataFrame,
    lat: str = "Latitude",
    lon: str = "Longitude",
    color: str | None = "BORO",
) -> go.Figure:
    """Incident locations, one trace per `color` group."""
    fig = go.Figure()

    if color is None:
        groups = [("incidents", df)]
    else:
        groups = [(key[0], g) for key, g in df.sort(color).group_by(color, maintain_order=True)]

    for name, g in groups:
        fig.add_trace(
            go.Scattergeo(
                lat=g[lat].to_list(),
                lon=g[lon].to_list(),
                mode="markers",
                marker_size=3,
                name=str(name),
            )
        )

    fig.update_geos(fitbounds="locations")
    fig.update_layout(title="Shooting incidents")
    return fig
