# %%
import logging

import polars as pl

from trendfit import plotting, prep
from trendfit.models import fit, predict
from trendfit.reports import covid_report, shooting_report

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

plotting.set_plotly_template()

# %%
covid = covid_report(verbose=True)
print(covid)
print(covid.models["cases"].summary())
covid.figures["trend"].show()
covid.figures["map"].show()

# %%
display(covid.tables["states"].head(10))  # type: ignore # noqa: F821

# %%
shootings = shooting_report(fallback=True, verbose=True)
print(shootings)
shootings.figures["trend"].show()

# %%
display(shootings.tables["vic_age_group_by_boro"])  # type: ignore # noqa: F821

# %%
# same monthly trend, by hand
monthly = shootings.tables["monthly"]
model = fit(prep.to_observations(monthly, "month", "shootings"))
print(pl.DataFrame({"month": range(1, 13), "y_pred": predict(model, range(1, 13))}))

# %%
shootings.save()
covid.save()
