import os
import tempfile
import unittest

import polars as pl
from plotly import graph_objects as go

from trendfit import config
from trendfit.models import InsufficientDataError
from trendfit.reports import Report, covid_report, shooting_report

STATES = [
    ("Alabama", 32.8, -86.8),
    ("Arizona", 34.2, -111.6),
    ("Colorado", 39.0, -105.5),
    ("Florida", 28.6, -82.4),
    ("Georgia", 32.6, -83.4),
    ("Iowa", 42.0, -93.5),
    ("Maine", 45.3, -69.2),
    ("Ohio", 40.3, -82.8),
    ("Texas", 31.0, -99.0),
    ("Utah", 39.3, -111.7),
    ("Alaska", 63.6, -152.5),
]


def covid_frames():
    cases = pl.DataFrame(
        {
            "Province_State": [s for s, _, _ in STATES],
            "Lat": [lat for _, lat, _ in STATES],
            "Long_": [lon for _, _, lon in STATES],
            "3/1/21": [100 * i for i in range(len(STATES))],
            "3/2/21": [150 * i + 7 for i in range(len(STATES))],
        }
    )
    deaths = pl.DataFrame(
        {
            "Province_State": [s for s, _, _ in STATES],
            "Population": [1_000_000 + 1000 * i for i in range(len(STATES))],
        }
    )
    return cases, deaths


def shooting_frame():
    rows = []
    for year in (2019, 2020):
        for month in range(1, 13):
            for boro in ("BRONX", "BROOKLYN"):
                n = 2 + (month % 6) + (boro == "BRONX")
                for k in range(n):
                    rows.append(
                        {
                            "OCCUR_DATE": f"{month:02}/{k + 1:02}/{year}",
                            "BORO": boro,
                            "VIC_AGE_GROUP": ["18-24", "25-44", "(null)"][k % 3],
                            "PERP_AGE_GROUP": [None, "<18", "45-64"][k % 3],
                            "Latitude": None if k == 0 else 40.7,
                            "Longitude": None if k == 0 else -73.9,
                        }
                    )
    return pl.DataFrame(rows)


class TestCovidReport(unittest.TestCase):
    def setUp(self) -> None:
        cases, deaths = covid_frames()
        self.report = covid_report(cases, deaths)

    def test_tables(self):
        states = self.report.tables["states"]
        self.assertEqual(len(states), len(STATES))
        self.assertEqual(states["state"][0], "Alaska")
        self.assertAlmostEqual(states["percent_of_cases"].sum(), 100, delta=0.1)

        # Alaska is outside the latitude band
        trend = self.report.tables["trend"]
        self.assertEqual(len(trend), len(STATES) - 1)
        self.assertIn("y_pred", trend.columns)

    def test_model(self):
        model = self.report.models["cases"]
        self.assertEqual(model.degree, config.DEFAULT_DEGREE)
        self.assertEqual(model.feature, "Lat")
        self.assertEqual(len(model.y), len(STATES) - 1)

    def test_figures(self):
        self.assertSetEqual(set(self.report.figures), {"trend", "map"})
        for fig in self.report.figures.values():
            self.assertIsInstance(fig, go.Figure)
        self.assertIn("covid", str(self.report))

    def test_insufficient_propagates(self):
        cases, deaths = covid_frames()
        with self.assertRaises(InsufficientDataError):
            covid_report(cases.head(4), deaths)

    def test_fallback(self):
        cases, deaths = covid_frames()
        report = covid_report(cases.head(4), deaths, fallback=True)
        self.assertEqual(report.models["cases"].degree, 3)


class TestShootingReport(unittest.TestCase):
    def setUp(self) -> None:
        self.source = shooting_frame()
        self.report = shooting_report(self.source)

    def test_tables(self):
        tables = self.report.tables
        self.assertIn("vic_age_group_shares", tables)
        self.assertIn("perp_age_group_by_boro", tables)

        monthly = tables["monthly"]
        self.assertEqual(len(monthly), 24)
        self.assertEqual(monthly["shootings"].sum(), len(self.source))

        shares = tables["vic_age_group_shares"]
        self.assertIn(config.UNKNOWN, shares["VIC_AGE_GROUP"].to_list())

    def test_models(self):
        models = self.report.models
        self.assertSetEqual(
            set(models), {"monthly", "monthly_BRONX", "monthly_BROOKLYN"}
        )
        self.assertEqual(len(models["monthly"].y), 24)
        self.assertTrue(0 <= models["monthly"].r2 <= 1)

    def test_map_drops_missing_coordinates(self):
        fig = self.report.figures["map"]
        n_points = sum(len(trace.lat) for trace in fig.data)
        n_missing = self.source["Latitude"].null_count()
        self.assertEqual(n_points, len(self.source) - n_missing)

    def test_drop_policy(self):
        report = shooting_report(self.source, missing_policy={"age_group": "drop"})
        shares = report.tables["vic_age_group_shares"]
        self.assertNotIn(config.UNKNOWN, shares["VIC_AGE_GROUP"].to_list())
        self.assertLess(
            report.tables["monthly"]["shootings"].sum(), len(self.source)
        )


class TestSave(unittest.TestCase):
    def test_save(self):
        report = Report(
            "example",
            tables={"t": pl.DataFrame({"a": [1, 2]})},
            models={},
            figures={"f": go.Figure()},
        )
        with tempfile.TemporaryDirectory() as tmp:
            out = report.save(tmp)
            self.assertTrue(os.path.isfile(os.path.join(out, "t.csv")))
            self.assertTrue(os.path.isfile(os.path.join(out, "f.html")))
            self.assertListEqual(
                pl.read_csv(os.path.join(out, "t.csv"))["a"].to_list(), [1, 2]
            )


if __name__ == "__main__":
    unittest.main()
