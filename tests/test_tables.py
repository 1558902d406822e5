"""
Tests for tables.py - per-age-group tables and the mean series table.
"""

import os

import pandas as pd

from vaxstat.engine import WeeklyReports, synthesize
from vaxstat.tables import COLUMNS, NO_DATA, mean_series_table, stats_table, write_age_group_csv

from conftest import G50, W10


def _cell(s):
    return synthesize(W10, G50, s["ages"].population_of(G50), s["vaccinations"], s["deaths"], s["cases"])


class TestStatsTable:
    """Tests for stats_table()"""

    def test_one_row_per_week(self, scenario_a):
        table = stats_table([(W10, _cell(scenario_a))])
        assert list(table.columns) == ["Week"] + [h for h, _ in COLUMNS]
        assert len(table) == 1
        row = table.iloc[0]
        assert row["Week"] == "2021W10"
        assert row["Unvaccinated"] == 400_000
        assert row["Deaths (NV)"] == 40
        assert row["Deaths/mln (NV)"] == "100.00"
        assert row["Deaths/mln (2)"] == "8.00"
        assert row["Death RR (2)"] == "0.08"
        assert row["CFR (NV)"] == "0.050"

    def test_non_finite_values_are_rendered(self, scenario_a):
        row = stats_table([(W10, _cell(scenario_a))]).iloc[0]
        assert row["Deaths/mln (3)"] == "nan"

    def test_empty(self):
        table = stats_table([])
        assert table.empty
        assert "Week" in table.columns

    def test_write_csv(self, scenario_a, tmp_path):
        table = stats_table([(W10, _cell(scenario_a))])
        path = write_age_group_csv(G50, table, str(tmp_path / "out"))
        assert os.path.basename(path) == "details_for_50_59.csv"
        back = pd.read_csv(path)
        assert back["Deaths (NV)"].tolist() == [40]


class TestMeanSeriesTable:
    """Tests for mean_series_table()"""

    def test_no_data_marker(self, scenario_a):
        collection = WeeklyReports()
        collection.append(W10, {G50: _cell(scenario_a)})
        table = mean_series_table(collection)
        row = table.iloc[0]
        assert row["Mean death RR (2)"] == "0.080"
        assert row["Mean death RR (3)"] == NO_DATA
