"""
Tests for cli.py - the batch run end to end on small files.
"""

import logging
import os

import docx
import pandas as pd
import pytest

from vaxstat import cli
from vaxstat.config import AnalysisConfig, SourcePaths
from vaxstat.demographics import AgeDistribution
from vaxstat.engine import ReportEngine

from conftest import G50


@pytest.fixture
def sources(tmp_path):
    """Tiny versions of the four input files."""
    demographics = tmp_path / "tabela01.xlsx"
    census = [["Tabl. 1", None], ["Wiek", "Ogółem"]] + [[age, 100_000] for age in range(0, 80)]
    pd.DataFrame(census).to_excel(demographics, sheet_name="Tabl. 1", header=False, index=False)

    vaccinations = tmp_path / "vaccines.csv"
    pd.DataFrame([
        ["2021-W05", "PL", "PL", "Age50_59", 600_000, 0, 0],
        ["2021-W08", "PL", "PL", "Age50_59", 0, 500_000, 0],
        ["2021-W05", "PL", "PL", "ALL", 1, 1, 1],
    ], columns=["YearWeekISO", "ReportingCountry", "Region", "TargetGroup",
                "FirstDose", "SecondDose", "DoseAdditional1"]).to_csv(vaccinations, index=False)

    deaths = tmp_path / "zgony.csv"
    lines = ["data_rap_zgonu;wiek;dawka_ost"]
    lines += ["2021-03-10;55;"] * 40 + ["2021-03-10;57;dwie_dawki"] * 4 + ["garbage;1;"]
    deaths.write_bytes(("\n".join(lines) + "\n").encode("iso-8859-2"))

    cases = tmp_path / "zakazenia.csv"
    cases.write_bytes(
        "data_rap_zakazenia;wiek;dawka_ost;liczba_zaraportowanych_zakazonych\n"
        "2021-03-10;52;;800\n2021-03-10;53;pelna_dawka;250\n".encode("iso-8859-2")
    )
    return {
        "demographics": str(demographics),
        "vaccinations": str(vaccinations),
        "deaths": str(deaths),
        "cases": str(cases),
        "output": str(tmp_path / "output"),
    }


def _argv(s, *extra):
    return [
        "--demographics", s["demographics"],
        "--vaccinations", s["vaccinations"],
        "--deaths", s["deaths"],
        "--cases", s["cases"],
        "--output", s["output"],
        *extra,
    ]


class TestBatch:
    """Tests for main() in batch mode"""

    def test_writes_tables_and_means(self, sources, capsys):
        assert cli.main(_argv(sources, "--no-plots")) == 0
        out = capsys.readouterr().out
        assert "General population: 8000000" in out
        assert "COVID-19 deaths: 44" in out
        assert "Dropped 1 malformed rows" in out

        details = pd.read_csv(os.path.join(sources["output"], "details_for_50_59.csv"))
        assert details["Week"].tolist()[-1] == "2021W10"
        last = details.iloc[-1]
        assert last["Deaths (NV)"] == 40
        assert last["Death RR (2)"] == pytest.approx(0.08)
        for g in AnalysisConfig().age_groups:
            assert os.path.exists(os.path.join(sources["output"], f"details_for_{g.low}_{g.high}.csv"))

        means = pd.read_csv(os.path.join(sources["output"], "mean_risk_ratios.csv"), keep_default_na=False)
        assert len(means) == 51
        row = means[means["Week"] == "2021W10"].iloc[0]
        assert float(row["Mean death RR (2)"]) == pytest.approx(0.08)
        assert means[means["Week"] == "2021W20"].iloc[0]["Mean death RR (2)"] == "n/a"

    def test_missing_file_fails_cleanly(self, sources, capsys):
        sources = dict(sources, deaths=sources["deaths"] + ".missing")
        assert cli.main(_argv(sources, "--no-plots")) == 1
        assert "Error:" in capsys.readouterr().out

    def test_defaults_match_config(self):
        args = cli.build_parser().parse_args([])
        assert args.demographics == SourcePaths().demographics
        assert args.weeks == 51
        assert args.country == "PL"

    def test_report_flag_writes_docx_with_source_files(self, sources, tmp_path, capsys):
        path = str(tmp_path / "docs" / "report.docx")
        assert cli.main(_argv(sources, "--report", path)) == 0
        out = capsys.readouterr().out
        assert f"Report written to {path}" in out
        assert "8 charts written to" in out

        text = "\n".join(p.text for p in docx.Document(path).paragraphs)
        assert "File: tabela01.xlsx." in text
        assert "File: vaccines.csv." in text
        assert "File: zgony.csv." in text
        assert "File: zakazenia.csv." in text

    def test_negative_unvaccinated_cells_are_logged(self, scenario_a, tmp_path, caplog):
        # 100 inhabitants in 50-59 but 600,000 first doses from 2021W05 onwards
        engine = ReportEngine(
            ages=AgeDistribution({age: 10 for age in range(50, 60)}),
            vaccinations=scenario_a["vaccinations"],
            deaths=scenario_a["deaths"],
            cases=scenario_a["cases"],
            config=AnalysisConfig(weeks_in_report=12, age_groups=(G50,), output_dir=str(tmp_path)),
        )
        caplog.set_level(logging.WARNING, logger="vaxstat.cli")
        cli.run_batch(engine, [], plots=False)

        warnings = [r.getMessage() for r in caplog.records if "negative unvaccinated population" in r.getMessage()]
        assert len(warnings) == 7
        assert warnings[0] == "week 2021W05, age group 50 - 59: negative unvaccinated population (-599900)"


def _load(sources):
    paths = SourcePaths(
        demographics=sources["demographics"],
        vaccinations=sources["vaccinations"],
        deaths=sources["deaths"],
        cases=sources["cases"],
    )
    return cli.load_engine(paths, AnalysisConfig(output_dir=sources["output"]))


class TestLoadEngine:
    """Tests for load_engine()"""

    def test_prints_totals(self, sources, capsys):
        _load(sources)
        out = capsys.readouterr().out
        assert "COVID-19 deaths: 44" in out
        assert "COVID-19 cases: 1050" in out

    def test_warns_about_age_groups_without_vaccination_rows(self, sources, caplog):
        caplog.set_level(logging.WARNING, logger="vaxstat.cli")
        _load(sources)
        missing = [r.getMessage() for r in caplog.records if "no vaccination rows" in r.getMessage()]
        assert len(missing) == len(AnalysisConfig().age_groups) - 1
        assert not any("50 - 59" in m for m in missing)


class TestHandle:
    """Tests for REPL command handling"""

    def test_cell_and_groups(self, sources, capsys):
        engine, diagnostics = _load(sources)
        capsys.readouterr()

        cli.handle(engine, "cell 2021-W10 50 59", diagnostics)
        out = capsys.readouterr().out
        assert "unvaccinated=400000" in out
        assert "RR death 2/3: 0.08/nan" in out

        cli.handle(engine, "groups", diagnostics)
        assert "50 - 59: 1000000" in capsys.readouterr().out

        cli.handle(engine, "nonsense", diagnostics)
        assert "Unknown command" in capsys.readouterr().out

    def test_table_and_means(self, sources, capsys):
        engine, diagnostics = _load(sources)
        capsys.readouterr()

        cli.handle(engine, "table 50 59", diagnostics)
        out = capsys.readouterr().out
        assert "Death RR (2)" in out
        assert "2020W53" in out
        assert "2021W10" in out
        assert "2021W11" not in out

        cli.handle(engine, "means", diagnostics)
        out = capsys.readouterr().out
        assert "Mean death RR (2)" in out
        assert "0.080" in out
        assert "n/a" in out

    def test_report_command(self, sources, tmp_path, capsys):
        engine, diagnostics = _load(sources)
        path = str(tmp_path / "repl report.docx")

        cli.handle(engine, f'report "{path}"', diagnostics)
        assert f"Report written to {path}" in capsys.readouterr().out
        assert os.path.exists(path)
        assert os.path.exists(os.path.join(sources["output"], "risk_ratios.png"))
