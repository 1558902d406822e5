"""
vaxstat Command Line Interface (CLI)
====================================

Run the whole batch like:

    python -m vaxstat.cli --output output --report output/report.docx

1) Load the four sources (census, ECDC vaccinations, deaths, cases)
2) Print and save one table per age group
3) Build the week x age-group collection, save mean risk ratios and charts
4) Optionally write a DOCX report

With `--interactive` the sources are loaded once and a small REPL lets you
inspect single cells and tables instead.

The CLI never modifies the source files.
"""

from __future__ import annotations
import argparse, logging, os, shlex
from typing import List, Optional, Tuple

from .config import AnalysisConfig, SourcePaths
from .engine import ReportEngine
from .loader import IngestDiagnostics, load_age_distribution, load_cases, load_deaths, load_vaccinations
from .logging_config import configure_logging
from .models import AgeGroup, YearWeek
from .tables import format_table, mean_series_table, stats_table, write_age_group_csv

logger = logging.getLogger(__name__)

HELP = """
Commands:
  help
  groups                              age groups and their population
  table <low> <high>                  weekly table of one age group
  cell <YYYY-Www> <low> <high>        one report cell, e.g. cell 2021-W40 50 59
  means                               weekly means of the risk ratios
  report "<path.docx>"                DOCX report (with charts)
  quit
"""


def build_parser() -> argparse.ArgumentParser:
    d = SourcePaths()
    c = AnalysisConfig()
    ap = argparse.ArgumentParser(prog="vaxstat", description="Weekly COVID-19 outcomes by vaccination status")
    ap.add_argument("--demographics", default=d.demographics, help="Census XLS (population by age)")
    ap.add_argument("--vaccinations", default=d.vaccinations, help="ECDC vaccination CSV export")
    ap.add_argument("--deaths", default=d.deaths, help="Death register CSV")
    ap.add_argument("--cases", default=d.cases, help="Case register CSV")
    ap.add_argument("--output", default=c.output_dir, help="Directory for CSV tables and charts")
    ap.add_argument("--year", type=int, default=c.year)
    ap.add_argument("--weeks", type=int, default=c.weeks_in_report, help="Weeks in the cross-age-group collection")
    ap.add_argument("--country", default=c.country)
    ap.add_argument("--region", default=c.region)
    ap.add_argument("--report", default=None, help="Write a DOCX report to this path")
    ap.add_argument("--no-plots", action="store_true", help="Skip chart rendering")
    ap.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--log-file", default=None)
    ap.add_argument("--interactive", action="store_true", help="Start a REPL after loading")
    return ap


def load_engine(paths: SourcePaths, config: AnalysisConfig) -> Tuple[ReportEngine, List[IngestDiagnostics]]:
    """Load every source and wrap them in a ReportEngine."""
    print("Loading demographics...")
    ages, d_ages = load_age_distribution(paths.demographics, sheet=config.demographics_sheet)

    print("Loading vaccinations...")
    vaccinations, d_vacc = load_vaccinations(paths.vaccinations, country=config.country, region=config.region)

    print("Loading deaths...")
    deaths, d_deaths = load_deaths(paths.deaths, encoding=config.source_encoding)

    print("Loading cases...")
    cases, d_cases = load_cases(paths.cases, encoding=config.source_encoding)

    print(f"General population: {ages.population()}")
    print(f"COVID-19 deaths: {deaths.total_deaths}")
    print(f"COVID-19 cases: {cases.total_cases}")

    seen = vaccinations.age_groups()
    for group in config.age_groups:
        if group not in seen:
            logger.warning("no vaccination rows for age group %s; everyone counts as unvaccinated", group)

    engine = ReportEngine(ages=ages, vaccinations=vaccinations, deaths=deaths, cases=cases, config=config)
    return engine, [d_ages, d_vacc, d_deaths, d_cases]


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the vaxstat CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, args.log_level), log_file=args.log_file)

    paths = SourcePaths(
        demographics=args.demographics,
        vaccinations=args.vaccinations,
        deaths=args.deaths,
        cases=args.cases,
    )
    config = AnalysisConfig(
        year=args.year,
        weeks_in_report=args.weeks,
        country=args.country,
        region=args.region,
        output_dir=args.output,
    )

    try:
        engine, diagnostics = load_engine(paths, config)
    except (OSError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for d in diagnostics:
        if d.dropped_count:
            print(f"Dropped {d.dropped_count} malformed rows from {d.source}")

    if args.interactive:
        repl(engine, diagnostics)
        return 0

    run_batch(engine, diagnostics, report_path=args.report, plots=not args.no_plots)
    return 0


def run_batch(engine: ReportEngine, diagnostics: List[IngestDiagnostics],
              report_path: Optional[str] = None, plots: bool = True) -> None:
    config = engine.config
    weeks = engine.table_weeks()
    for group in config.age_groups:
        print(f"Age group {group} (population: {engine.ages.population_of(group)})")
        table = stats_table(engine.reports_for_age_group(group, weeks))
        print(format_table(table))
        write_age_group_csv(group, table, config.output_dir)
        print("")

    collection = engine.build_collection()
    os.makedirs(config.output_dir, exist_ok=True)
    means_path = os.path.join(config.output_dir, "mean_risk_ratios.csv")
    mean_series_table(collection).to_csv(means_path, index=False)
    print(f"Mean risk ratios written to {means_path}")

    for week, group, unvaccinated in collection.data_quality_issues():
        logger.warning("week %s, age group %s: negative unvaccinated population (%d)", week, group, unvaccinated)

    charts = []
    if plots or report_path:
        from .plots import draw_all
        charts = draw_all(collection, engine.vaccinations, config.chart_age_group, config.output_dir)
        print(f"{len(charts)} charts written to {config.output_dir}")

    if report_path:
        _write_report(engine, collection, report_path, charts, diagnostics)
        print(f"Report written to {report_path}")


def _write_report(engine, collection, path, charts, diagnostics) -> None:
    from .report import ReportConfig, generate_docx_report
    cfg = ReportConfig(age_groups=engine.config.age_groups)
    sources = [d.source for d in diagnostics]
    for citation, source in zip(cfg.citations, sources):
        citation.file_name = os.path.basename(source)
    generate_docx_report(collection, path, config=cfg, charts=charts, diagnostics=diagnostics)


def repl(engine: ReportEngine, diagnostics: List[IngestDiagnostics]) -> None:
    print("Type 'help' for commands.")
    while True:
        try:
            line = input("vaxstat> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            break
        try:
            handle(engine, line, diagnostics)
        except (ValueError, KeyError, IndexError, OSError, ImportError) as e:
            print(f"Error: {e}")


def _age_group(parts: List[str], at: int) -> AgeGroup:
    return AgeGroup(int(parts[at]), int(parts[at + 1]))


def handle(engine: ReportEngine, line: str, diagnostics: Optional[List[IngestDiagnostics]] = None) -> None:
    """Handle one REPL command line."""
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "groups":
        for g in engine.config.age_groups:
            print(f"{g}: {engine.ages.population_of(g)}")
        return

    if cmd == "table":
        group = _age_group(parts, 1)
        print(format_table(stats_table(engine.reports_for_age_group(group))))
        return

    if cmd == "cell":
        week = YearWeek.parse(parts[1])
        group = _age_group(parts, 2)
        _print_cell(week, group, engine)
        return

    if cmd == "means":
        print(format_table(mean_series_table(engine.build_collection())))
        return

    if cmd == "report":
        from .plots import draw_all
        path = parts[1]
        collection = engine.build_collection()
        charts = draw_all(collection, engine.vaccinations, engine.config.chart_age_group, engine.config.output_dir)
        _write_report(engine, collection, path, charts, diagnostics or [])
        print(f"Report written to {path}")
        return

    print("Unknown command. Type 'help'.")


def _print_cell(week: YearWeek, group: AgeGroup, engine: ReportEngine) -> None:
    r = engine.weekly_report(week, group)
    v = r.vaccinated_people
    print(f"{week} | {group} | population={engine.ages.population_of(group)} unvaccinated={r.unvaccinated_people}")
    print(f"  doses: 1={v.one_dose} 2={v.two_doses} 3={v.three_doses} 1+={v.at_least_one_dose} 2+={v.at_least_two_doses}")
    print(f"  deaths: {r.absolute_deaths.unvaccinated}/{r.absolute_deaths.two_doses}/{r.absolute_deaths.three_doses}"
          f"  per mln: {r.deaths_per_million.unvaccinated:.2f}/{r.deaths_per_million.two_doses:.2f}/{r.deaths_per_million.three_doses:.2f}")
    print(f"  cases: {r.absolute_cases.unvaccinated}/{r.absolute_cases.two_doses}/{r.absolute_cases.three_doses}"
          f"  per mln: {r.cases_per_million.unvaccinated:.2f}/{r.cases_per_million.two_doses:.2f}/{r.cases_per_million.three_doses:.2f}")
    print(f"  RR death 2/3: {r.risk_ratio_of_two_doses():.2f}/{r.risk_ratio_of_three_doses():.2f}"
          f"  RR case 2/3: {r.case_risk_ratio_of_two_doses():.2f}/{r.case_risk_ratio_of_three_doses():.2f}"
          f"  CFR NV/2: {r.cfr_unvaccinated():.3f}/{r.cfr_two_doses():.3f}")


if __name__ == "__main__":
    raise SystemExit(main())
