"""
Tables (per-age-group details and weekly means)
===============================================

`stats_table()` turns a run of weekly reports for one age group into a
DataFrame with one row per week. Counts stay integers; rates are formatted
with two decimals and CFR with three, so a CSV diff between runs is stable.
"""

from __future__ import annotations
import math
import os
from typing import Callable, Iterable, List, Optional, Tuple

import pandas as pd

from .engine import WeeklyReports
from .models import AgeGroup, WeeklyReport, YearWeek

NO_DATA = "n/a"

Column = Tuple[str, Callable[[WeeklyReport], object]]


def _f2(v: float) -> str:
    return f"{v:.2f}"


def _f3(v: float) -> str:
    return f"{v:.3f}"


# (header, value getter) in table order; NV = unvaccinated
COLUMNS: List[Column] = [
    ("Unvaccinated", lambda r: r.unvaccinated_people),
    ("1", lambda r: r.vaccinated_people.one_dose),
    ("2", lambda r: r.vaccinated_people.two_doses),
    ("3", lambda r: r.vaccinated_people.three_doses),
    ("1+", lambda r: r.vaccinated_people.at_least_one_dose),
    ("2+", lambda r: r.vaccinated_people.at_least_two_doses),
    # Cases
    ("Cases (NV)", lambda r: r.absolute_cases.unvaccinated),
    ("Cases (2)", lambda r: r.absolute_cases.two_doses),
    ("Cases (3)", lambda r: r.absolute_cases.three_doses),
    ("Cases/mln (NV)", lambda r: _f2(r.cases_per_million.unvaccinated)),
    ("Cases/mln (2)", lambda r: _f2(r.cases_per_million.two_doses)),
    ("Cases/mln (3)", lambda r: _f2(r.cases_per_million.three_doses)),
    # Deaths
    ("Deaths (NV)", lambda r: r.absolute_deaths.unvaccinated),
    ("Deaths (2)", lambda r: r.absolute_deaths.two_doses),
    ("Deaths (3)", lambda r: r.absolute_deaths.three_doses),
    ("Deaths/mln (NV)", lambda r: _f2(r.deaths_per_million.unvaccinated)),
    ("Deaths/mln (2)", lambda r: _f2(r.deaths_per_million.two_doses)),
    ("Deaths/mln (3)", lambda r: _f2(r.deaths_per_million.three_doses)),
    # Relative risk
    ("Case RR (2)", lambda r: _f2(r.case_risk_ratio_of_two_doses())),
    ("Case RR (3)", lambda r: _f2(r.case_risk_ratio_of_three_doses())),
    ("Death RR (2)", lambda r: _f2(r.risk_ratio_of_two_doses())),
    ("Death RR (3)", lambda r: _f2(r.risk_ratio_of_three_doses())),
    # CFR
    ("CFR (NV)", lambda r: _f3(r.cfr_unvaccinated())),
    ("CFR (2)", lambda r: _f3(r.cfr_two_doses())),
]


def stats_table(weekly_reports: Iterable[Tuple[YearWeek, WeeklyReport]]) -> pd.DataFrame:
    """One row per week, columns as in `COLUMNS` (plus the week)."""
    records = []
    for week, report in weekly_reports:
        row = {"Week": str(week)}
        for header, get in COLUMNS:
            row[header] = get(report)
        records.append(row)
    return pd.DataFrame(records, columns=["Week"] + [h for h, _ in COLUMNS])


def age_group_csv_path(age_group: AgeGroup, output_dir: str) -> str:
    return os.path.join(output_dir, f"details_for_{age_group.low}_{age_group.high}.csv")


def write_age_group_csv(age_group: AgeGroup, table: pd.DataFrame, output_dir: str) -> str:
    path = age_group_csv_path(age_group, output_dir)
    os.makedirs(output_dir, exist_ok=True)
    table.to_csv(path, index=False)
    return path


def format_table(table: pd.DataFrame) -> str:
    """Plain console rendering (no index column)."""
    return table.to_string(index=False)


def _cell(v: Optional[float]) -> str:
    return NO_DATA if v is None or not math.isfinite(v) else f"{v:.3f}"


def mean_series_table(collection: WeeklyReports) -> pd.DataFrame:
    """Weekly means across age groups of the four risk ratios."""
    series = [
        ("Mean death RR (2)", collection.mean_risk_ratio_of_two_doses()),
        ("Mean death RR (3)", collection.mean_risk_ratio_of_three_doses()),
        ("Mean case RR (2)", collection.mean_case_risk_ratio_of_two_doses()),
        ("Mean case RR (3)", collection.mean_case_risk_ratio_of_three_doses()),
    ]
    records = []
    for i, week in enumerate(collection.weeks()):
        row = {"Week": str(week)}
        for header, values in series:
            row[header] = _cell(values[i][1])
        records.append(row)
    return pd.DataFrame(records, columns=["Week"] + [h for h, _ in series])
