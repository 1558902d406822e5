"""
Core engine
===========

This is the heart of the project. It joins the four sources into reports:

1) population of an age group (census)
2) people vaccinated up to a week (ECDC rows, folded)
3) deaths and cases in that week, split by vaccination status
4) per-million rates and the risk ratios derived from them

`synthesize()` builds one (week, age group) cell and is a pure function of
its inputs. `ReportEngine` holds the loaded sources and builds tables and the
week x age-group collection (`WeeklyReports`) the renderers consume.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
import math

import numpy as np

from .config import AnalysisConfig
from .demographics import AgeDistribution
from .events import CasesData, DeathsData
from .models import (
    AgeGroup,
    DeathRate,
    VaccinationStatus,
    WeeklyReport,
    YearWeek,
    per_million,
    weeks_from,
    weeks_until,
)
from .vaccination import VaccinationData

Metric = Callable[[WeeklyReport], float]
MeanSeries = List[Tuple[YearWeek, Optional[float]]]

# One-dose people are tracked in VaccinatedPeople but not given a rate tier
_TIERS = (
    VaccinationStatus.UNVACCINATED,
    VaccinationStatus.TWO_DOSES,
    VaccinationStatus.THREE_DOSES,
)


def synthesize(
    week: YearWeek,
    age_group: AgeGroup,
    population: int,
    vaccinations: VaccinationData,
    deaths: DeathsData,
    cases: CasesData,
) -> WeeklyReport:
    """Build the report cell for one week and one age group."""
    vaccinated_people = vaccinations.sum(age_group, week)
    # Census and ECDC disagree for some brackets; this can go negative.
    unvaccinated_people = population - vaccinated_people.at_least_one_dose

    absolute_deaths = DeathRate(*(deaths.by_vaccination_status(week, age_group, s) for s in _TIERS))
    absolute_cases = DeathRate(*(cases.by_vaccination_status(week, age_group, s) for s in _TIERS))

    deaths_per_million = DeathRate(
        unvaccinated=per_million(absolute_deaths.unvaccinated, unvaccinated_people),
        two_doses=per_million(absolute_deaths.two_doses, vaccinated_people.two_doses),
        three_doses=per_million(absolute_deaths.three_doses, vaccinated_people.three_doses),
    )
    cases_per_million = DeathRate(
        unvaccinated=per_million(absolute_cases.unvaccinated, unvaccinated_people),
        two_doses=per_million(absolute_cases.two_doses, vaccinated_people.two_doses),
        three_doses=per_million(absolute_cases.three_doses, vaccinated_people.three_doses),
    )

    return WeeklyReport(
        vaccinated_people=vaccinated_people,
        unvaccinated_people=unvaccinated_people,
        absolute_cases=absolute_cases,
        absolute_deaths=absolute_deaths,
        cases_per_million=cases_per_million,
        deaths_per_million=deaths_per_million,
    )


def finite_mean(values: Iterable[float]) -> Optional[float]:
    """Mean of the finite values, or None when there are none."""
    finite = [v for v in values if math.isfinite(v)]
    if not finite:
        return None
    # divide first so the running sum stays below the float maximum
    return float(np.sum(np.asarray(finite) / len(finite)))


@dataclass
class WeeklyReports:
    """Chronological list of (week, {age group: report})."""
    entries: List[Tuple[YearWeek, Dict[AgeGroup, WeeklyReport]]] = field(default_factory=list)

    def __iter__(self) -> Iterator[Tuple[YearWeek, Dict[AgeGroup, WeeklyReport]]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def append(self, week: YearWeek, reports: Dict[AgeGroup, WeeklyReport]) -> None:
        if self.entries and week <= self.entries[-1][0]:
            raise ValueError(f"weeks must be appended in order: {week} after {self.entries[-1][0]}")
        self.entries.append((week, reports))

    def weeks(self) -> List[YearWeek]:
        return [w for w, _ in self.entries]

    def age_groups(self) -> List[AgeGroup]:
        return list(self.entries[0][1].keys()) if self.entries else []

    def get(self, week: YearWeek, age_group: AgeGroup) -> WeeklyReport:
        for w, reports in self.entries:
            if w == week:
                return reports[age_group]
        raise KeyError(week)

    # ---------------- Cross-age-group means ----------------
    def mean(self, metric: Metric) -> MeanSeries:
        """Per week, mean of `metric` over age groups, skipping non-finite values.

        A week where no age group gives a finite value maps to None.
        """
        return [(week, finite_mean(metric(r) for r in reports.values())) for week, reports in self.entries]

    def mean_risk_ratio_of_two_doses(self) -> MeanSeries:
        return self.mean(WeeklyReport.risk_ratio_of_two_doses)

    def mean_risk_ratio_of_three_doses(self) -> MeanSeries:
        return self.mean(WeeklyReport.risk_ratio_of_three_doses)

    def mean_case_risk_ratio_of_two_doses(self) -> MeanSeries:
        return self.mean(WeeklyReport.case_risk_ratio_of_two_doses)

    def mean_case_risk_ratio_of_three_doses(self) -> MeanSeries:
        return self.mean(WeeklyReport.case_risk_ratio_of_three_doses)

    def data_quality_issues(self) -> List[Tuple[YearWeek, AgeGroup, int]]:
        """Cells where vaccinated people outnumber the census population."""
        out: List[Tuple[YearWeek, AgeGroup, int]] = []
        for week, reports in self.entries:
            for group, r in reports.items():
                if r.unvaccinated_people < 0:
                    out.append((week, group, r.unvaccinated_people))
        return out


@dataclass
class ReportEngine:
    """Loaded sources plus the configuration that says what to report on."""
    ages: AgeDistribution
    vaccinations: VaccinationData
    deaths: DeathsData
    cases: CasesData
    config: AnalysisConfig = field(default_factory=AnalysisConfig)

    def weekly_report(self, week: YearWeek, age_group: AgeGroup) -> WeeklyReport:
        return synthesize(
            week,
            age_group,
            self.ages.population_of(age_group),
            self.vaccinations,
            self.deaths,
            self.cases,
        )

    def default_weeks(self) -> List[YearWeek]:
        """Weeks of the cross-age-group collection."""
        return list(weeks_from(self.config.start_date, self.config.weeks_in_report))

    def table_weeks(self) -> List[YearWeek]:
        """Weeks of the per-age-group tables: up to the latest reported case."""
        last = self.cases.max_week()
        if last is None:
            return []
        return list(weeks_until(self.config.start_date, last))

    def reports_for_age_group(self, age_group: AgeGroup,
                              weeks: Optional[Sequence[YearWeek]] = None) -> List[Tuple[YearWeek, WeeklyReport]]:
        weeks = self.table_weeks() if weeks is None else weeks
        return [(w, self.weekly_report(w, age_group)) for w in weeks]

    def build_collection(self, weeks: Optional[Sequence[YearWeek]] = None) -> WeeklyReports:
        weeks = self.default_weeks() if weeks is None else weeks
        out = WeeklyReports()
        for week in weeks:
            out.append(week, {g: self.weekly_report(week, g) for g in self.config.age_groups})
        return out
