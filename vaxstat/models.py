"""
Data model (keys, records and reports)
======================================

Everything the engine works with is a small immutable value:

- `YearWeek` and `AgeGroup` are the keys every filter is built from.
- `DeathRecord` / `CaseRecord` are one row of the vital-event registers.
- `DeathRate` is a per-tier triple (unvaccinated / two doses / three doses).
- `WeeklyReport` is one (week, age group) cell of the final report.

Records are frozen (`frozen=True`) so nothing can edit them after loading.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Generic, Iterator, Optional, Tuple, TypeVar
import re

import numpy as np

T = TypeVar("T")

_YEAR_WEEK_RE = re.compile(r"(\d{4})-?W(\d{2})")


class UnmappedLabelError(ValueError):
    """A categorical source label has no mapping in the model."""


# -----------------------------
# Keys
# -----------------------------

@dataclass(frozen=True, order=True)
class YearWeek:
    """ISO-8601 (year, week) pair, ordered by year then week."""
    year: int
    week: int

    def __post_init__(self) -> None:
        if not 1 <= self.week <= 53:
            raise ValueError(f"ISO week out of range: {self.week}")

    @classmethod
    def from_date(cls, d: date) -> "YearWeek":
        iso = d.isocalendar()
        return cls(iso[0], iso[1])

    @classmethod
    def parse(cls, text: str) -> "YearWeek":
        """Parse `2021-W05` (ECDC YearWeekISO) or `2021W05`."""
        m = _YEAR_WEEK_RE.search(str(text))
        if not m:
            raise ValueError(f"bad year-week: {text!r}")
        return cls(int(m.group(1)), int(m.group(2)))

    def __str__(self) -> str:
        return f"{self.year}W{self.week:02d}"


def weeks_from(start: date, count: int) -> Iterator[YearWeek]:
    """Yield `count` ISO weeks, stepping 7 days from `start`.

    Starting on 2021-01-01 the first week is 2020W53.
    """
    for n in range(count):
        yield YearWeek.from_date(start + timedelta(weeks=n))


def weeks_until(start: date, last: YearWeek) -> Iterator[YearWeek]:
    """Yield weeks stepping 7 days from `start` while week <= last."""
    d = start
    while True:
        week = YearWeek.from_date(d)
        if week > last:
            return
        yield week
        d += timedelta(weeks=1)


@dataclass(frozen=True)
class AgeGroup:
    """Inclusive age bracket [low, high]."""
    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low < 0 or self.high < self.low:
            raise ValueError(f"invalid age group: {self.low}-{self.high}")

    def includes(self, age: int) -> bool:
        return self.low <= age <= self.high

    def __str__(self) -> str:
        return f"{self.low} - {self.high}"


# Deaths and demographics come per single year of age, ECDC vaccination data
# per age bracket, so reports are built on these brackets.
# 80+ (80-120) is left out on purpose: its population denominator from the
# census table is wrong and every rate derived from it would be misleading.
AGE_GROUPS: Tuple[AgeGroup, ...] = (
    AgeGroup(0, 4),
    AgeGroup(5, 9),
    AgeGroup(10, 14),
    AgeGroup(15, 17),
    AgeGroup(18, 24),
    AgeGroup(25, 49),
    AgeGroup(50, 59),
    AgeGroup(60, 69),
    AgeGroup(70, 79),
)


# -----------------------------
# Vaccination status
# -----------------------------

class VaccinationStatus(Enum):
    UNVACCINATED = "unvaccinated"
    ONE_DOSE = "one_dose"
    TWO_DOSES = "two_doses"
    THREE_DOSES = "three_doses"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "VaccinationStatus":
        """Map a register label (`dawka_ost`) to a status."""
        key = "" if label is None else str(label).strip()
        try:
            return _STATUS_LABELS[key]
        except KeyError:
            raise UnmappedLabelError(f"unknown vaccination status label: {label!r}") from None


# Several register spellings mean the same tier (full course / booster).
_STATUS_LABELS: Dict[str, VaccinationStatus] = {
    "": VaccinationStatus.UNVACCINATED,
    "jedna_dawka": VaccinationStatus.ONE_DOSE,
    "dwie_dawki": VaccinationStatus.TWO_DOSES,
    "pelna_dawka": VaccinationStatus.TWO_DOSES,
    "uzupełniająca": VaccinationStatus.THREE_DOSES,
    # the register is windows-1250 encoded but read as ISO-8859-2
    "uzupełniajšca": VaccinationStatus.THREE_DOSES,
    "przypominajaca": VaccinationStatus.THREE_DOSES,
}


# -----------------------------
# Vital-event records
# -----------------------------

@dataclass(frozen=True)
class DeathRecord:
    """One reported COVID-19 death."""
    date: date
    age: int
    status: VaccinationStatus

    @property
    def week(self) -> YearWeek:
        return YearWeek.from_date(self.date)


@dataclass(frozen=True)
class CaseRecord:
    """Aggregated reported infections for one (date, age, status)."""
    date: date
    age: int
    status: VaccinationStatus
    count: int

    @property
    def week(self) -> YearWeek:
        return YearWeek.from_date(self.date)


# -----------------------------
# Vaccination rows and snapshots
# -----------------------------

@dataclass(frozen=True)
class VaccinationWeekRow:
    """One ECDC row: doses given in `year_week` to one age group."""
    year_week: YearWeek
    age_group: AgeGroup
    first_dose: int
    second_dose: int
    third_dose: int


@dataclass(frozen=True)
class VaccinatedPeople:
    """People vaccinated as of some week.

    `at_least_*` are cumulative counts; `one_dose`, `two_doses` and
    `three_doses` partition the vaccinated into "exactly k doses".
    """
    at_least_one_dose: int = 0
    at_least_two_doses: int = 0
    at_least_three_doses: int = 0
    one_dose: int = 0
    two_doses: int = 0
    three_doses: int = 0

    def update(self, row: VaccinationWeekRow) -> "VaccinatedPeople":
        """Return the snapshot after adding one week of doses."""
        return VaccinatedPeople(
            at_least_one_dose=self.at_least_one_dose + row.first_dose,
            at_least_two_doses=self.at_least_two_doses + row.second_dose,
            at_least_three_doses=self.at_least_three_doses + row.third_dose,
            # ECDC data has a few people getting the next dose before the
            # previous one is reported; the exclusive tiers stop at zero.
            one_dose=max(0, self.one_dose + row.first_dose - row.second_dose),
            two_doses=max(0, self.two_doses + row.second_dose - row.third_dose),
            three_doses=self.three_doses + row.third_dose,
        )


# -----------------------------
# Arithmetic helpers
# -----------------------------

def ratio(numerator: float, denominator: float) -> float:
    """IEEE division: x/0 gives inf (or nan for 0/0) instead of raising."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(numerator) / np.float64(denominator))


def per_million(numerator: int, denominator: int) -> float:
    return ratio(numerator * 1_000_000.0, denominator)


# -----------------------------
# Per-tier triple and weekly report
# -----------------------------

@dataclass(frozen=True)
class DeathRate(Generic[T]):
    """A value split by vaccination tier (counts or rates)."""
    unvaccinated: T
    two_doses: T
    three_doses: T

    def total(self) -> T:
        return self.unvaccinated + self.two_doses + self.three_doses

    def get(self, status: VaccinationStatus) -> T:
        if status is VaccinationStatus.UNVACCINATED:
            return self.unvaccinated
        if status is VaccinationStatus.TWO_DOSES:
            return self.two_doses
        if status is VaccinationStatus.THREE_DOSES:
            return self.three_doses
        raise ValueError(f"no {status.value} tier in a DeathRate")


@dataclass(frozen=True)
class WeeklyReport:
    """One (week, age group) cell.

    Only source counts and per-million rates are stored; risk ratios and
    CFR are computed on demand from them.
    """
    vaccinated_people: VaccinatedPeople
    unvaccinated_people: int
    absolute_cases: DeathRate[int]
    absolute_deaths: DeathRate[int]
    cases_per_million: DeathRate[float]
    deaths_per_million: DeathRate[float]

    def risk_ratio(self, tier: VaccinationStatus) -> float:
        return ratio(self.deaths_per_million.get(tier), self.deaths_per_million.unvaccinated)

    def risk_ratio_of_two_doses(self) -> float:
        return self.risk_ratio(VaccinationStatus.TWO_DOSES)

    def risk_ratio_of_three_doses(self) -> float:
        return self.risk_ratio(VaccinationStatus.THREE_DOSES)

    def case_risk_ratio(self, tier: VaccinationStatus) -> float:
        return ratio(self.cases_per_million.get(tier), self.cases_per_million.unvaccinated)

    def case_risk_ratio_of_two_doses(self) -> float:
        return self.case_risk_ratio(VaccinationStatus.TWO_DOSES)

    def case_risk_ratio_of_three_doses(self) -> float:
        return self.case_risk_ratio(VaccinationStatus.THREE_DOSES)

    def case_fatality_ratio(self, tier: VaccinationStatus) -> float:
        """Deaths / cases within one tier (unvaccinated or two doses)."""
        if tier not in (VaccinationStatus.UNVACCINATED, VaccinationStatus.TWO_DOSES):
            raise ValueError(f"CFR is only reported for unvaccinated and two doses, not {tier.value}")
        return ratio(self.absolute_deaths.get(tier), self.absolute_cases.get(tier))

    def cfr_unvaccinated(self) -> float:
        return self.case_fatality_ratio(VaccinationStatus.UNVACCINATED)

    def cfr_two_doses(self) -> float:
        return self.case_fatality_ratio(VaccinationStatus.TWO_DOSES)

