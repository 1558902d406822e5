"""
Vital-event counter (deaths and cases)
======================================

Two kinds of registers are counted the same way:

- deaths: every record is one death, so we count matching records;
- cases: every record carries a `count`, so we sum it.

A record matches when it falls in the requested ISO week, its age is inside
the age group and its vaccination status is the requested one.

`count_deaths` / `sum_cases` are the plain linear scans. `DeathsData` and
`CasesData` answer the same questions through an `EventIndex`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from .indices import EventIndex, build_index
from .models import AgeGroup, CaseRecord, DeathRecord, VaccinationStatus, YearWeek


def _matches(record, week: YearWeek, age_group: AgeGroup, status: VaccinationStatus) -> bool:
    return record.week == week and age_group.includes(record.age) and record.status == status


def count_deaths(events: Iterable[DeathRecord], week: YearWeek, age_group: AgeGroup,
                 status: VaccinationStatus) -> int:
    """Number of deaths matching (week, age group, status)."""
    return sum(1 for e in events if _matches(e, week, age_group, status))


def sum_cases(events: Iterable[CaseRecord], week: YearWeek, age_group: AgeGroup,
              status: VaccinationStatus) -> int:
    """Total reported cases matching (week, age group, status)."""
    return sum(e.count for e in events if _matches(e, week, age_group, status))


@dataclass(frozen=True)
class DeathsData:
    """Death register with a (week, status) index."""
    deaths: Tuple[DeathRecord, ...]
    idx: EventIndex = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "deaths", tuple(self.deaths))
        object.__setattr__(self, "idx", build_index(self.deaths))

    @property
    def total_deaths(self) -> int:
        return len(self.deaths)

    def max_week(self) -> Optional[YearWeek]:
        return self.idx.max_week()

    def by_vaccination_status(self, week: YearWeek, age_group: AgeGroup,
                              status: VaccinationStatus) -> int:
        return sum(1 for i in self.idx.bucket(week, status) if age_group.includes(self.deaths[i].age))


@dataclass(frozen=True)
class CasesData:
    """Case register with a (week, status) index."""
    cases: Tuple[CaseRecord, ...]
    idx: EventIndex = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cases", tuple(self.cases))
        object.__setattr__(self, "idx", build_index(self.cases))

    @property
    def total_cases(self) -> int:
        return sum(c.count for c in self.cases)

    def max_week(self) -> Optional[YearWeek]:
        return self.idx.max_week()

    def by_vaccination_status(self, week: YearWeek, age_group: AgeGroup,
                              status: VaccinationStatus) -> int:
        total = 0
        for i in self.idx.bucket(week, status):
            c = self.cases[i]
            if age_group.includes(c.age):
                total += c.count
        return total

