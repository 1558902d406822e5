"""
Cumulative vaccination aggregator
=================================

ECDC publishes, per week and age group, how many first/second/additional
doses were given. `VaccinationData.sum()` folds those weekly rows into a
`VaccinatedPeople` snapshot as of a given week.
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import reduce
from typing import Iterable, List, Sequence, Tuple

from .models import AgeGroup, VaccinatedPeople, VaccinationWeekRow, YearWeek


@dataclass(frozen=True)
class VaccinationData:
    """Week-ordered vaccination rows for one country/region."""
    rows: Tuple[VaccinationWeekRow, ...]

    def __post_init__(self) -> None:
        # sorted() is stable: rows of the same week keep their source order
        object.__setattr__(self, "rows", tuple(sorted(self.rows, key=lambda r: r.year_week)))

    @classmethod
    def from_rows(cls, rows: Iterable[VaccinationWeekRow]) -> "VaccinationData":
        return cls(rows=tuple(rows))

    def __len__(self) -> int:
        return len(self.rows)

    def sum(self, age_group: AgeGroup, week: YearWeek) -> VaccinatedPeople:
        """Snapshot for `age_group` including every row up to `week`."""
        matching = (r for r in self.rows if r.year_week <= week and r.age_group == age_group)
        return reduce(VaccinatedPeople.update, matching, VaccinatedPeople())

    def age_groups(self) -> List[AgeGroup]:
        """Distinct age groups present, in order of first appearance."""
        seen: List[AgeGroup] = []
        for r in self.rows:
            if r.age_group not in seen:
                seen.append(r.age_group)
        return seen

    def cumulative_series(self, age_group: AgeGroup, weeks: Sequence[YearWeek]) -> List[Tuple[YearWeek, VaccinatedPeople]]:
        """`sum()` evaluated for every week in `weeks`."""
        return [(w, self.sum(age_group, w)) for w in weeks]
