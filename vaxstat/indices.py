"""
Indices (precomputed lookup tables)
===================================

The weekly report asks the same question many times:
"how many events in week W, status S, with age inside group G?"

`EventIndex` buckets record IDs by (week, status) once, so each query only
scans the small bucket and checks the age. The answer is the same as a full
scan over all records.

Example:
- `idx.by_week_status[(YearWeek(2021, 5), VaccinationStatus.TWO_DOSES)]`
  gives the sorted record IDs for that week and status.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .models import CaseRecord, DeathRecord, VaccinationStatus, YearWeek

Record = Union[DeathRecord, CaseRecord]
BucketKey = Tuple[YearWeek, VaccinationStatus]


@dataclass
class EventIndex:
    """Container of precomputed buckets for fast counting."""
    by_week_status: Dict[BucketKey, List[int]]
    weeks_sorted: List[YearWeek]

    def bucket(self, week: YearWeek, status: VaccinationStatus) -> List[int]:
        return self.by_week_status.get((week, status), [])

    def max_week(self) -> Optional[YearWeek]:
        return self.weeks_sorted[-1] if self.weeks_sorted else None


def build_index(records: Sequence[Record]) -> EventIndex:
    """Build the (week, status) index for a record sequence.

    Record IDs are positions in `records`.
    """
    by_week_status: Dict[BucketKey, List[int]] = {}
    weeks = set()

    for i, r in enumerate(records):
        week = r.week
        weeks.add(week)
        by_week_status.setdefault((week, r.status), []).append(i)

    # IDs are appended in increasing order already; buckets stay sorted
    return EventIndex(by_week_status=by_week_status, weeks_sorted=sorted(weeks))
