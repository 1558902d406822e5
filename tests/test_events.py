"""
Tests for events.py / indices.py - counting deaths and summing cases.
"""

import random
from datetime import date, timedelta

from vaxstat.events import CasesData, DeathsData, count_deaths, sum_cases
from vaxstat.indices import build_index
from vaxstat.models import AGE_GROUPS, AgeGroup, CaseRecord, DeathRecord, VaccinationStatus, YearWeek

from conftest import G50, NV, ONE, THREE, TWO, W10, W10_DAY, W11_DAY, deaths


class TestCountDeaths:
    """Tests for count_deaths() and DeathsData.by_vaccination_status()"""

    def setup_method(self):
        self.records = (
            deaths(3, W10_DAY, 55, NV)
            + deaths(2, W10_DAY, 50, TWO)
            + deaths(1, W10_DAY, 59, TWO)
            + deaths(4, W10_DAY, 60, TWO)  # outside 50-59
            + deaths(5, W10_DAY, 49, NV)  # outside 50-59
            + deaths(6, W11_DAY, 55, NV)  # next week
            + deaths(7, W10_DAY, 55, ONE)
        )
        self.data = DeathsData(deaths=tuple(self.records))

    def test_filters_week_group_and_status(self):
        assert count_deaths(self.records, W10, G50, NV) == 3
        assert count_deaths(self.records, W10, G50, TWO) == 3
        assert count_deaths(self.records, W10, G50, THREE) == 0
        assert count_deaths(self.records, YearWeek(2021, 11), G50, NV) == 6

    def test_indexed_matches_scan(self):
        for status in VaccinationStatus:
            for week in (W10, YearWeek(2021, 11), YearWeek(2021, 12)):
                for group in AGE_GROUPS:
                    assert self.data.by_vaccination_status(week, group, status) == \
                        count_deaths(self.records, week, group, status)

    def test_totals_and_max_week(self):
        assert self.data.total_deaths == len(self.records)
        assert self.data.max_week() == YearWeek(2021, 11)

    def test_empty_register(self):
        data = DeathsData(deaths=())
        assert data.total_deaths == 0
        assert data.max_week() is None
        assert data.by_vaccination_status(W10, G50, NV) == 0


class TestSumCases:
    """Tests for sum_cases() and CasesData.by_vaccination_status()"""

    def test_sums_counts_not_records(self):
        records = [
            CaseRecord(date=W10_DAY, age=52, status=TWO, count=10),
            CaseRecord(date=W10_DAY, age=58, status=TWO, count=15),
            CaseRecord(date=W10_DAY, age=61, status=TWO, count=100),
            CaseRecord(date=W11_DAY, age=52, status=TWO, count=1000),
        ]
        data = CasesData(cases=tuple(records))
        assert sum_cases(records, W10, G50, TWO) == 25
        assert data.by_vaccination_status(W10, G50, TWO) == 25
        assert data.total_cases == 1125
        assert data.max_week() == YearWeek(2021, 11)

    def test_indexed_matches_scan_on_random_register(self):
        rng = random.Random(7)
        start = date(2021, 1, 1)
        statuses = list(VaccinationStatus)
        records = [
            CaseRecord(
                date=start + timedelta(days=rng.randint(0, 120)),
                age=rng.randint(0, 95),
                status=rng.choice(statuses),
                count=rng.randint(1, 30),
            )
            for _ in range(500)
        ]
        data = CasesData(cases=tuple(records))
        weeks = sorted({r.week for r in records})
        for week in weeks[:6]:
            for group in AGE_GROUPS + (AgeGroup(80, 120),):
                for status in statuses:
                    assert data.by_vaccination_status(week, group, status) == sum_cases(records, week, group, status)

    def test_order_independent(self):
        records = [CaseRecord(date=W10_DAY, age=50 + i, status=NV, count=i + 1) for i in range(10)]
        forward = CasesData(cases=tuple(records)).by_vaccination_status(W10, G50, NV)
        backward = CasesData(cases=tuple(reversed(records))).by_vaccination_status(W10, G50, NV)
        assert forward == backward == 55


class TestIndex:
    """Tests for build_index()"""

    def test_buckets_hold_sorted_ids(self):
        records = [
            DeathRecord(date=W10_DAY, age=50, status=NV),
            DeathRecord(date=W11_DAY, age=50, status=NV),
            DeathRecord(date=W10_DAY, age=70, status=NV),
        ]
        idx = build_index(records)
        assert idx.bucket(W10, NV) == [0, 2]
        assert idx.bucket(YearWeek(2021, 11), NV) == [1]
        assert idx.bucket(W10, TWO) == []
        assert idx.weeks_sorted == [W10, YearWeek(2021, 11)]
