"""Shared builders for small in-memory datasets."""

from datetime import date

import pytest

from vaxstat.demographics import AgeDistribution
from vaxstat.events import CasesData, DeathsData
from vaxstat.models import (
    AgeGroup,
    CaseRecord,
    DeathRecord,
    VaccinationStatus,
    VaccinationWeekRow,
    YearWeek,
)
from vaxstat.vaccination import VaccinationData

NV = VaccinationStatus.UNVACCINATED
ONE = VaccinationStatus.ONE_DOSE
TWO = VaccinationStatus.TWO_DOSES
THREE = VaccinationStatus.THREE_DOSES

G50 = AgeGroup(50, 59)
G60 = AgeGroup(60, 69)

# 2021-W10 runs from Monday 2021-03-08 to Sunday 2021-03-14
W10 = YearWeek(2021, 10)
W10_DAY = date(2021, 3, 10)
W11_DAY = date(2021, 3, 17)


def deaths(n, day, age, status):
    return [DeathRecord(date=day, age=age, status=status) for _ in range(n)]


@pytest.fixture
def scenario_a():
    """50-59: 1,000,000 people, 600,000 with a first dose, 500,000 with two."""
    ages = AgeDistribution({age: 100_000 for age in range(50, 60)})
    vaccinations = VaccinationData.from_rows([
        VaccinationWeekRow(YearWeek(2021, 5), G50, 600_000, 0, 0),
        VaccinationWeekRow(YearWeek(2021, 8), G50, 0, 500_000, 0),
    ])
    death_records = deaths(40, W10_DAY, 55, NV) + deaths(4, W10_DAY, 57, TWO)
    case_records = [
        CaseRecord(date=W10_DAY, age=52, status=NV, count=800),
        CaseRecord(date=W10_DAY, age=53, status=TWO, count=250),
    ]
    return {
        "ages": ages,
        "vaccinations": vaccinations,
        "deaths": DeathsData(deaths=tuple(death_records)),
        "cases": CasesData(cases=tuple(case_records)),
    }
