"""
Dataset loaders (files -> immutable records)
============================================

This module reads the four source files and converts each row into the
records of `vaxstat.models`:

- census table (XLS): population per single year of age
- ECDC vaccination export (CSV): weekly doses per age group
- death register (CSV, `;`, Latin-2): one row per death
- case register (CSV, `;`, Latin-2): aggregated case counts

Key ideas:
- Rows that cannot be parsed are dropped, never guessed. Every drop is
  recorded in an `IngestDiagnostics` returned next to the data.
- An ECDC age-group code we have no bracket for is a hard error
  (`UnmappedLabelError`): silently bucketing it would corrupt every rate.
- Each `load_*` reads a file into a DataFrame; the matching `*_from_frame`
  does the conversion, so it can be fed frames directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
import numbers
import re
from typing import List, Optional, Tuple

import pandas as pd

from .demographics import AgeDistribution
from .events import CasesData, DeathsData
from .models import (
    AgeGroup,
    CaseRecord,
    DeathRecord,
    UnmappedLabelError,
    VaccinationStatus,
    VaccinationWeekRow,
    YearWeek,
)
from .vaccination import VaccinationData

logger = logging.getLogger(__name__)


@dataclass
class IngestDiagnostics:
    """What happened while reading one source."""
    source: str
    rows_read: int = 0
    rows_kept: int = 0
    # well-formed rows outside the scope (other country, aggregate groups)
    rows_filtered: int = 0
    # (1-based data row number, reason)
    dropped: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def drop(self, row_number: int, reason: str) -> None:
        self.dropped.append((row_number, reason))
        logger.debug("dropping %s row %d: %s", self.source, row_number, reason)

    def summary(self) -> str:
        return (f"{self.source}: read {self.rows_read}, kept {self.rows_kept}, "
                f"filtered {self.rows_filtered}, dropped {self.dropped_count}")


class RowError(ValueError):
    """One row could not be converted; the row is dropped."""


# -----------------------------
# Cell conversion helpers
# -----------------------------

def _to_str(x) -> str:
    if x is None or (not isinstance(x, str) and pd.isna(x)):
        return ""
    return str(x).strip()


def _to_int(x, what: str) -> int:
    s = _to_str(x)
    try:
        v = float(s)
    except ValueError:
        raise RowError(f"bad {what}: {s!r}") from None
    if not v.is_integer() or v < 0:
        raise RowError(f"bad {what}: {s!r}")
    return int(v)


def _to_date(x) -> date:
    s = _to_str(x)
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        raise RowError(f"bad date: {s!r}") from None


def _to_age(x) -> int:
    """Age in whole years; fractional ages round half away from zero."""
    s = _to_str(x).replace(",", ".")
    try:
        age = Decimal(s)
    except InvalidOperation:
        raise RowError(f"bad age: {s!r}") from None
    if not age.is_finite() or age < 0:
        raise RowError(f"bad age: {s!r}")
    return int(age.to_integral_value(rounding=ROUND_HALF_UP))


def _to_status(x) -> VaccinationStatus:
    try:
        return VaccinationStatus.from_label(_to_str(x))
    except UnmappedLabelError as e:
        raise RowError(str(e)) from None


def _not_a_number(x) -> bool:
    if isinstance(x, bool) or not isinstance(x, numbers.Real):
        return True
    return bool(pd.isna(x))


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise KeyError(f"Missing required column. Tried={names}. Available={cols}")


def _read_register(path: str, encoding: str) -> pd.DataFrame:
    # keep_default_na=False: an empty `dawka_ost` means "unvaccinated", not NaN
    return pd.read_csv(path, sep=";", encoding=encoding, dtype=str, keep_default_na=False)


# -----------------------------
# ECDC age-group codes
# -----------------------------

_ECDC_AGE_GROUPS = {
    "Age0_4": AgeGroup(0, 4),
    "Age5_9": AgeGroup(5, 9),
    "Age10_14": AgeGroup(10, 14),
    "Age15_17": AgeGroup(15, 17),
    "Age18_24": AgeGroup(18, 24),
    "Age25_49": AgeGroup(25, 49),
    "Age50_59": AgeGroup(50, 59),
    "Age60_69": AgeGroup(60, 69),
    "Age70_79": AgeGroup(70, 79),
    "Age80+": AgeGroup(80, 120),
}

# Totals, unknown age and health-care workers overlap the age brackets
_ECDC_IGNORED_GROUPS = {"ALL", "AgeUNK", "HCW"}


def ecdc_age_group(code: str) -> Optional[AgeGroup]:
    """Bracket for an ECDC TargetGroup code; None for codes we skip.

    Raises UnmappedLabelError for codes that are neither known nor skipped.
    """
    code = code.strip()
    if code in _ECDC_IGNORED_GROUPS:
        return None
    try:
        return _ECDC_AGE_GROUPS[code]
    except KeyError:
        raise UnmappedLabelError(f"unknown ECDC target group: {code!r}") from None


# -----------------------------
# Loaders
# -----------------------------

def load_age_distribution(path: str, sheet: str = "Tabl. 1") -> Tuple[AgeDistribution, IngestDiagnostics]:
    """Read the census table: first column age, second column population.

    Rows without a numeric age (titles, headers, totals) are skipped.
    """
    df = pd.read_excel(path, sheet_name=sheet, header=None)
    return age_distribution_from_frame(df, source=path)


def age_distribution_from_frame(df: pd.DataFrame, source: str = "demographics") -> Tuple[AgeDistribution, IngestDiagnostics]:
    diag = IngestDiagnostics(source=source)
    ages = {}
    for n, row in enumerate(df.itertuples(index=False), start=1):
        diag.rows_read += 1
        age_cell, count_cell = row[0], row[1]
        if _not_a_number(age_cell):
            diag.rows_filtered += 1
            continue
        if _not_a_number(count_cell):
            raise ValueError(f"row {n}: can't interpret population {count_cell!r} for age {age_cell!r}")
        age = int(age_cell)
        if age in ages:
            raise ValueError(f"row {n}: duplicate age {age} in census table")
        ages[age] = int(count_cell)
        diag.rows_kept += 1
    logger.info(diag.summary())
    return AgeDistribution(ages=ages), diag


def load_vaccinations(path: str, country: str = "PL", region: str = "PL") -> Tuple[VaccinationData, IngestDiagnostics]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return vaccinations_from_frame(df, country=country, region=region, source=path)


def vaccinations_from_frame(df: pd.DataFrame, country: str = "PL", region: str = "PL",
                            source: str = "vaccinations") -> Tuple[VaccinationData, IngestDiagnostics]:
    """Convert an ECDC export frame, keeping one country/region."""
    week_col = _col(df, "YearWeekISO", "year_week")
    country_col = _col(df, "ReportingCountry", "country")
    region_col = _col(df, "Region", "region")
    group_col = _col(df, "TargetGroup", "age_group")
    first_col = _col(df, "FirstDose", "first_dose")
    second_col = _col(df, "SecondDose", "second_dose")
    third_col = _col(df, "DoseAdditional1", "third_dose")

    diag = IngestDiagnostics(source=source)
    rows: List[VaccinationWeekRow] = []
    for n, row in enumerate(df.to_dict("records"), start=1):
        diag.rows_read += 1
        if _to_str(row[country_col]) != country or _to_str(row[region_col]) != region:
            diag.rows_filtered += 1
            continue
        # unknown codes propagate: the whole source is rejected
        group = ecdc_age_group(_to_str(row[group_col]))
        if group is None:
            diag.rows_filtered += 1
            continue
        try:
            rows.append(VaccinationWeekRow(
                year_week=YearWeek.parse(_to_str(row[week_col])),
                age_group=group,
                first_dose=_to_int(row[first_col], "FirstDose"),
                second_dose=_to_int(row[second_col], "SecondDose"),
                third_dose=_to_int(row[third_col], "DoseAdditional1"),
            ))
        except ValueError as e:
            diag.drop(n, str(e))
            continue
        diag.rows_kept += 1
    _log_summary(diag)
    return VaccinationData.from_rows(rows), diag


def load_deaths(path: str, encoding: str = "iso-8859-2") -> Tuple[DeathsData, IngestDiagnostics]:
    return deaths_from_frame(_read_register(path, encoding), source=path)


def deaths_from_frame(df: pd.DataFrame, source: str = "deaths") -> Tuple[DeathsData, IngestDiagnostics]:
    date_col = _col(df, "data_rap_zgonu", "date")
    age_col = _col(df, "wiek", "age")
    status_col = _col(df, "dawka_ost", "vaccination_status")

    diag = IngestDiagnostics(source=source)
    records: List[DeathRecord] = []
    for n, row in enumerate(df.to_dict("records"), start=1):
        diag.rows_read += 1
        try:
            records.append(DeathRecord(
                date=_to_date(row[date_col]),
                age=_to_age(row[age_col]),
                status=_to_status(row[status_col]),
            ))
        except RowError as e:
            diag.drop(n, str(e))
            continue
        diag.rows_kept += 1
    _log_summary(diag)
    return DeathsData(deaths=tuple(records)), diag


def load_cases(path: str, encoding: str = "iso-8859-2") -> Tuple[CasesData, IngestDiagnostics]:
    return cases_from_frame(_read_register(path, encoding), source=path)


def cases_from_frame(df: pd.DataFrame, source: str = "cases") -> Tuple[CasesData, IngestDiagnostics]:
    date_col = _col(df, "data_rap_zakazenia", "date")
    age_col = _col(df, "wiek", "age")
    status_col = _col(df, "dawka_ost", "vaccination_status")
    count_col = _col(df, "liczba_zaraportowanych_zakazonych", "count")

    diag = IngestDiagnostics(source=source)
    records: List[CaseRecord] = []
    for n, row in enumerate(df.to_dict("records"), start=1):
        diag.rows_read += 1
        try:
            records.append(CaseRecord(
                date=_to_date(row[date_col]),
                age=_to_age(row[age_col]),
                status=_to_status(row[status_col]),
                count=_to_int(row[count_col], "case count"),
            ))
        except RowError as e:
            diag.drop(n, str(e))
            continue
        diag.rows_kept += 1
    _log_summary(diag)
    return CasesData(cases=tuple(records)), diag


def _log_summary(diag: IngestDiagnostics) -> None:
    if diag.dropped_count:
        logger.warning(diag.summary())
    else:
        logger.info(diag.summary())
