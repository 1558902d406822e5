"""
Configuration
=============

Two small dataclasses hold every knob of a run:

- `SourcePaths`: where the four input files live.
- `AnalysisConfig`: reporting year, country filter, age-group catalogue and
  output directory.

The CLI builds both from its arguments; tests build them directly.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Tuple

from .models import AGE_GROUPS, AgeGroup


@dataclass
class SourcePaths:
    """Input files (census table, ECDC vaccinations, death and case registers)."""
    demographics: str = "data/tabela01.xls"
    vaccinations: str = "data/vaccines-pl.csv"
    deaths: str = "data/ewp_dsh_zgony_po_szczep_20211214.csv"
    cases: str = "data/ewp_dsh_zakazenia_po_szczepieniu_202202010940.csv"


@dataclass
class AnalysisConfig:
    """High-level knobs controlling what the reports cover."""
    year: int = 2021
    # Number of weekly columns in the cross-age-group collection
    weeks_in_report: int = 51
    country: str = "PL"
    region: str = "PL"
    age_groups: Tuple[AgeGroup, ...] = field(default_factory=lambda: tuple(AGE_GROUPS))
    # Age group of the cumulative "at least two doses" chart
    chart_age_group: AgeGroup = AgeGroup(50, 59)
    output_dir: str = "output"

    # Register CSVs are ;-separated Latin-2 files
    source_encoding: str = "iso-8859-2"
    demographics_sheet: str = "Tabl. 1"

    @property
    def start_date(self) -> date:
        return date(self.year, 1, 1)
