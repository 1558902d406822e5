from __future__ import annotations

"""
DOCX report generator
---------------------
This module writes one DOCX document for a finished run: the sources used,
what ingestion dropped, the weekly mean risk ratios and the charts.

Design goals:
- Keep vaxstat usable without python-docx installed (lazy import).
- Show the data-quality side next to the numbers: dropped rows, the excluded
  80+ bracket and cells with more vaccinated people than inhabitants.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import os

from .engine import WeeklyReports
from .loader import IngestDiagnostics
from .models import AgeGroup
from .tables import mean_series_table


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class SourceCitation:
    """One input dataset as it should be cited in the report."""
    name: str
    publisher: str
    file_name: Optional[str] = None


def default_citations() -> List[SourceCitation]:
    return [
        SourceCitation("Population by age (Tabl. 1)", "Statistics Poland (GUS)"),
        SourceCitation("Data on COVID-19 vaccination in the EU/EEA", "ECDC"),
        SourceCitation("COVID-19 deaths by vaccination status", "Polish Ministry of Health"),
        SourceCitation("COVID-19 infections by vaccination status", "Polish Ministry of Health"),
    ]


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Weekly COVID-19 outcomes by vaccination status"
    subtitle: str = "Age-stratified counts, rates and relative risks"
    citations: List[SourceCitation] = field(default_factory=default_citations)
    age_groups: Sequence[AgeGroup] = ()

    # Largest number of data-quality rows listed before truncating
    max_issue_rows: int = 20


def generate_docx_report(
    collection: WeeklyReports,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
    charts: Sequence[Tuple[str, str, str]] = (),
    diagnostics: Sequence[IngestDiagnostics] = (),
) -> str:
    """Write the DOCX report and return its path."""
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    if not len(collection):
        raise ValueError("No weeks to report on (collection is empty).")

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    def _table(headers: List[str], rows: List[List[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(headers))
        for cell, h in zip(t.rows[0].cells, headers):
            cell.text = h
        for values in rows:
            cells = t.add_row().cells
            for cell, v in zip(cells, values):
                cell.text = v

    weeks = collection.weeks()
    groups = list(config.age_groups) or collection.age_groups()

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Weeks", f"{weeks[0]} to {weeks[-1]} ({len(weeks)} weeks)")
    _kv("Age groups", ", ".join(str(g) for g in groups))

    doc.add_heading("Sources", level=1)
    for c in config.citations:
        line = f"{c.publisher}. {c.name}."
        if c.file_name:
            line += f" File: {c.file_name}."
        doc.add_paragraph(line, style="List Bullet")
    doc.add_paragraph(
        "The 80+ age group is not reported: its census population is known to be "
        "wrong, so every rate computed for it would be misleading."
    )

    if diagnostics:
        doc.add_heading("Ingestion", level=1)
        _table(
            ["Source", "Read", "Kept", "Filtered", "Dropped"],
            [[os.path.basename(d.source), str(d.rows_read), str(d.rows_kept),
              str(d.rows_filtered), str(d.dropped_count)] for d in diagnostics],
        )

    doc.add_heading("Mean relative risk across age groups", level=1)
    doc.add_paragraph(
        "Per week, the ratio is computed for every age group; infinite and undefined "
        "values (no unvaccinated deaths or cases) are discarded before averaging. "
        "n/a marks weeks with no usable age group."
    )
    means = mean_series_table(collection)
    _table(list(means.columns), means.astype(str).values.tolist())

    if charts:
        doc.add_heading("Visualizations", level=1)
        for title, path, why in charts:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.5))
            doc.add_paragraph(why)
            doc.add_paragraph("")

    issues = collection.data_quality_issues()
    doc.add_heading("Data quality", level=1)
    if issues:
        doc.add_paragraph(
            f"{len(issues)} cells have more people with at least one dose than the census "
            "population; their unvaccinated population is negative and is reported as is."
        )
        _table(
            ["Week", "Age group", "Unvaccinated"],
            [[str(w), str(g), str(n)] for w, g, n in issues[:config.max_issue_rows]],
        )
    else:
        doc.add_paragraph("No cell has a negative unvaccinated population.")

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__
    from datetime import datetime as _dt
    doc.add_paragraph(f"vaxstat version: {__version__}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
