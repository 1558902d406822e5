"""
Charts
======

Every chart is a weekly line chart over the report collection. Each drawing
function returns `(title, file_path, why_this_chart)` so the DOCX report can
embed the images with a short explanation.

matplotlib is imported lazily: tables and CSVs work without it.
Weeks where a mean has no finite value are drawn as gaps (NaN breaks a
matplotlib line), never as zeros.
"""

from __future__ import annotations
import math
import os
from typing import Callable, List, Optional, Sequence, Tuple

from .engine import MeanSeries, WeeklyReports
from .models import AgeGroup, WeeklyReport, YearWeek
from .vaccination import VaccinationData

Chart = Tuple[str, str, str]


def _pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install it with: python -m pip install matplotlib"
        ) from e
    return plt


def _gaps(values: Sequence[Optional[float]]) -> List[float]:
    return [float("nan") if v is None else v for v in values]


def _weekly_chart(
    weeks: Sequence[YearWeek],
    series: Sequence[Tuple[str, Sequence[Optional[float]]]],
    path: str,
    title: str,
    ylabel: str,
) -> str:
    """Draw one line per (label, values) against the week axis and save it."""
    plt = _pyplot()
    x = list(range(len(weeks)))
    plt.figure(figsize=(10.24, 4.0))
    for label, values in series:
        plt.plot(x, _gaps(values), linewidth=2, label=label)
    # a label every 4 weeks keeps the axis readable
    step = 4
    plt.xticks(x[::step], [str(w) for w in weeks][::step], rotation=45, ha="right")
    plt.title(title)
    plt.xlabel("Week")
    plt.ylabel(ylabel)
    plt.legend(loc="upper center", fontsize="small", ncol=3)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()
    return path


def _per_age_group(reports: WeeklyReports, get: Callable[[WeeklyReport], float]) -> List[Tuple[str, List[float]]]:
    return [
        (str(group), [float(get(by_group[group])) for _, by_group in reports])
        for group in reports.age_groups()
    ]


def _percent(series: MeanSeries) -> List[Optional[float]]:
    return [None if v is None else v * 100.0 for _, v in series]


# -----------------------------
# Charts over the collection
# -----------------------------

def draw_deaths(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "Deaths per age group (absolute numbers)"
    path = _weekly_chart(
        reports.weeks(),
        _per_age_group(reports, lambda r: r.absolute_deaths.total()),
        os.path.join(output_dir, "deaths.png"),
        title,
        "Deaths",
    )
    return title, path, "Absolute counts show where the burden is before any normalisation."


def draw_risk_ratios(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "Relative risk of death of vaccinated people (%)"
    path = _weekly_chart(
        reports.weeks(),
        [
            ("2 doses", _percent(reports.mean_risk_ratio_of_two_doses())),
            ("3 doses", _percent(reports.mean_risk_ratio_of_three_doses())),
        ],
        os.path.join(output_dir, "risk_ratios.png"),
        title,
        "%",
    )
    return title, path, "Mean over age groups of finite risk ratios; gaps mark weeks without data."


def draw_case_risk_ratios(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "Relative risk of a positive test of vaccinated people (%)"
    path = _weekly_chart(
        reports.weeks(),
        [
            ("2 doses", _percent(reports.mean_case_risk_ratio_of_two_doses())),
            ("3 doses", _percent(reports.mean_case_risk_ratio_of_three_doses())),
        ],
        os.path.join(output_dir, "infection_risk_ratios.png"),
        title,
        "%",
    )
    return title, path, "Same averaging as the death risk ratio, applied to reported cases."


def draw_deaths_per_million_per_vaccination_status(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "Deaths per million inhabitants by vaccination status"

    def summed(get: Callable[[WeeklyReport], float]) -> List[float]:
        # cells with a zero denominator are left out of the sum
        return [sum(v for v in map(get, by_group.values()) if math.isfinite(v)) for _, by_group in reports]

    path = _weekly_chart(
        reports.weeks(),
        [
            ("unvaccinated", summed(lambda r: r.deaths_per_million.unvaccinated)),
            ("2 doses", summed(lambda r: r.deaths_per_million.two_doses)),
            ("3 doses", summed(lambda r: r.deaths_per_million.three_doses)),
        ],
        os.path.join(output_dir, "deaths_per_vaccination_status.png"),
        title,
        "Deaths",
    )
    return title, path, "Per-million rates make tiers of very different size comparable."


def draw_vaccinations_one_dose(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "People vaccinated with exactly 1 dose"
    path = _weekly_chart(
        reports.weeks(),
        _per_age_group(reports, lambda r: r.vaccinated_people.one_dose),
        os.path.join(output_dir, "vaccinations_one_dose.png"),
        title,
        "People",
    )
    return title, path, "Shows how long people stay in the transitional one-dose tier."


def draw_vaccinations_two_doses(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "People vaccinated with exactly 2 doses"
    path = _weekly_chart(
        reports.weeks(),
        _per_age_group(reports, lambda r: r.vaccinated_people.two_doses),
        os.path.join(output_dir, "vaccinations_two_doses.png"),
        title,
        "People",
    )
    return title, path, "Denominator of the two-dose rates; it shrinks as boosters are given."


def draw_vaccinations_at_least_two_doses(reports: WeeklyReports, output_dir: str) -> Chart:
    title = "People vaccinated with at least 2 doses"
    path = _weekly_chart(
        reports.weeks(),
        _per_age_group(reports, lambda r: r.vaccinated_people.at_least_two_doses),
        os.path.join(output_dir, "vaccinations_at_least_two_doses.png"),
        title,
        "People",
    )
    return title, path, "Cumulative coverage; never decreases."


def draw_weekly_vaccinations(vaccinations: VaccinationData, weeks: Sequence[YearWeek],
                             age_group: AgeGroup, output_dir: str) -> Chart:
    title = f"People ({age_group}) vaccinated with at least 2 doses"
    values = [float(people.at_least_two_doses) for _, people in vaccinations.cumulative_series(age_group, weeks)]
    path = _weekly_chart(
        weeks,
        [("2 doses", values)],
        os.path.join(output_dir, "vaccinated_people.png"),
        title,
        "People",
    )
    return title, path, "Coverage straight from the ECDC rows, independent of the census."


def draw_all(reports: WeeklyReports, vaccinations: VaccinationData, chart_age_group: AgeGroup,
             output_dir: str) -> List[Chart]:
    """Every chart of a run, in the order they appear in the report."""
    return [
        draw_deaths(reports, output_dir),
        draw_deaths_per_million_per_vaccination_status(reports, output_dir),
        draw_risk_ratios(reports, output_dir),
        draw_case_risk_ratios(reports, output_dir),
        draw_weekly_vaccinations(vaccinations, reports.weeks(), chart_age_group, output_dir),
        draw_vaccinations_one_dose(reports, output_dir),
        draw_vaccinations_two_doses(reports, output_dir),
        draw_vaccinations_at_least_two_doses(reports, output_dir),
    ]
