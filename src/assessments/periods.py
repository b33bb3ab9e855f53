"""Half-year assessment periods.

Half 1 covers January to June, half 2 July to December.  Nothing here reads
the wall clock: callers pass ``now`` explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from django.utils import timezone

from assessments.exceptions import PeriodValidationError

MONTHS_PER_HALF = 6


@dataclass(frozen=True)
class AssessmentPeriod:
    year: int
    half: int
    start_month: str  # "YYYY-MM"
    end_month: str  # "YYYY-MM"
    label: str

    @property
    def months(self) -> list[str]:
        return months_in_period(self)

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "half": self.half,
            "start_month": self.start_month,
            "end_month": self.end_month,
            "label": self.label,
        }


def period_label(year: int, half: int) -> str:
    prefix = "1er" if half == 1 else "2e"
    return f"{prefix} semestre {year}"


def as_local_date(now: date | datetime) -> date:
    if isinstance(now, datetime):
        if timezone.is_aware(now):
            return timezone.localtime(now).date()
        return now.date()
    return now


def get_period(year: int, half: int) -> AssessmentPeriod:
    """Build the period for an explicit (year, half)."""
    if half not in (1, 2):
        raise PeriodValidationError(f"Semestre invalide: {half!r} (attendu 1 ou 2).")
    if not isinstance(year, int) or year < 1:
        raise PeriodValidationError(f"Annee invalide: {year!r}.")

    first_month = 1 if half == 1 else 7
    last_month = first_month + MONTHS_PER_HALF - 1
    return AssessmentPeriod(
        year=year,
        half=half,
        start_month=f"{year:04d}-{first_month:02d}",
        end_month=f"{year:04d}-{last_month:02d}",
        label=period_label(year, half),
    )


def current_period(now: date | datetime) -> AssessmentPeriod:
    """Return the period containing ``now``."""
    today = as_local_date(now)
    return get_period(today.year, 1 if today.month <= 6 else 2)


def previous_period(period: AssessmentPeriod) -> AssessmentPeriod:
    if period.half == 2:
        return get_period(period.year, 1)
    return get_period(period.year - 1, 2)


def months_in_period(period: AssessmentPeriod) -> list[str]:
    year = int(period.start_month[:4])
    first_month = int(period.start_month[5:7])
    last_month = int(period.end_month[5:7])
    return [f"{year:04d}-{month:02d}" for month in range(first_month, last_month + 1)]


def next_assessment_date(now: date | datetime) -> date:
    """First day of the half following the one containing ``now``."""
    today = as_local_date(now)
    if today.month <= 6:
        return date(today.year, 7, 1)
    return date(today.year + 1, 1, 1)
