"""Display-only fields computed from stored records.

Nothing here is persisted; every value is recomputed from the record and a
reference date. Functions take `today` explicitly so callers (and tests) can
pin the clock; None means today in the farm's timezone.
"""

from datetime import date, timedelta
from typing import TypedDict

from porkyfarm.core.config import get_farm_today
from porkyfarm.data.models import GESTATION_DAYS

# Gestation stage bands, keyed on the first elapsed day of each band
GESTATION_STAGES: list[tuple[int, str]] = [
    (0, "breeding"),  # service to pregnancy check
    (28, "confirmed"),  # ultrasound confirms around day 28
    (84, "late"),  # last trimester, move to gestation pen
    (107, "farrowing"),  # final week, move to farrowing crate
]

HEALTH_SCORES = {"good": 95, "medium": 70, "bad": 40}
DEFAULT_HEALTH_SCORE = 85

STATUS_COLORS = {
    "active": "green",
    "sick": "red",
    "pregnant": "pink",
    "nursing": "purple",
    "sold": "blue",
    "deceased": "gray",
}

# Vaccinations due within this many days are flagged urgent
VACCINATION_URGENT_DAYS = 3


class GestationProgress(TypedDict):
    elapsed_days: int
    percent: float
    remaining_days: int
    overdue: bool
    stage: str


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO date (or the date part of an ISO timestamp)."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _today(today: date | None) -> date:
    return today if today is not None else get_farm_today()


# =============================================================================
# Animals
# =============================================================================


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def age_label(birth_date: str | date | None, today: date | None = None) -> str:
    """Human-readable age from a birth date.

    Months are whole 30-day periods. Examples: "12 days", "5 months",
    "2 years", "2 years 3 months", "Not specified".
    """
    birth = parse_date(birth_date)
    if birth is None:
        return "Not specified"

    days = (_today(today) - birth).days
    if days < 0:
        return "Not specified"

    months = days // 30
    if months < 1:
        return _plural(days, "day")
    if months < 12:
        return _plural(months, "month")

    years, remaining = divmod(months, 12)
    if remaining == 0:
        return _plural(years, "year")
    return f"{_plural(years, 'year')} {_plural(remaining, 'month')}"


def health_score(health_status: str | None) -> int:
    """Map the health qualifier to a 0-100 display score."""
    return HEALTH_SCORES.get(health_status or "", DEFAULT_HEALTH_SCORE)


def score_band(score: int) -> str:
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


def status_color(status: str | None) -> str:
    return STATUS_COLORS.get(status or "", "gray")


# =============================================================================
# Reproduction
# =============================================================================


def expected_due_date(breeding_date: str | date) -> date:
    """Projected farrowing date: breeding date + 114 days."""
    return parse_date(breeding_date) + timedelta(days=GESTATION_DAYS)


def gestation_stage(elapsed_days: int) -> str:
    stage = GESTATION_STAGES[0][1]
    for start, name in GESTATION_STAGES:
        if elapsed_days >= start:
            stage = name
    return stage


def gestation_progress(breeding_date: str | date, today: date | None = None) -> GestationProgress:
    """Progress of a gestation at a given date.

    elapsed_days is clamped to 0..114; percent is elapsed / 114 rounded to
    one decimal; overdue is set once the raw elapsed count passes 114.
    """
    raw = (_today(today) - parse_date(breeding_date)).days
    elapsed = min(GESTATION_DAYS, max(0, raw))
    return {
        "elapsed_days": elapsed,
        "percent": round(elapsed / GESTATION_DAYS * 100, 1),
        "remaining_days": GESTATION_DAYS - elapsed,
        "overdue": raw > GESTATION_DAYS,
        "stage": gestation_stage(elapsed),
    }


def days_until(target: str | date, today: date | None = None) -> int:
    """Whole days from today to target (negative when target has passed)."""
    return (parse_date(target) - _today(today)).days


# =============================================================================
# Vaccinations
# =============================================================================


def vaccination_display_status(vaccination: dict, today: date | None = None) -> str:
    """One of "completed", "overdue", "urgent", "scheduled"."""
    if vaccination.get("status") == "completed" or vaccination.get("completed_date"):
        return "completed"
    remaining = days_until(vaccination["scheduled_date"], today)
    if remaining < 0:
        return "overdue"
    if remaining <= VACCINATION_URGENT_DAYS:
        return "urgent"
    return "scheduled"


def describe_animal(animal: dict, today: date | None = None) -> dict:
    """Animal record plus its derived display fields."""
    score = health_score(animal.get("health_status"))
    return {
        **animal,
        "age": age_label(animal.get("birth_date"), today),
        "health_score": score,
        "health_band": score_band(score),
        "status_color": status_color(animal.get("status")),
    }
