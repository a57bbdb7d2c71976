"""Calendar arithmetic helpers.

Every comparison here is date-only: datetimes are truncated to their calendar
date before use, so results don't depend on the time of day or timezone.
Functions that need "now" take a ``clock`` callable instead of reading the
system time directly.
"""
import math
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from study_scheduler.models import to_date

Clock = Callable[[], date]

DAY_LABELS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

SECONDS_PER_DAY = 24 * 60 * 60


def format_date(d) -> str:
    """Canonical YYYY-MM-DD key used for map and completion-set lookups."""
    return to_date(d).isoformat()


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    d = to_date(value)
    return datetime(d.year, d.month, d.day)


def days_between(start, end) -> int:
    """Absolute number of days between two points, rounded up to whole days."""
    delta = abs(_as_datetime(end) - _as_datetime(start))
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def inclusive_days(start, end) -> int:
    return days_between(to_date(start), to_date(end)) + 1


def day_of_week(d) -> str:
    # date.weekday() is Monday=0; labels are Sunday-first
    return DAY_LABELS[(to_date(d).weekday() + 1) % 7]


def week_start(d=None, clock: Clock = date.today) -> date:
    """Sunday of the week containing ``d`` (today when omitted)."""
    d = to_date(d) if d is not None else clock()
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_end(d=None, clock: Clock = date.today) -> date:
    """Saturday of the week containing ``d`` (today when omitted)."""
    return week_start(d, clock) + timedelta(days=6)


def date_range(start, end) -> list[date]:
    start, end = to_date(start), to_date(end)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def is_today(d, clock: Clock = date.today) -> bool:
    return to_date(d) == clock()


def is_past(d, clock: Clock = date.today) -> bool:
    return to_date(d) < clock()


def parse_date(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None for blank or malformed input."""
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None
