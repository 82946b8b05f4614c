"""
Date helpers for PDCA Planner

All goal dates are exchanged as date-only ISO timestamps pinned to
midnight UTC ("2025-03-01T00:00:00.000Z") so that results never depend
on the time of day a request was handled.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .models import GoalLevel


MIDNIGHT_SUFFIX = "T00:00:00.000Z"

# Default span (in days) between "today" and the end of a freshly proposed goal
LEVEL_HORIZON_DAYS = {
    GoalLevel.VISION: 365 * 5,
    GoalLevel.YEARLY: 365,
    GoalLevel.QUARTERLY: 90,
    GoalLevel.MONTHLY: 30,
    GoalLevel.WEEKLY: 7,
}
DEFAULT_HORIZON_DAYS = 30

# Calendar offsets used when only a start date is known
LEVEL_HORIZON_DELTAS = {
    GoalLevel.VISION: relativedelta(years=5),
    GoalLevel.YEARLY: relativedelta(years=1),
    GoalLevel.QUARTERLY: relativedelta(months=3),
    GoalLevel.MONTHLY: relativedelta(months=1),
    GoalLevel.WEEKLY: relativedelta(days=7),
}
DEFAULT_HORIZON_DELTA = relativedelta(months=1)


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def to_iso_midnight(value: date) -> str:
    """Render a date as an ISO timestamp at midnight UTC."""
    return value.isoformat() + MIDNIGHT_SUFFIX


def current_date_iso(today: Optional[date] = None) -> str:
    """
    Get today's date as a midnight-UTC ISO timestamp.

    Args:
        today: Override for the current date (mainly for tests)

    Returns:
        String like "2025-03-01T00:00:00.000Z"
    """
    return to_iso_midnight(today or utc_today())


def future_date_iso(days: int, today: Optional[date] = None) -> str:
    """Get the date ``days`` days after today as a midnight-UTC ISO timestamp."""
    return to_iso_midnight((today or utc_today()) + timedelta(days=days))


def parse_iso_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Leniently parse an ISO date or timestamp.

    Accepts "2025-03-01", "2025-03-01T00:00:00.000Z" and datetime/date
    objects. Returns None for anything unparseable instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: Union[str, date, datetime]) -> str:
    """Format a date as YYYY-MM-DD. Unparseable strings are returned unchanged."""
    parsed = parse_iso_date(value)
    if parsed is None:
        return str(value)
    return parsed.isoformat()


def format_local_date(value: Union[str, date, datetime]) -> str:
    """Format a date for display as 2025年3月1日."""
    parsed = parse_iso_date(value)
    if parsed is None:
        return str(value)
    return f"{parsed.year}年{parsed.month}月{parsed.day}日"


def horizon_days(level: Optional[GoalLevel]) -> int:
    """Number of days a goal of the given level spans by default."""
    return LEVEL_HORIZON_DAYS.get(level, DEFAULT_HORIZON_DAYS)


def add_horizon(start: date, level: Optional[GoalLevel]) -> date:
    """
    Add the level's calendar horizon to a start date.

    Month arithmetic clamps to the end of the month, so Jan 31 + 1 month
    is Feb 28 (or 29).
    """
    return start + LEVEL_HORIZON_DELTAS.get(level, DEFAULT_HORIZON_DELTA)
