"""Current-streak calculation for a single habit."""

from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime, timedelta

from habit_tracker_mcp.core.models import parse_date_string

_ONE_DAY = timedelta(days=1)


def coerce_day(day: datetime | date | str) -> date:
    """Return ``day`` as a date, parsing ``YYYY-MM-DD`` strings."""
    # datetime subclasses date; drop the time part
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return parse_date_string(day)


def calculate_streak(completed_dates: Collection[str], today: date | str) -> int:
    """Count consecutive completed days ending on ``today``.

    Walks backwards one calendar day at a time from ``today`` and stops at the
    first day missing from ``completed_dates``. A habit not completed today has
    a streak of 0, regardless of earlier history.

    Args:
        completed_dates: Completion dates as ``YYYY-MM-DD`` strings
        today: Reference day, as a date or a ``YYYY-MM-DD`` string

    Returns:
        int: Length of the streak ending today

    Raises:
        ValueError: If ``today`` is a malformed date string
    """
    current = coerce_day(today)
    if not completed_dates:
        return 0

    streak = 0
    while current.isoformat() in completed_dates:
        streak += 1
        current -= _ONE_DAY
    return streak
