"""Statistics derived from a habit collection.

Both functions are pure and recompute from the snapshot on every call; the
store keeps no cached totals that could drift from the habits themselves.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from habit_tracker_mcp.core.models import Habit, HabitProgress, HabitStats
from habit_tracker_mcp.core.streaks import calculate_streak, coerce_day


def aggregate_stats(habits: Sequence[Habit], today: date | str) -> HabitStats:
    """Summarize the collection as of ``today``.

    Args:
        habits: Habit collection to summarize
        today: Reference day, as a date or a ``YYYY-MM-DD`` string

    Returns:
        HabitStats: Total habits, habits completed today and the longest current streak
    """
    today_key = coerce_day(today).isoformat()
    return HabitStats(
        total_habits=len(habits),
        completed_today=sum(1 for habit in habits if habit.is_completed_on(today_key)),
        longest_streak=max(
            (calculate_streak(habit.completed_dates, today_key) for habit in habits),
            default=0,
        ),
    )


def habit_progress(
    habits: Sequence[Habit], today: date | str, goal_days: int = 30
) -> list[HabitProgress]:
    """Build the per-habit streak view, keeping display order."""
    today_key = coerce_day(today).isoformat()
    progress: list[HabitProgress] = []
    for habit in habits:
        streak = calculate_streak(habit.completed_dates, today_key)
        progress.append(
            HabitProgress(
                habit=habit,
                current_streak=streak,
                completed_today=habit.is_completed_on(today_key),
                goal_progress=min(100.0, round(streak / goal_days * 100, 2)),
            )
        )
    return progress
