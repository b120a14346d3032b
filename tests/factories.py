"""Factory functions for creating test data objects.

Small builders for Habit objects and fixed clocks, keeping test setup explicit
and readable.
"""

import asyncio
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from habit_tracker_mcp.core.exceptions import HabitLoadError
from habit_tracker_mcp.core.models import Frequency, Habit

FIXED_NOW = datetime(2025, 9, 6, 9, 30, 0)
FIXED_TODAY = FIXED_NOW.date()


def fixed_clock(now: datetime = FIXED_NOW) -> Callable[[], datetime]:
    """Return a clock that always reports ``now``."""
    return lambda: now


def days_back(today: date, *offsets: int) -> set[str]:
    """Return ``today - offset`` for every offset, as YYYY-MM-DD strings."""
    return {(today - timedelta(days=offset)).isoformat() for offset in offsets}


def create_habit(
    habit_id: str = "habit-1",
    name: str = "Read",
    frequency: Frequency = Frequency.DAILY,
    completed_dates: Iterable[str] = (),
    created_at: str | None = None,
) -> Habit:
    """Create a Habit object with default or provided values.

    Args:
        habit_id: Habit ID (default: "habit-1")
        name: Habit name (default: "Read")
        frequency: Habit frequency (default: daily)
        completed_dates: Completion dates as YYYY-MM-DD strings
        created_at: Creation timestamp (default: FIXED_NOW)

    Returns:
        A Habit object with the specified values
    """
    return Habit(
        id=habit_id,
        name=name,
        frequency=frequency,
        completed_dates=frozenset(completed_dates),
        created_at=created_at or FIXED_NOW.isoformat(),
    )


def create_streak_habit(habit_id: str, streak: int, today: date = FIXED_TODAY) -> Habit:
    """Create a habit whose current streak ending ``today`` is exactly ``streak``."""
    return create_habit(
        habit_id=habit_id,
        name=f"Habit {habit_id}",
        completed_dates=days_back(today, *range(streak)),
    )


class GatedHabitSource:
    """Habit source whose fetches block until released by the test.

    Each ``fetch_habits`` call parks on its own future; ``release(i)`` and
    ``reject(i)`` settle the i-th call.
    """

    def __init__(self) -> None:
        self.calls = 0
        self._gates: list[asyncio.Future[list[Habit]]] = []

    async def fetch_habits(self) -> list[Habit]:
        self.calls += 1
        gate: asyncio.Future[list[Habit]] = asyncio.get_running_loop().create_future()
        self._gates.append(gate)
        return await gate

    def release(self, index: int, habits: list[Habit]) -> None:
        self._gates[index].set_result(habits)

    def reject(self, index: int, message: str) -> None:
        self._gates[index].set_exception(HabitLoadError(message))
