"""Simulated habit source returning a fixed seed collection after a delay."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from habit_tracker_mcp.core.exceptions import HabitLoadError
from habit_tracker_mcp.core.models import Frequency, Habit

logger = logging.getLogger(__name__)

SEED_HABIT_NAMES: tuple[str, ...] = ("Read", "Exercise")


class SeedHabitSource:
    """Habit source standing in for a remote backend.

    After ``delay_seconds`` it returns the seed habits "Read" and "Exercise"
    (ids "1" and "2", daily, never completed), or raises ``HabitLoadError``
    when constructed with ``fail=True``.
    """

    def __init__(
        self,
        delay_seconds: float = 1.0,
        *,
        fail: bool = False,
        failure_message: str = "Failed to fetch habits",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._delay_seconds = delay_seconds
        self._fail = fail
        self._failure_message = failure_message
        self._clock = clock or datetime.now

    def __repr__(self) -> str:
        return f"SeedHabitSource(delay_seconds={self._delay_seconds}, fail={self._fail})"

    async def fetch_habits(self) -> list[Habit]:
        """Return the seed habits after the simulated delay.

        Raises:
            HabitLoadError: If the source was configured to fail
        """
        await asyncio.sleep(self._delay_seconds)

        if self._fail:
            logger.warning("Seed habit source failing as configured")
            raise HabitLoadError(self._failure_message)

        created_at = self._clock().isoformat()
        habits = [
            Habit(
                id=str(position),
                name=name,
                frequency=Frequency.DAILY,
                created_at=created_at,
            )
            for position, name in enumerate(SEED_HABIT_NAMES, start=1)
        ]
        logger.debug("Seed habit source returning %d habits", len(habits))
        return habits
