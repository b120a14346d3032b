"""Protocol definition for habit sources.

A habit source is the one asynchronous collaborator of the habit store: it
either returns the full habit collection or raises ``HabitLoadError``.
"""

from typing import Protocol

from habit_tracker_mcp.core.models import Habit


class HabitSource(Protocol):
    """Interface the habit store depends on for ``load``."""

    async def fetch_habits(self) -> list[Habit]:
        """Fetch the complete habit collection in display order.

        Returns:
            list[Habit]: Habits that replace the store's collection

        Raises:
            HabitLoadError: If the habits could not be fetched
        """
        ...
