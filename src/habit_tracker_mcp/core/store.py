"""Habit state store.

This module provides the HabitStore class, the single owner of the habit
collection and its loading/error flags. Commands are synchronous and atomic on
the event loop thread; ``load`` is the only operation that suspends, and its
outcome is folded back in through the synchronous ``apply`` entry point.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime
from typing import TYPE_CHECKING

from habit_tracker_mcp.core.commands import (
    Command,
    CommandOutcome,
    CreateHabit,
    LoadFailed,
    LoadHabits,
    LoadOutcome,
    LoadResult,
    LoadSucceeded,
    LoadSuperseded,
    RemoveHabit,
    ToggleHabit,
)
from habit_tracker_mcp.core.exceptions import HabitLoadError
from habit_tracker_mcp.core.models import (
    Frequency,
    Habit,
    HabitProgress,
    HabitStats,
    StoreState,
    parse_date_string,
)
from habit_tracker_mcp.core.stats import aggregate_stats, habit_progress

if TYPE_CHECKING:
    from habit_tracker_mcp.sources.protocols import HabitSource

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]

logger = logging.getLogger(__name__)


def uuid_ids() -> IdGenerator:
    """Return an id generator producing random UUID4 hex strings."""
    return lambda: uuid.uuid4().hex


def counter_ids(start: int = 1) -> IdGenerator:
    """Return an id generator producing "1", "2", ... from ``start``."""
    counter = itertools.count(start)
    return lambda: str(next(counter))


class HabitStore:
    """Owner of the habit collection and the load lifecycle.

    The store is an ordinary instance: each server (or test) builds its own,
    so there is no process-wide habit state. Readers receive frozen
    ``StoreState`` snapshots and never a reference into the live collection.

    Load lifecycle: Idle -> Pending (``load``/``begin_load``) -> Fulfilled or
    Rejected (``apply``). Every ``begin_load`` issues a new ticket and only the
    result for the latest ticket is applied, so when loads overlap the most
    recently requested one wins. Commands issued while a load is pending act on
    the current collection and are overwritten if that load succeeds.
    """

    def __init__(
        self,
        source: HabitSource,
        *,
        id_generator: IdGenerator | None = None,
        clock: Clock | None = None,
        streak_goal_days: int = 30,
    ) -> None:
        """Initialize an empty, idle store.

        Args:
            source: Habit source used by ``load``
            id_generator: Callable returning a fresh unique habit id
            clock: Callable returning the current local time
            streak_goal_days: Streak length counted as 100% goal progress
        """
        self._source = source
        self._id_generator = id_generator or uuid_ids()
        self._clock = clock or datetime.now
        self._streak_goal_days = streak_goal_days

        self._habits: list[Habit] = []
        self._is_loading = False
        self._error: str | None = None

        self._load_ticket = 0
        self._interleaved_commands = 0
        self._pending_loads: set[asyncio.Task[LoadOutcome]] = set()

    # Reads

    def snapshot(self) -> StoreState:
        """Return an immutable view of the current state."""
        return StoreState(
            habits=tuple(self._habits),
            is_loading=self._is_loading,
            error=self._error,
        )

    def today(self) -> str:
        """Return today's local date as ``YYYY-MM-DD``."""
        return self._clock().date().isoformat()

    def stats(self, today: date | str | None = None) -> HabitStats:
        """Aggregate statistics over the current collection."""
        return aggregate_stats(self.snapshot().habits, today or self.today())

    def progress(self, today: date | str | None = None) -> list[HabitProgress]:
        """Per-habit streaks and goal progress over the current collection."""
        return habit_progress(
            self.snapshot().habits, today or self.today(), self._streak_goal_days
        )

    @property
    def has_pending_load(self) -> bool:
        """True while a load task is still running."""
        return bool(self._pending_loads)

    # Commands

    def dispatch(self, command: Command) -> CommandOutcome:
        """Apply a tagged command.

        Args:
            command: One of CreateHabit, RemoveHabit, ToggleHabit, LoadHabits

        Returns:
            CommandOutcome: What the command did, or why it did nothing
        """
        match command:
            case CreateHabit(name=name, frequency=frequency):
                return self.create(name, frequency)
            case RemoveHabit(id=habit_id):
                return self.remove(habit_id)
            case ToggleHabit(id=habit_id, date=day):
                return self.toggle(habit_id, day)
            case LoadHabits():
                self.load()
                return CommandOutcome.ok("Habit load started")
            case _:
                msg = f"Unsupported command: {command!r}"
                raise TypeError(msg)

    def create(self, name: str, frequency: Frequency | str = Frequency.DAILY) -> CommandOutcome:
        """Append a new habit with no completions.

        A blank name or an unknown frequency leaves the collection unchanged
        and is reported as a ``validation_error`` outcome.
        """
        if not name.strip():
            logger.debug("Ignoring create command with blank habit name")
            return CommandOutcome.empty_name()
        try:
            habit_frequency = Frequency(frequency)
        except ValueError:
            logger.debug("Ignoring create command with unknown frequency %r", frequency)
            return CommandOutcome.invalid_frequency(str(frequency))

        habit = Habit(
            id=self._id_generator(),
            name=name,
            frequency=habit_frequency,
            created_at=self._clock().isoformat(),
        )
        self._habits.append(habit)
        self._note_command()
        logger.info("Created habit %s (%s)", habit.id, habit.frequency.value)
        return CommandOutcome.ok("Habit created", habit)

    def remove(self, habit_id: str) -> CommandOutcome:
        """Remove the habit with ``habit_id``; unknown ids change nothing."""
        index = self._index_of(habit_id)
        if index is None:
            logger.debug("Ignoring remove command for unknown habit %s", habit_id)
            return CommandOutcome.habit_not_found(habit_id)

        habit = self._habits.pop(index)
        self._note_command()
        logger.info("Removed habit %s", habit_id)
        return CommandOutcome.ok("Habit removed", habit)

    def toggle(self, habit_id: str, day: str | None = None) -> CommandOutcome:
        """Flip completion of a habit on ``day`` (today when omitted).

        Toggling twice with the same arguments restores the original dates.
        """
        index = self._index_of(habit_id)
        if index is None:
            logger.debug("Ignoring toggle command for unknown habit %s", habit_id)
            return CommandOutcome.habit_not_found(habit_id)

        day_key = day if day is not None else self.today()
        try:
            parse_date_string(day_key)
        except ValueError:
            logger.debug("Ignoring toggle command with malformed date %r", day_key)
            return CommandOutcome.invalid_date(day_key)

        habit = self._habits[index].with_toggled_date(day_key)
        self._habits[index] = habit
        self._note_command()
        completed = habit.is_completed_on(day_key)
        logger.info(
            "Habit %s %s on %s", habit_id, "completed" if completed else "reopened", day_key
        )
        return CommandOutcome.ok(
            "Habit marked complete" if completed else "Habit marked incomplete", habit
        )

    # Load lifecycle

    def load(self) -> asyncio.Task[LoadOutcome]:
        """Start fetching habits from the source.

        Moves the store to Pending immediately and returns the task that
        applies the result once the source completes. Must be called from a
        running event loop.

        Returns:
            asyncio.Task[LoadOutcome]: Task resolving to the applied result, or
                LoadSuperseded when a newer load was started meanwhile
        """
        loop = asyncio.get_running_loop()
        ticket = self.begin_load()
        task = loop.create_task(self._run_load(ticket))
        self._pending_loads.add(task)
        task.add_done_callback(self._pending_loads.discard)
        return task

    def begin_load(self) -> int:
        """Enter the Pending state and return the ticket for this load."""
        if self._is_loading:
            logger.warning("Habit load requested while another load is pending")
        self._load_ticket += 1
        self._is_loading = True
        self._error = None
        self._interleaved_commands = 0
        logger.info("Loading habits (load %d)", self._load_ticket)
        return self._load_ticket

    def apply(self, ticket: int, result: LoadResult) -> bool:
        """Fold a load result into the store.

        Args:
            ticket: Ticket returned by ``begin_load`` for this load
            result: LoadSucceeded or LoadFailed

        Returns:
            bool: False when the result belonged to a superseded load and was dropped
        """
        if ticket != self._load_ticket:
            logger.info(
                "Dropping result of superseded load %d (latest is %d)", ticket, self._load_ticket
            )
            return False

        match result:
            case LoadSucceeded(habits=habits):
                if self._interleaved_commands:
                    logger.warning(
                        "Habit load overwrote %d command(s) issued while it was pending",
                        self._interleaved_commands,
                    )
                self._habits = list(habits)
                self._is_loading = False
                self._error = None
                logger.info("Loaded %d habits", len(habits))
            case LoadFailed(message=message):
                self._is_loading = False
                self._error = message
                logger.warning("Habit load failed: %s", message)
        self._interleaved_commands = 0
        return True

    async def wait_for_load(self) -> None:
        """Wait until every pending load task has finished, cancelled ones included."""
        while self._pending_loads:
            await asyncio.gather(*self._pending_loads, return_exceptions=True)

    async def _run_load(self, ticket: int) -> LoadOutcome:
        """Await the source and apply its outcome for ``ticket``.

        A cancelled fetch is applied as a failed load before the cancellation
        propagates, so the store never stays Pending without a running task.
        """
        result: LoadResult
        try:
            habits = await self._source.fetch_habits()
        except asyncio.CancelledError:
            logger.warning("Habit load %d cancelled", ticket)
            self.apply(ticket, LoadFailed(message="Habit load cancelled"))
            raise
        except HabitLoadError as e:
            result = LoadFailed(message=e.message)
        except Exception as e:
            logger.exception("Unexpected error while fetching habits")
            result = LoadFailed(message=f"Unexpected error fetching habits: {e}")
        else:
            result = LoadSucceeded(habits=tuple(habits))

        if not self.apply(ticket, result):
            return LoadSuperseded()
        return result

    # Helpers

    def _index_of(self, habit_id: str) -> int | None:
        return next(
            (index for index, habit in enumerate(self._habits) if habit.id == habit_id), None
        )

    def _note_command(self) -> None:
        if self._is_loading:
            self._interleaved_commands += 1
