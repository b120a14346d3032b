"""Command and load-result variants accepted by the habit store.

Commands form a closed, tagged union discriminated on ``kind`` so that callers
holding raw payloads (for example decoded JSON) can validate them with
``COMMAND_ADAPTER`` and hand the result to ``HabitStore.dispatch``.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter
from pydantic.config import ConfigDict

from habit_tracker_mcp.core.models import Frequency, Habit


class CreateHabit(BaseModel):
    """Append a new habit to the collection."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["create"] = "create"
    name: str
    frequency: Frequency = Frequency.DAILY


class RemoveHabit(BaseModel):
    """Remove a habit by id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remove"] = "remove"
    id: str


class ToggleHabit(BaseModel):
    """Flip the completion of a habit on one date (today when ``date`` is None)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["toggle"] = "toggle"
    id: str
    date: str | None = None


class LoadHabits(BaseModel):
    """Replace the collection with habits fetched from the habit source."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["load"] = "load"


Command = Annotated[
    CreateHabit | RemoveHabit | ToggleHabit | LoadHabits,
    Field(discriminator="kind"),
]

COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


class LoadSucceeded(BaseModel):
    """Fulfilled load carrying the fetched habits in display order."""

    model_config = ConfigDict(frozen=True)

    status: Literal["fulfilled"] = "fulfilled"
    habits: tuple[Habit, ...]


class LoadFailed(BaseModel):
    """Rejected load carrying the error message to surface."""

    model_config = ConfigDict(frozen=True)

    status: Literal["rejected"] = "rejected"
    message: str = Field(min_length=1)


LoadResult = LoadSucceeded | LoadFailed


class LoadSuperseded(BaseModel):
    """Load whose result was dropped because a newer load was started."""

    model_config = ConfigDict(frozen=True)

    status: Literal["superseded"] = "superseded"


LoadOutcome = LoadSucceeded | LoadFailed | LoadSuperseded

OutcomeError = Literal["validation_error", "not_found_error"]


class CommandOutcome(BaseModel):
    """What a command did to the store.

    Commands never raise; a command that could not be applied leaves the
    store untouched and reports why through ``error`` and ``message``.
    """

    model_config = ConfigDict(frozen=True)

    applied: bool
    message: str
    error: OutcomeError | None = None
    habit: Habit | None = None

    @classmethod
    def ok(cls, message: str, habit: Habit | None = None) -> CommandOutcome:
        """Create an outcome for a command that changed the store."""
        return cls(applied=True, message=message, habit=habit)

    @classmethod
    def empty_name(cls) -> CommandOutcome:
        """Create an outcome for a create command with a blank name."""
        return cls(applied=False, error="validation_error", message="Habit name cannot be empty")

    @classmethod
    def invalid_frequency(cls, value: str) -> CommandOutcome:
        """Create an outcome for a create command with an unknown frequency."""
        choices = ", ".join(frequency.value for frequency in Frequency)
        return cls(
            applied=False,
            error="validation_error",
            message=f"Invalid frequency: {value}. Must be one of: {choices}",
        )

    @classmethod
    def invalid_date(cls, value: str) -> CommandOutcome:
        """Create an outcome for a toggle command with a malformed date."""
        return cls(
            applied=False,
            error="validation_error",
            message=f"Invalid date format: {value}. Expected YYYY-MM-DD format",
        )

    @classmethod
    def habit_not_found(cls, habit_id: str) -> CommandOutcome:
        """Create an outcome for a command that referenced an unknown habit."""
        return cls(applied=False, error="not_found_error", message=f"Habit not found: {habit_id}")
