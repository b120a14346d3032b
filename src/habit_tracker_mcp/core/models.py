"""Data models for the habit store.

All models are frozen Pydantic models: the store replaces records instead of
mutating them, so a snapshot handed to a reader can never change underneath it.
Input accepts both snake_case and camelCase keys (``completedDates``,
``createdAt``) so payloads produced by JavaScript backends validate directly.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


class Frequency(StrEnum):
    """How often a habit is meant to be performed."""

    DAILY = "daily"
    WEEKLY = "weekly"


def parse_date_string(value: str) -> date:
    """Parse a canonical ``YYYY-MM-DD`` date string.

    Args:
        value: Date string to parse

    Returns:
        date: The parsed calendar date

    Raises:
        ValueError: If the string is not a canonical calendar date
    """
    parsed = date.fromisoformat(value)
    # fromisoformat also accepts "20250906" and week dates on 3.11+
    if parsed.isoformat() != value:
        msg = f"Invalid date format: {value}. Expected YYYY-MM-DD format"
        raise ValueError(msg)
    return parsed


class Habit(BaseModel):
    """A recurring habit and the calendar days it was completed on."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1, description="Unique identifier, stable for the habit's lifetime")
    name: str = Field(description="Habit name")
    frequency: Frequency = Field(default=Frequency.DAILY, description="Habit frequency")
    completed_dates: frozenset[str] = Field(
        default_factory=frozenset,
        description="Dates (YYYY-MM-DD) on which the habit was completed",
    )
    created_at: str = Field(description="Creation timestamp (ISO-8601)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names that are empty once surrounding whitespace is removed."""
        if not v.strip():
            msg = "Habit name cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("completed_dates")
    @classmethod
    def validate_completed_dates(cls, v: frozenset[str]) -> frozenset[str]:
        """Ensure every completion entry is a well-formed calendar date."""
        for entry in v:
            parse_date_string(entry)
        return v

    def is_completed_on(self, day: str) -> bool:
        """Return True when the habit was completed on the given date string."""
        return day in self.completed_dates

    def with_toggled_date(self, day: str) -> Habit:
        """Return a copy with ``day`` added to or removed from completed dates."""
        if day in self.completed_dates:
            dates = self.completed_dates - {day}
        else:
            dates = self.completed_dates | {day}
        return self.model_copy(update={"completed_dates": dates})

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-friendly dict with completed dates sorted."""
        return {
            "id": self.id,
            "name": self.name,
            "frequency": self.frequency.value,
            "completed_dates": sorted(self.completed_dates),
            "created_at": self.created_at,
        }


class StoreState(BaseModel):
    """Read-only snapshot of the habit store."""

    model_config = ConfigDict(frozen=True)

    habits: tuple[Habit, ...] = Field(default=(), description="Habits in display order")
    is_loading: bool = Field(default=False, description="True while a load is pending")
    error: str | None = Field(default=None, description="Message of the last failed load")

    @model_validator(mode="after")
    def validate_error_not_loading(self) -> StoreState:
        """An error can only be reported once loading has finished."""
        if self.error is not None and self.is_loading:
            msg = "StoreState cannot carry an error while loading"
            raise ValueError(msg)
        return self

    def find(self, habit_id: str) -> Habit | None:
        """Return the habit with the given id, or None."""
        return next((habit for habit in self.habits if habit.id == habit_id), None)

    def to_dict(self) -> dict[str, object]:
        """Serialize the snapshot for MCP resources."""
        return {
            "habits": [habit.to_dict() for habit in self.habits],
            "is_loading": self.is_loading,
            "error": self.error,
        }


class HabitStats(BaseModel):
    """Aggregate statistics over the habit collection."""

    model_config = ConfigDict(frozen=True)

    total_habits: int = Field(ge=0)
    completed_today: int = Field(ge=0)
    longest_streak: int = Field(ge=0)


class HabitProgress(BaseModel):
    """Per-habit streak view used when listing habits."""

    model_config = ConfigDict(frozen=True)

    habit: Habit
    current_streak: int = Field(ge=0)
    completed_today: bool
    goal_progress: float = Field(ge=0.0, le=100.0, description="Streak as % of the streak goal")
