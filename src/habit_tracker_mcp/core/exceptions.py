"""Exceptions raised by habit sources and caught by the habit store.

The store never lets these cross its command boundary: a failed fetch is
folded into ``StoreState.error``.
"""


class HabitLoadError(Exception):
    """Base exception for every failure to fetch habits from a source."""

    def __init__(self, message: str = "Failed to fetch habits", status_code: int | None = None) -> None:
        """Initialize habit load error.

        Args:
            message: Error message surfaced through the store state
            status_code: HTTP status code if the source is HTTP backed
        """
        self.status_code = status_code
        super().__init__(message)

    @property
    def message(self) -> str:
        """Return the message, falling back to a generic one when blank."""
        text = str(self)
        return text or "Failed to fetch habits"

    @classmethod
    def create_parse_error(cls, source: str, **context: str | int) -> "HabitLoadError":
        """Create an error for payloads that do not describe habits.

        Args:
            source: Name or endpoint of the source that returned the payload
            **context: Additional safe context information

        Returns:
            HabitLoadError with contextual message
        """
        context_parts = [f"source={source}"]
        context_parts.extend(f"{key}={value}" for key, value in context.items())
        return cls(f"Failed to parse habits ({', '.join(context_parts)})")
