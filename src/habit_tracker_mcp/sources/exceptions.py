"""Exceptions for the HTTP habit source.

Every error derives from ``HabitLoadError`` so the habit store surfaces it as
a failed load. Messages never contain the bearer token.
"""

from habit_tracker_mcp.core.exceptions import HabitLoadError


class HabitSourceAuthenticationError(HabitLoadError):
    """Raised when authentication fails (401 Unauthorized / 403 Forbidden)."""

    def __init__(self, message: str = "Habit source authentication failed", status_code: int = 401) -> None:
        """Initialize authentication error.

        Args:
            message: Error message (defaults to generic message)
            status_code: HTTP status code (401 or 403)
        """
        super().__init__(message, status_code=status_code)


class HabitSourceNotFoundError(HabitLoadError):
    """Raised when the habits endpoint does not exist (404 Not Found)."""

    def __init__(self, message: str = "Habit source endpoint not found") -> None:
        super().__init__(message, status_code=404)


class HabitSourceRateLimitError(HabitLoadError):
    """Raised when rate limit is exceeded (429 Too Many Requests)."""

    def __init__(self, message: str = "Habit source rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class HabitSourceServerError(HabitLoadError):
    """Raised when the source returns 5xx errors."""

    def __init__(self, message: str = "", status_code: int = 500) -> None:
        """Initialize server error.

        Args:
            message: Error message from server
            status_code: HTTP status code (5xx)
        """
        super().__init__(message or f"Habit source server error ({status_code})", status_code)


class HabitSourceNetworkError(HabitLoadError):
    """Raised when network operations fail."""

    def __init__(self, message: str = "Network error while fetching habits") -> None:
        super().__init__(message, status_code=None)


class HabitSourceTimeoutError(HabitLoadError):
    """Raised when requests time out (client timeouts or 524 server timeout)."""

    def __init__(
        self, message: str = "Timed out fetching habits", status_code: int | None = None
    ) -> None:
        """Initialize timeout error.

        Args:
            message: Error message about timeout
            status_code: HTTP status code (524 for server timeout, None for client timeout)
        """
        super().__init__(message, status_code=status_code)
