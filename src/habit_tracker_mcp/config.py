"""Configuration module for the Habit Tracker MCP server.

This module provides the ServerConfig Pydantic model for managing server
configuration from files, command-line arguments, and defaults.
"""

from importlib.metadata import PackageNotFoundError, version
from typing import Any, Literal

from pydantic import BaseModel, Field, HttpUrl, field_validator


def _default_user_agent() -> str:
    """Build the HTTP User-Agent from the installed distribution version."""
    try:
        return f"habit-tracker-mcp/{version('habit-tracker-mcp')}"
    except PackageNotFoundError:
        return "habit-tracker-mcp/0.1.0"


class ServerConfig(BaseModel):
    """Server configuration model with validation and default values.

    Covers logging, the habit source used by the load command, identifier
    generation and the HTTP client settings for a remote habit backend.
    """

    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port number for future HTTP transport support",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the application",
    )

    config_file: str | None = Field(
        default=None,
        description="Path to configuration file",
    )

    habit_source: Literal["seed", "http"] = Field(
        default="seed",
        description="Where load_habits fetches habits from: built-in seed data or an HTTP backend",
    )

    seed_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Simulated network delay of the seed habit source in seconds",
    )

    seed_fail: bool = Field(
        default=False,
        description="Make the seed habit source fail, for exercising the error path",
    )

    source_base_url: HttpUrl = Field(
        default=HttpUrl("https://habits.example.com/api/"),
        description="Base URL of the HTTP habit backend",
    )

    source_bearer_token: str | None = Field(
        default=None,
        description="Optional bearer token for the HTTP habit backend",
    )

    http_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="HTTP client retry count for failed requests",
    )

    http_backoff_start_seconds: float = Field(
        default=0.25,
        ge=0.1,
        le=10.0,
        description="HTTP client backoff start time in seconds",
    )

    http_user_agent: str = Field(
        default_factory=_default_user_agent,
        description="HTTP client User-Agent header",
    )

    timeout_connect: float = Field(
        default=5.0,
        ge=1.0,
        le=30.0,
        description="HTTP connection timeout in seconds",
    )

    timeout_read: float = Field(
        default=30.0,
        ge=5.0,
        le=120.0,
        description="HTTP read timeout in seconds",
    )

    id_strategy: Literal["uuid", "counter"] = Field(
        default="uuid",
        description="How new habit identifiers are generated",
    )

    streak_goal_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Streak length treated as 100% goal progress",
    )

    load_on_startup: bool = Field(
        default=False,
        description="Fetch habits from the configured source when the server starts",
    )

    @field_validator("source_base_url")
    @classmethod
    def validate_https_url(cls, v: HttpUrl) -> HttpUrl:
        """Validate that the habit backend URL uses HTTPS protocol.

        Args:
            v: The URL value to validate.

        Returns:
            HttpUrl: The validated HTTPS URL.

        Raises:
            ValueError: If the URL does not use HTTPS protocol.
        """
        if v.scheme != "https":
            msg = "URL must use HTTPS"
            raise ValueError(msg)
        return v

    def to_redacted_dict(self) -> dict[str, Any]:
        """Return a dictionary representation with sensitive data redacted.

        Returns:
            dict[str, Any]: Configuration dictionary safe for logging.
        """
        config_dict = self.model_dump()
        if config_dict["source_bearer_token"] is not None:
            config_dict["source_bearer_token"] = "***redacted***"  # noqa: S105 - redaction placeholder, not actual secret
        config_dict["source_base_url"] = str(config_dict["source_base_url"])
        return config_dict
