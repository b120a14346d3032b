"""Pytest fixtures and configuration for the test suite."""

import tempfile
from collections.abc import Generator, Sequence
from datetime import datetime
from pathlib import Path
from typing import cast

import pytest
from fastmcp import FastMCP
from pytest_mock import AsyncMockType, MockerFixture

from habit_tracker_mcp.config import ServerConfig
from habit_tracker_mcp.core.store import HabitStore, counter_ids
from habit_tracker_mcp.sources.seed import SeedHabitSource
from habit_tracker_mcp.tools.habits import HabitTools
from tests.factories import FIXED_NOW, fixed_clock


@pytest.fixture
def default_config() -> ServerConfig:
    """Provide a default ServerConfig instance for testing.

    Returns:
        ServerConfig: A configured ServerConfig instance with test values.
    """
    return ServerConfig(
        port=8080,
        log_level="INFO",
        config_file=None,
        seed_delay_seconds=0.0,
        id_strategy="counter",
    )


@pytest.fixture
def now() -> datetime:
    """Provide the fixed "current time" used by store fixtures."""
    return FIXED_NOW


@pytest.fixture
def seed_source() -> SeedHabitSource:
    """Provide a seed habit source without simulated delay."""
    return SeedHabitSource(0.0, clock=fixed_clock())


@pytest.fixture
def failing_source() -> SeedHabitSource:
    """Provide a seed habit source that always fails."""
    return SeedHabitSource(0.0, fail=True)


@pytest.fixture
def store(seed_source: SeedHabitSource) -> HabitStore:
    """Provide an empty HabitStore with counter ids and a fixed clock.

    Returns:
        HabitStore: Store whose ids are "1", "2", ... and whose today is 2025-09-06.
    """
    return HabitStore(seed_source, id_generator=counter_ids(), clock=fixed_clock())


@pytest.fixture
def mcp() -> FastMCP:
    """Provide a FastMCP instance for testing.

    Returns:
        FastMCP: A FastMCP instance with a test server name.
    """
    return FastMCP("test-server")


@pytest.fixture
def habit_tools(mcp: FastMCP, store: HabitStore) -> HabitTools:
    """Provide a HabitTools instance bound to the test store."""
    return HabitTools(mcp, store)


@pytest.fixture
def async_ctx(mocker: MockerFixture) -> AsyncMockType:
    """Provide an async context mock for testing.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        AsyncMock: An async context mock with a test session ID.
    """
    mock_ctx = mocker.AsyncMock()
    mock_ctx.session_id = "test-session-123"
    return mock_ctx


@pytest.fixture
def temp_config_file() -> Generator[str, None, None]:
    """Create a temporary config file for integration tests.

    Yields:
        str: Path to a temporary TOML config file.
    """
    config_content = """
port = 8080
log_level = "INFO"
seed_delay_seconds = 0.0
"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
        f.write(config_content)
        temp_path = f.name

    try:
        yield temp_path
    finally:
        Path(temp_path).unlink(missing_ok=True)


def extract_tool_response_text(result: object) -> str | None:
    """Extract text content from a FastMCP tool call result.

    Uses duck typing to avoid depending on internal FastMCP classes.

    Args:
        result: The FastMCP tool call result object.

    Returns:
        str | None: The extracted text content, or None if extraction fails.
    """

    try:
        contents = getattr(result, "content", None)
        if contents:
            for content_item in contents:
                text = getattr(content_item, "text", None)
                if text is not None:
                    return str(text)
            try:
                seq = cast(Sequence[object], contents)
                return str(seq[0])
            except Exception:
                return str(contents)
        return str(result)
    except Exception:
        return None
