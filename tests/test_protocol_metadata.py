"""End-to-end tests over the in-memory MCP transport.

The FastMCP instance is passed directly to ``fastmcp.Client``, which performs
the initialize handshake and exchanges real JSON-RPC messages.
"""

import json

import pytest
from fastmcp import Client
from mcp.types import TextContent

import habit_tracker_mcp
from habit_tracker_mcp.config import ServerConfig
from habit_tracker_mcp.main import CoreServer
from tests.conftest import extract_tool_response_text


def _tool_json(result: object) -> dict[str, object]:
    text = extract_tool_response_text(result)
    assert text is not None
    return json.loads(text)


class TestProtocolMetadata:
    """Test class for MCP protocol metadata and capabilities."""

    @pytest.mark.asyncio
    async def test_server_capabilities_include_habit_tools(
        self, default_config: ServerConfig
    ) -> None:
        """Ping and every habit tool are declared."""
        core_server = CoreServer(default_config)

        async with Client(core_server.app) as client:
            await client.ping()
            tools = await client.list_tools()
            tool_names = {tool.name for tool in tools}

        assert {"ping", "create_habit", "remove_habit", "toggle_habit", "load_habits"} <= (
            tool_names
        )

    @pytest.mark.asyncio
    async def test_habit_resources_listed(self, default_config: ServerConfig) -> None:
        """The snapshot, stats and progress resources are discoverable."""
        core_server = CoreServer(default_config)

        async with Client(core_server.app) as client:
            resources = await client.list_resources()

        uris = {str(resource.uri) for resource in resources}
        assert {"habits://snapshot", "habits://stats", "habits://progress"} <= uris

    @pytest.mark.asyncio
    async def test_ping_round_trip(self, default_config: ServerConfig) -> None:
        """The ping tool answers "pong"."""
        core_server = CoreServer(default_config)

        async with Client(core_server.app) as client:
            response = await client.call_tool("ping", {})

        first_content = response.content[0]
        assert isinstance(first_content, TextContent)
        assert first_content.text == "pong"

    @pytest.mark.asyncio
    async def test_create_toggle_and_read_snapshot(self, default_config: ServerConfig) -> None:
        """Commands issued over MCP are visible through the snapshot resource."""
        core_server = CoreServer(default_config)

        async with Client(core_server.app) as client:
            created = _tool_json(await client.call_tool("create_habit", {"name": "Read"}))
            habit_id = created["habit"]["id"]  # type: ignore[index]
            toggled = _tool_json(
                await client.call_tool("toggle_habit", {"id": habit_id, "date": "2025-09-06"})
            )
            contents = await client.read_resource("habits://snapshot")

        assert created["success"] is True
        assert toggled["message"] == "Habit marked complete"
        snapshot = json.loads(contents[0].text)  # type: ignore[union-attr]
        assert snapshot["resource_type"] == "habit_snapshot"
        assert snapshot["habits"][0]["completed_dates"] == ["2025-09-06"]

    @pytest.mark.asyncio
    async def test_load_habits_round_trip(self, default_config: ServerConfig) -> None:
        """load_habits replaces the collection with the seed habits."""
        core_server = CoreServer(default_config)

        async with Client(core_server.app) as client:
            await client.call_tool("create_habit", {"name": "Temporary"})
            loaded = _tool_json(await client.call_tool("load_habits", {}))
            contents = await client.read_resource("habits://stats")

        assert loaded["status"] == "fulfilled"
        assert loaded["count"] == 2
        stats = json.loads(contents[0].text)  # type: ignore[union-attr]
        assert stats["total_habits"] == 2
        assert stats["completed_today"] == 0

    def test_package_version_matches_server_version(self, default_config: ServerConfig) -> None:
        """__version__ equals the FastMCP server version."""
        core_server = CoreServer(default_config)

        assert getattr(core_server.app, "version", None) == habit_tracker_mcp.__version__
