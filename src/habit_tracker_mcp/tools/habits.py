"""Habit management tools for the Habit Tracker MCP server.

This module provides the HabitTools class which exposes the habit store's
commands as MCP tools and its snapshots and statistics as MCP resources.
"""

import asyncio
import logging
from typing import Any

from fastmcp import FastMCP
from fastmcp.server.context import Context as ServerContext

from habit_tracker_mcp.core.commands import CommandOutcome, LoadFailed, LoadSuperseded
from habit_tracker_mcp.core.store import HabitStore

# Configure logger to write to stderr
logger = logging.getLogger(__name__)


class HabitTools:
    """Habit management tools providing MCP tools and resources.

    Tools translate calls into habit store commands; resources serve frozen
    snapshots, statistics and per-habit streaks. Neither side touches the
    habit collection directly.
    """

    def __init__(self, mcp_instance: FastMCP, store: HabitStore) -> None:
        """Initialize HabitTools with MCP instance and habit store.

        Args:
            mcp_instance: FastMCP server instance for registering tools
            store: Habit store the tools dispatch commands into
        """
        self.mcp = mcp_instance
        self.store = store
        self._register_tools()
        self._register_resources()

    @staticmethod
    async def _outcome_response(ctx: ServerContext, outcome: CommandOutcome) -> dict[str, Any]:
        """Convert a command outcome into a tool response, reporting failures via ctx."""
        if not outcome.applied:
            await ctx.error(outcome.message)
            logger.warning("Habit command not applied: %s", outcome.message)
            return {"success": False, "error": outcome.error, "message": outcome.message}

        result: dict[str, Any] = {"success": True, "message": outcome.message}
        if outcome.habit is not None:
            result["habit"] = outcome.habit.to_dict()
        await ctx.info(outcome.message)
        return result

    async def create_habit_tool(
        self, ctx: ServerContext, name: str, frequency: str = "daily"
    ) -> dict[str, Any]:
        """Create a new habit.

        Args:
            ctx: Server context for logging
            name: Habit name (must not be blank)
            frequency: "daily" or "weekly"

        Returns:
            dict[str, Any]: Success response with the created habit, or a validation error
        """
        outcome = self.store.create(name, frequency.strip().lower())
        return await self._outcome_response(ctx, outcome)

    async def remove_habit_tool(
        self,
        ctx: ServerContext,
        id: str,  # noqa: A002  # Required by MCP tool API - habit ID parameter
    ) -> dict[str, Any]:
        """Remove a habit by id."""
        outcome = self.store.remove(id)
        return await self._outcome_response(ctx, outcome)

    async def toggle_habit_tool(
        self,
        ctx: ServerContext,
        id: str,  # noqa: A002  # Required by MCP tool API - habit ID parameter
        date: str | None = None,
    ) -> dict[str, Any]:
        """Mark a habit complete on a date, or undo it if already complete.

        Args:
            ctx: Server context for logging
            id: The ID of the habit to toggle
            date: Day in ISO-8601 format (YYYY-MM-DD); defaults to today

        Returns:
            dict[str, Any]: Success response with the updated habit, or an error response
        """
        outcome = self.store.toggle(id, date)
        return await self._outcome_response(ctx, outcome)

    async def load_habits_tool(self, ctx: ServerContext, wait: bool = True) -> dict[str, Any]:
        """Replace all habits with the ones from the configured habit source.

        Args:
            ctx: Server context for logging
            wait: Wait for the load to finish instead of returning while pending

        Returns:
            dict[str, Any]: Load result, or a pending status when not waiting
        """
        await ctx.info("Loading habits")
        task = self.store.load()

        if not wait:
            return {"success": True, "status": "pending", "message": "Habit load started"}

        # The load outlives a cancelled tool call and still settles the store
        result = await asyncio.shield(task)
        if isinstance(result, LoadSuperseded):
            await ctx.info("Habit load superseded by a newer load")
            return {
                "success": True,
                "status": "superseded",
                "message": "Habit load superseded by a newer load",
            }
        if isinstance(result, LoadFailed):
            error_msg = f"Failed to load habits: {result.message}"
            await ctx.error(error_msg)
            return {"success": False, "error": "load_error", "message": error_msg}

        await ctx.info(f"Loaded {len(result.habits)} habits")
        return {
            "success": True,
            "status": "fulfilled",
            "count": len(result.habits),
            "habits": [habit.to_dict() for habit in result.habits],
            "message": "Habits loaded successfully",
        }

    async def snapshot_resource(self, ctx: ServerContext) -> dict[str, Any]:
        """MCP resource providing the current store snapshot."""
        await ctx.info("Serving habit snapshot")
        return {"resource_type": "habit_snapshot", **self.store.snapshot().to_dict()}

    async def stats_resource(self, ctx: ServerContext) -> dict[str, Any]:
        """MCP resource providing totals and the longest current streak."""
        await ctx.info("Serving habit statistics")
        today = self.store.today()
        return {
            "resource_type": "habit_stats",
            "date": today,
            **self.store.stats(today).model_dump(),
        }

    async def progress_resource(self, ctx: ServerContext) -> dict[str, Any]:
        """MCP resource providing each habit's current streak and goal progress."""
        await ctx.info("Serving habit progress")
        today = self.store.today()
        return {
            "resource_type": "habit_progress",
            "date": today,
            "items": [
                {
                    "habit": item.habit.to_dict(),
                    "current_streak": item.current_streak,
                    "completed_today": item.completed_today,
                    "goal_progress": item.goal_progress,
                }
                for item in self.store.progress(today)
            ],
        }

    def _register_tools(self) -> None:
        """Register all habit-related MCP tools with the FastMCP instance."""

        # Wrapper functions to inject dependencies and satisfy FastMCP signature
        async def _create_habit(
            ctx: ServerContext, name: str, frequency: str = "daily"
        ) -> dict[str, Any]:
            """MCP tool wrapper for create_habit_tool."""
            return await self.create_habit_tool(ctx, name, frequency)

        async def _remove_habit(ctx: ServerContext, id: str) -> dict[str, Any]:  # noqa: A002
            """MCP tool wrapper for remove_habit_tool."""
            return await self.remove_habit_tool(ctx, id)

        async def _toggle_habit(
            ctx: ServerContext,
            id: str,  # noqa: A002
            date: str | None = None,
        ) -> dict[str, Any]:
            """MCP tool wrapper for toggle_habit_tool."""
            return await self.toggle_habit_tool(ctx, id, date)

        async def _load_habits(ctx: ServerContext, wait: bool = True) -> dict[str, Any]:
            """MCP tool wrapper for load_habits_tool."""
            return await self.load_habits_tool(ctx, wait)

        self.mcp.tool(name="create_habit", description="Create a new daily or weekly habit")(
            _create_habit
        )
        self.mcp.tool(name="remove_habit", description="Remove a habit by its ID")(_remove_habit)
        self.mcp.tool(
            name="toggle_habit",
            description="Mark a habit complete on a date (default today), or undo it",
        )(_toggle_habit)
        self.mcp.tool(
            name="load_habits",
            description="Replace all habits with the ones from the configured habit source",
        )(_load_habits)

    def _register_resources(self) -> None:
        """Register habit read resources with the FastMCP instance."""

        async def _snapshot(ctx: ServerContext) -> dict[str, Any]:
            return await self.snapshot_resource(ctx)

        async def _stats(ctx: ServerContext) -> dict[str, Any]:
            return await self.stats_resource(ctx)

        async def _progress(ctx: ServerContext) -> dict[str, Any]:
            return await self.progress_resource(ctx)

        self.mcp.resource("habits://snapshot")(_snapshot)
        self.mcp.resource("habits://stats")(_stats)
        self.mcp.resource("habits://progress")(_progress)
