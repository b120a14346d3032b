"""Main application entry point for the Habit Tracker MCP server.

This module contains the CoreServer class which owns the habit store and serves
it over FastMCP with stdio transport.

Exit Codes:
    0: Normal successful termination
    1: Configuration-related failures (TOML parse errors, validation failures,
       missing required files, unknown configuration keys, or unhandled exceptions)
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import tomllib
from pathlib import Path
from typing import Any

from fastmcp import Context, FastMCP

from habit_tracker_mcp import __version__
from habit_tracker_mcp.config import ServerConfig
from habit_tracker_mcp.core.commands import LoadFailed, LoadSucceeded
from habit_tracker_mcp.core.store import HabitStore, IdGenerator, counter_ids, uuid_ids
from habit_tracker_mcp.sources.http import HttpHabitSource
from habit_tracker_mcp.sources.protocols import HabitSource
from habit_tracker_mcp.sources.seed import SeedHabitSource
from habit_tracker_mcp.tools.habits import HabitTools


class CoreServer:
    """Main application runner owning one habit store and its FastMCP server.

    Each instance builds its own store, so several servers (or tests) never
    share habit state.
    """

    def __init__(self, config: ServerConfig, store: HabitStore | None = None) -> None:
        """Initialize the CoreServer instance.

        Args:
            config: Server configuration instance containing all settings.
            store: Habit store to serve; built from ``config`` when omitted.
        """
        self.config = config
        self._setup_logging()
        self._habit_source: HabitSource | None = None
        self.store = store if store is not None else HabitStore(
            self.get_habit_source(),
            id_generator=self._create_id_generator(),
            streak_goal_days=config.streak_goal_days,
        )
        self.app = self._create_fastmcp_instance()
        self._register_tools()
        self._sigint_count = 0
        self._setup_signal_handlers()

    def _setup_logging(self) -> None:
        """Configure logging to direct all output to stderr.

        Stdout carries MCP JSON-RPC traffic, so nothing else may write to it.
        """
        log_level = getattr(logging, self.config.log_level)
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            stream=sys.stderr,
        )

    def _create_fastmcp_instance(self) -> FastMCP:
        """Create the FastMCP application instance."""
        return FastMCP(
            name="habit-tracker-mcp",
            version=__version__,
        )

    def _create_id_generator(self) -> IdGenerator:
        """Build the habit id generator selected by ``config.id_strategy``."""
        if self.config.id_strategy == "counter":
            return counter_ids()
        return uuid_ids()

    def _register_tools(self) -> None:
        """Register all tools and resources with the FastMCP instance."""
        self.app.tool(self.ping_tool, name="ping")
        HabitTools(self.app, self.store)

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown.

        Handles SIGINT and SIGTERM to ensure clean shutdown without stdout corruption.
        """

        def signal_handler(signum: int, _: object | None) -> None:
            """Handle shutdown signals by forcing immediate exit."""
            logger = logging.getLogger(__name__)
            signal_name = "SIGINT" if signum == signal.SIGINT else f"Signal {signum}"

            if signum == signal.SIGINT:
                self._sigint_count += 1
                if self._sigint_count == 1:
                    logger.info("Received %s, initiating graceful shutdown", signal_name)
                    # FastMCP offers no clean shutdown hook for stdio
                    os._exit(0)
                else:
                    logger.warning("Second SIGINT received; forcing immediate exit")
                    os._exit(1)
            else:
                logger.info("Received %s, initiating graceful shutdown", signal_name)
                os._exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def get_config(self) -> ServerConfig:
        """Get the server configuration instance for dependency injection."""
        return self.config

    def get_habit_source(self) -> HabitSource:
        """Get or create the habit source selected by ``config.habit_source``.

        Returns:
            HabitSource: SeedHabitSource or HttpHabitSource, created once per server.
        """
        if self._habit_source is None:
            if self.config.habit_source == "http":
                self._habit_source = HttpHabitSource(self.config)
            else:
                self._habit_source = SeedHabitSource(
                    self.config.seed_delay_seconds, fail=self.config.seed_fail
                )
        return self._habit_source

    async def ping_tool(self, ctx: Context) -> str:
        """Ping health-check tool that returns a static 'pong' response.

        Args:
            ctx: The execution context providing access to logging and other MCP capabilities.

        Returns:
            str: The 'pong' response text.

        Raises:
            asyncio.CancelledError: If the operation is cancelled during execution.
        """
        try:
            await ctx.info("Ping tool called, returning pong")
        except asyncio.CancelledError:
            await ctx.info("Ping tool execution cancelled")
            raise
        else:
            return "pong"

    async def _load_on_startup_if_enabled(self) -> None:
        """Load habits from the configured source if enabled in configuration."""
        if not self.config.load_on_startup:
            return

        logger = logging.getLogger(__name__)
        logger.info("Loading habits on startup...")

        result = await self.store.load()
        match result:
            case LoadFailed(message=message):
                logger.warning("Startup habit load failed: %s", message)
            case LoadSucceeded(habits=habits):
                logger.info("Startup habit load returned %d habits", len(habits))
            case _:
                logger.info("Startup habit load superseded by a newer load")

        # The HTTP client is bound to this event loop; the server runs on a new one
        source = self.get_habit_source()
        if isinstance(source, HttpHabitSource):
            await source.aclose()

    def run(self) -> None:
        """Run the MCP server with stdio transport."""
        logger = logging.getLogger(__name__)
        logger.info("Starting Habit Tracker MCP server with stdio transport")

        if self.config.load_on_startup:
            try:
                asyncio.run(self._load_on_startup_if_enabled())
            except Exception:
                logger.exception("Habit load failed during startup")
                # Don't exit - the store stays usable without seed data

        try:
            self.app.run(transport="stdio")
        except KeyboardInterrupt:
            logger.info("Server shutdown requested via KeyboardInterrupt")
            raise
        except Exception:
            logger.exception("Unhandled exception in server run method")
            raise


def _get_known_config_fields() -> set[str]:
    """Get the set of known configuration field names.

    Returns:
        set[str]: Set of valid configuration field names for TOML validation.
    """
    return set(ServerConfig.model_fields)


def _load_config_from_file(config_file: str) -> dict[str, Any]:
    """Load configuration from TOML file with validation.

    Args:
        config_file: Path to the configuration file.

    Returns:
        dict[str, Any]: Configuration data loaded from file.

    Raises:
        SystemExit: On file parsing errors or unknown configuration keys.
    """
    config_data: dict[str, Any] = {}
    logger = logging.getLogger(__name__)
    config_path = Path(config_file)

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                file_config = tomllib.load(f)

            unknown_keys = set(file_config.keys()) - _get_known_config_fields()
            if unknown_keys:
                logger.error(
                    "Unknown configuration keys in %s: %s",
                    config_path,
                    ", ".join(sorted(unknown_keys)),
                )
                sys.exit(1)

            config_data.update(file_config)
            logger.info("Loaded configuration from %s", config_path)
        except tomllib.TOMLDecodeError:
            logger.exception("Failed to parse TOML configuration file %s", config_path)
            sys.exit(1)
        except OSError:
            logger.exception("Failed to read configuration file %s", config_path)
            sys.exit(1)

    return config_data


def _apply_cli_overrides(config_data: dict[str, Any], args: argparse.Namespace) -> None:
    """Apply CLI argument overrides to configuration data.

    Args:
        config_data: Configuration data dictionary to modify.
        args: Parsed command-line arguments.
    """
    overrides = {
        "port": "port",
        "log_level": "log_level",
        "habit_source": "habit_source",
        "source_url": "source_base_url",
        "source_token": "source_bearer_token",
        "seed_delay": "seed_delay_seconds",
        "id_strategy": "id_strategy",
    }
    for arg_name, field_name in overrides.items():
        value = getattr(args, arg_name, None)
        if value is not None:
            config_data[field_name] = value
    if getattr(args, "load_on_startup", False):
        config_data["load_on_startup"] = True


def _create_validated_config(config_data: dict[str, Any]) -> ServerConfig:
    """Create and validate ServerConfig from configuration data.

    Args:
        config_data: Configuration data dictionary.

    Returns:
        ServerConfig: Validated configuration instance.

    Raises:
        SystemExit: On configuration validation errors.
    """
    logger = logging.getLogger(__name__)

    try:
        config = ServerConfig(**config_data)
    except Exception:
        logger.exception("Configuration validation failed")
        sys.exit(1)
    else:
        logger.info("Effective configuration: %s", config.to_redacted_dict())
        return config


def load_configuration(args: argparse.Namespace) -> ServerConfig:
    """Load configuration from defaults, file, and CLI arguments with proper precedence.

    Precedence order (CLI > file > defaults):
    1. Command-line arguments (highest priority)
    2. Configuration file values
    3. Default values (lowest priority)

    Args:
        args: Parsed command-line arguments.

    Returns:
        ServerConfig: Loaded and validated configuration.

    Raises:
        SystemExit: On configuration validation errors or file parsing errors.
    """
    logger = logging.getLogger(__name__)

    config_file = args.config_file or "./config.toml"

    if args.config_file and not Path(config_file).exists():
        logger.error("Configuration file not found: %s", config_file)
        sys.exit(1)

    config_data = _load_config_from_file(config_file)
    _apply_cli_overrides(config_data, args)
    config_data["config_file"] = config_file

    return _create_validated_config(config_data)


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for server configuration.

    Args:
        argv: Argument list to parse; defaults to ``sys.argv[1:]``.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Habit Tracker MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file (default: ./config.toml)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port number for future HTTP transport (1-65535)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )
    parser.add_argument(
        "--habit-source",
        type=str,
        choices=["seed", "http"],
        help="Source used by load_habits",
    )
    parser.add_argument(
        "--source-url",
        type=str,
        help="Override HTTP habit source base URL (e.g., https://habits.example.com/api/)",
    )
    parser.add_argument(
        "--source-token",
        type=str,
        help="Override bearer token for the HTTP habit source",
    )
    parser.add_argument(
        "--seed-delay",
        type=float,
        help="Simulated delay of the seed habit source in seconds",
    )
    parser.add_argument(
        "--id-strategy",
        type=str,
        choices=["uuid", "counter"],
        help="How new habit identifiers are generated",
    )
    parser.add_argument(
        "--load-on-startup",
        action="store_true",
        help="Load habits from the habit source before serving",
    )

    return parser.parse_args(argv)


def main() -> None:
    """Main entry point for the Habit Tracker MCP server.

    All logging goes to stderr so stdout stays reserved for the MCP protocol.
    """
    logger = logging.getLogger(__name__)

    try:
        args = parse_cli_args()
        config = load_configuration(args)

        server = CoreServer(config)
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested via KeyboardInterrupt")
    except Exception:
        logger.exception("Unhandled exception in server")
        sys.exit(1)
    finally:
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
