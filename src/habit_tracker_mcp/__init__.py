"""Habit Tracker MCP - habit state store exposed over the Model Context Protocol."""

import logging

__version__ = "0.1.0"

logger = logging.getLogger(__name__)
