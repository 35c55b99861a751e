"""
Logging module for routinekit.
This module provides the severity levels used by handlers and the function
that configures console and file logging.
"""

from .levels import TRACE, PANIC, FATAL, LevelLogger, get_logger, level_from_name
from .setup import setup_logging, set_console_level

__all__ = [
    "TRACE", "PANIC", "FATAL", "LevelLogger", "get_logger", "level_from_name",
    "setup_logging", "set_console_level",
]
