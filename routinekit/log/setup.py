import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from routinekit.config import effective_settings as config
from routinekit.log.levels import level_from_name


class MainFormatter(logging.Formatter):
    """The formatter shared by the console and file handlers."""

    default_format = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'

    def __init__(self, fmt: Optional[str] = None) -> None:
        super().__init__(fmt or self.default_format)

    def formatException(self, ei) -> str:
        # Indent tracebacks so they read as part of the record they belong to.
        text = super().formatException(ei)
        return "\n".join("    " + line for line in text.splitlines())


def setup_logging(console_level: Optional[int] = None) -> None:
    """
    Configures the root logger for routinekit processes.
    This sets up handlers for the console and optionally a rotating log file,
    clearing any previously configured handlers to prevent duplication.

    :param console_level: The logging level for the console output, defaults
                          to the configured `LOG_LEVEL`.
    """
    if console_level is None:
        console_level = level_from_name(config.LOG_LEVEL)

    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(1)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (conditional) ---
    if config.LOG_FILE_PATH:
        try:
            log_path = Path(config.LOG_FILE_PATH)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=config.LOG_FILE_MAX_BYTES,
                backupCount=config.LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
            file_handler.setLevel(min(console_level, logging.DEBUG))
            file_handler.setFormatter(MainFormatter())
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Failed to initialize file logging handler: {e}. Logging to file will be disabled.")


def set_console_level(level: int) -> bool:
    """
    Changes the level of the console handler installed by `setup_logging`.

    :param level: The new logging level.
    :return: True if a console handler was found and updated.
    """
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)
            return True
    return False
