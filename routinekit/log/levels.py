import logging
from typing import Any, Optional, Union

# Severity scale used by handlers: TRACE, DEBUG, INFO, WARN, ERROR, FATAL, PANIC.
TRACE = 5
DEBUG = logging.DEBUG
INFO = logging.INFO
WARN = logging.WARNING
ERROR = logging.ERROR
FATAL = logging.CRITICAL
PANIC = 60

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(PANIC, "PANIC")

LEVELS = {
    "TRACE": TRACE,
    "DEBUG": DEBUG,
    "INFO": INFO,
    "WARN": WARN,
    "WARNING": WARN,
    "ERROR": ERROR,
    "FATAL": FATAL,
    "CRITICAL": FATAL,
    "PANIC": PANIC,
}


def level_from_name(name: str, default: int = INFO) -> int:
    """
    Resolves a severity name (case-insensitive) to its numeric level.

    :param name: The level name, e.g. 'trace' or 'WARN'.
    :param default: Level returned when the name is unknown.
    :return: The numeric logging level.
    """
    return LEVELS.get(str(name).strip().upper(), default)


class LevelLogger(logging.LoggerAdapter):
    """
    A logger adapter exposing one method per severity level.

    Handlers log through this adapter so they never format records themselves;
    formatting stays with the handlers configured by `setup_logging`.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None) -> None:
        super().__init__(logger, extra or {})

    def process(self, msg: Any, kwargs: Any):
        return msg, kwargs

    @property
    def name(self) -> str:
        return self.logger.name

    def trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(TRACE, msg, *args, **kwargs)

    def warn(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(WARN, msg, *args, **kwargs)

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(FATAL, msg, *args, **kwargs)

    def panic(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(PANIC, msg, *args, **kwargs)

    def child(self, name: str) -> "LevelLogger":
        """Returns a logger for `name` nested under this one (e.g. 'manager.wrk1')."""
        return LevelLogger(self.logger.getChild(name), self.extra)


def get_logger(name: Union[str, logging.Logger, LevelLogger]) -> LevelLogger:
    """
    Wraps a logger name or an existing logger into a `LevelLogger`.

    :param name: A logger name, a `logging.Logger` or a `LevelLogger`.
    :return: A `LevelLogger` instance.
    """
    if isinstance(name, LevelLogger):
        return name
    if isinstance(name, logging.Logger):
        return LevelLogger(name)
    return LevelLogger(logging.getLogger(name))
