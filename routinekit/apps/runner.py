import argparse
import logging
from typing import Callable, Optional

from routinekit.log import TRACE, LevelLogger, setup_logging
from routinekit.proc.utils import trace_excerpt


def build_parser(description: str) -> argparse.ArgumentParser:
    """Returns an argument parser carrying the shared verbosity flags."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-x", dest="debug", action="store_true", help="enable debug logs")
    parser.add_argument("-xx", dest="trace", action="store_true", help="enable debug and trace logs")
    return parser


def console_level(args: argparse.Namespace) -> Optional[int]:
    if args.trace:
        return TRACE
    if args.debug:
        return logging.DEBUG
    return None


def run_app(app: Callable[[], None], log: LevelLogger) -> int:
    """
    Runs an application entry point, recovering at the outermost boundary.

    :param app: The zero-argument callable running the application.
    :param log: The application's logger.
    :return: The process exit status, 0 on success and 1 after a failure.
    """
    log.info("**** starting ****")
    try:
        app()
    except Exception as e:
        log.panic(f"{type(e).__name__}: {e}\n----------\n{trace_excerpt(e)}----------")
        return 1
    log.info("exit")
    return 0


def init_app(args: argparse.Namespace) -> None:
    setup_logging(console_level(args))
