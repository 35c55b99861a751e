import os
import traceback
from typing import Any, Callable, Dict, Optional

import psutil
import setproctitle

from routinekit.config import effective_settings as config
from routinekit.log import LevelLogger
from routinekit.proc.errors import TaskletError


def trace_excerpt(exc: BaseException, depth: Optional[int] = None) -> str:
    """
    Formats the innermost frames of an exception's traceback.

    :param exc: The exception to describe.
    :param depth: Number of frames to keep, defaults to `TRACE_EXCERPT_DEPTH`.
    :return: The formatted frames, innermost last.
    """
    if depth is None:
        depth = config.TRACE_EXCERPT_DEPTH
    if depth <= 0:
        return ""
    frames = traceback.format_tb(exc.__traceback__)
    return "".join(frames[-depth:])


def run_guarded(func: Callable[[], Any], log: LevelLogger, label: str) -> bool:
    """
    Runs a user callback, logging its failures instead of propagating them.

    A `TaskletError` is an ordinary failure and is logged at ERROR. Any other
    exception is a panic: it is logged at PANIC together with an excerpt of
    its traceback. Exceptions outside `Exception` (e.g. KeyboardInterrupt)
    are not caught.

    :param func: The zero-argument callable to run.
    :param log: The logger receiving failure records.
    :param label: Names the callback in log records (e.g. 'initialize').
    :return: True if the callback returned normally, False otherwise.
    """
    try:
        func()
        return True
    except TaskletError as e:
        log.error(f"{label} failed: {e}")
    except Exception as e:
        log.panic(f"{label} panic: {type(e).__name__}: {e}\n----------\n{trace_excerpt(e)}----------")
    return False


def set_proc_title(title: str) -> bool:
    """
    Sets the process title shown in the OS process table.

    :param title: The new title, surrounding whitespace is stripped.
    :return: True if a non-empty title was applied.
    """
    title = (title or "").strip()
    if not title:
        return False
    setproctitle.setproctitle(title)
    return True


def get_proc_title() -> str:
    """Returns the current process title."""
    return setproctitle.getproctitle()


def process_status(pid: Optional[int] = None) -> Dict[str, Any]:
    """
    Collects resource figures for a process.

    :param pid: The process ID, defaults to the current process.
    :return: A dictionary with pid, name, status, cpu, memory and thread count.
             A stopped process is reported with status 'stopped' only.
    """
    pid = pid or os.getpid()
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            return {
                "pid": pid,
                "name": proc.name(),
                "status": proc.status(),
                "cpu_percent": proc.cpu_percent(interval=0.1),
                "memory_rss_mb": round(proc.memory_info().rss / 1024 / 1024, 1),
                "threads": proc.num_threads(),
            }
    except psutil.NoSuchProcess:
        return {"pid": pid, "status": "stopped"}
    except psutil.AccessDenied:
        return {"pid": pid, "status": "access_denied"}
