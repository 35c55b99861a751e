"""Shared fixtures for routinekit tests.

Provides:
- wait_until: poll a predicate with a timeout
- run_handler: start handlers on background threads and kill them on teardown
- trace_logs: capture records down to TRACE level
"""

import threading
import time

import pytest

from routinekit.log import TRACE


def _wait_until(predicate, timeout=3.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """Return a function polling `predicate` until true or `timeout` seconds pass."""
    return _wait_until


@pytest.fixture
def run_handler():
    """Start handlers on daemon threads; every started handler is killed at teardown."""
    started = []

    def _run(handler):
        thread = threading.Thread(target=handler.start, daemon=True)
        thread.start()
        started.append((handler, thread))
        return thread

    yield _run

    for handler, thread in started:
        handler.kill()
        thread.join(5)


@pytest.fixture
def trace_logs(caplog):
    """Capture log records at every level, TRACE included."""
    caplog.set_level(TRACE)
    return caplog
