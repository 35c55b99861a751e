"""Tests for callback guarding, process title and process status helpers."""

import os

import psutil

from routinekit.log import PANIC, get_logger
from routinekit.proc import TaskletError
from routinekit.proc.utils import (
    get_proc_title, process_status, run_guarded, set_proc_title, trace_excerpt,
)


def failing():
    raise ValueError("nested failure")


def test_run_guarded_success():
    calls = []
    assert run_guarded(lambda: calls.append(1), get_logger("test.utils"), "job") is True
    assert calls == [1]


def test_run_guarded_tasklet_error(caplog):
    def job():
        raise TaskletError("retry later")

    assert run_guarded(job, get_logger("test.utils"), "job") is False
    assert [(r.levelname, r.getMessage()) for r in caplog.records] == [("ERROR", "job failed: retry later")]


def test_run_guarded_panic(caplog):
    assert run_guarded(failing, get_logger("test.utils"), "job") is False

    record, = caplog.records
    assert record.levelno == PANIC
    assert record.getMessage().startswith("job panic: ValueError: nested failure\n----------\n")
    assert "in failing" in record.getMessage()


def test_trace_excerpt_keeps_innermost_frames():
    def outer():
        failing()

    try:
        outer()
    except ValueError as e:
        excerpt = trace_excerpt(e, depth=1)

    assert "in failing" in excerpt
    assert "in outer" not in excerpt


def test_trace_excerpt_depth_zero_is_empty():
    try:
        failing()
    except ValueError as e:
        assert trace_excerpt(e, depth=0) == ""
        assert "in failing" in trace_excerpt(e)


def test_proc_title_round_trip():
    original = get_proc_title()
    try:
        assert set_proc_title("  routinekit-test  ")
        assert get_proc_title().startswith("routinekit-test")
    finally:
        set_proc_title(original)


def test_empty_proc_title_is_refused():
    assert set_proc_title("   ") is False


def test_process_status_of_self():
    status = process_status()

    assert status["pid"] == os.getpid()
    assert status["threads"] >= 1
    assert status["memory_rss_mb"] > 0


def test_process_status_of_missing_process(monkeypatch):
    def vanished(pid):
        raise psutil.NoSuchProcess(pid)

    monkeypatch.setattr("routinekit.proc.utils.psutil.Process", vanished)

    assert process_status(424242) == {"pid": 424242, "status": "stopped"}
