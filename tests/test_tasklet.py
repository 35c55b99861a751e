"""Unit tests for Tasklet and TaskletHandler.

Covers the lifecycle state machine, failure handling, cooperative sleep and
the terminate grace budget.
"""

import threading
import time

import pytest

from routinekit.log import PANIC
from routinekit.proc import Tasklet, TaskletError, TaskletHandler


class Recorder(Tasklet):
    """Tasklet recording its lifecycle calls and stopping after `runs` executes."""

    def __init__(self, runs=3, init_error=None, exec_error=None, term_error=None):
        self.handler = None
        self.calls = []
        self.runs = runs
        self.init_error = init_error
        self.exec_error = exec_error
        self.term_error = term_error
        self.states = []

    def initialize(self):
        self.calls.append("initialize")
        self.states.append((self.handler.is_alive(), self.handler.is_initialized()))
        if self.init_error:
            raise self.init_error

    def execute(self):
        self.calls.append("execute")
        self.states.append((self.handler.is_alive(), self.handler.is_initialized()))
        if self.calls.count("execute") >= self.runs:
            self.handler.stop()
        if self.exec_error:
            raise self.exec_error

    def terminate(self):
        self.calls.append("terminate")
        if self.term_error:
            raise self.term_error


def make_handler(tasklet, **kwargs):
    handler = TaskletHandler(tasklet, log="test.tasklet", **kwargs)
    tasklet.handler = handler
    return handler


class TestLifecycle:
    """Lifecycle ordering and state flags."""

    def test_order_initialize_execute_terminate(self):
        tasklet = Recorder(runs=3)
        handler = make_handler(tasklet)

        handler.start()

        assert tasklet.calls == ["initialize", "execute", "execute", "execute", "terminate"]
        assert not handler.is_alive()
        assert not handler.is_initialized()

    def test_initialized_implies_alive(self):
        tasklet = Recorder(runs=2)
        handler = make_handler(tasklet)

        handler.start()

        # (alive, initialized) seen from inside the callbacks
        assert tasklet.states[0] == (True, False)
        assert all(state == (True, True) for state in tasklet.states[1:])

    def test_restart_runs_a_fresh_lifecycle(self):
        tasklet = Recorder(runs=1)
        handler = make_handler(tasklet)

        handler.start()
        tasklet.runs = 2
        handler.start()

        assert tasklet.calls.count("initialize") == 2
        assert tasklet.calls.count("terminate") == 2

    def test_start_is_idempotent_while_alive(self, run_handler, wait_until):
        release = threading.Event()

        class Blocking(Tasklet):
            inits = 0

            def initialize(self):
                Blocking.inits += 1

            def execute(self):
                release.wait(2)

            def terminate(self):
                pass

        handler = TaskletHandler(Blocking(), log="test.tasklet")
        run_handler(handler)
        assert wait_until(handler.is_initialized)

        started = time.monotonic()
        handler.start()
        assert time.monotonic() - started < 0.5
        assert Blocking.inits == 1

        handler.stop()
        release.set()
        assert handler.wait_stopped(2)

    def test_handler_without_tasklet_must_be_one(self):
        with pytest.raises(TypeError):
            TaskletHandler()

    def test_handler_can_be_its_own_tasklet(self):
        class Own(Tasklet, TaskletHandler):
            def initialize(self):
                self.count = 0

            def execute(self):
                self.count += 1
                self.stop()

            def terminate(self):
                self.done = True

        own = Own()
        own.start()

        assert own.count == 1
        assert own.done
        assert own.name == "own"

    def test_enable_disable_do_not_touch_running_state(self):
        handler = make_handler(Recorder())
        assert not handler.is_enabled()
        handler.enable()
        assert handler.is_enabled()
        assert not handler.is_alive()
        handler.disable()
        assert not handler.is_enabled()


class TestFailures:
    """UserCallback and UserPanic handling."""

    def test_initialize_error_skips_execute_and_terminate(self, trace_logs):
        tasklet = Recorder(init_error=TaskletError("no config"))
        handler = make_handler(tasklet)

        handler.start()

        assert tasklet.calls == ["initialize"]
        assert not handler.is_alive()
        assert any(r.levelname == "ERROR" and "initialize failed: no config" in r.getMessage()
                   for r in trace_logs.records)

    def test_initialize_panic_is_logged_with_trace(self, trace_logs):
        tasklet = Recorder(init_error=RuntimeError("boom"))
        handler = make_handler(tasklet)

        handler.start()

        assert tasklet.calls == ["initialize"]
        panics = [r for r in trace_logs.records if r.levelno == PANIC]
        assert len(panics) == 1
        assert "RuntimeError: boom" in panics[0].getMessage()
        assert "in initialize" in panics[0].getMessage()

    def test_execute_errors_do_not_abort_the_loop(self, trace_logs):
        tasklet = Recorder(runs=3, exec_error=TaskletError("bad input"))
        handler = make_handler(tasklet)

        handler.start()

        assert tasklet.calls.count("execute") == 3
        assert tasklet.calls[-1] == "terminate"
        errors = [r for r in trace_logs.records if "execute failed" in r.getMessage()]
        assert len(errors) == 3

    def test_terminate_failure_is_logged(self, trace_logs):
        tasklet = Recorder(runs=1, term_error=ValueError("dirty"))
        handler = make_handler(tasklet)

        handler.start()

        assert not handler.is_alive()
        assert any(r.levelno == PANIC and "terminate panic" in r.getMessage() for r in trace_logs.records)


class TestSleep:
    """Cooperative sleep semantics."""

    def test_non_positive_sleep_returns_at_once(self):
        handler = make_handler(Recorder())
        assert handler.sleep(0) is True
        assert handler.sleep(-1) is True

    def test_full_sleep_returns_true(self):
        handler = make_handler(Recorder())
        assert handler.sleep(0.05) is True

    @pytest.mark.parametrize("interrupt", ["stop", "kill"])
    def test_sleep_wakes_within_100ms(self, interrupt):
        handler = make_handler(Recorder())
        threading.Timer(0.1, getattr(handler, interrupt)).start()

        started = time.monotonic()
        assert handler.sleep(5) is False
        assert time.monotonic() - started < 0.3

    def test_sleep_after_stop_returns_false_immediately(self):
        handler = make_handler(Recorder())
        handler.stop()
        started = time.monotonic()
        assert handler.sleep(2) is False
        assert time.monotonic() - started < 0.1

    def test_exec_interval_spaces_executes(self):
        stamps = []

        class Timed(Tasklet):
            def initialize(self):
                pass

            def execute(self):
                stamps.append(time.monotonic())
                if len(stamps) == 3:
                    handler.stop()

            def terminate(self):
                pass

        handler = TaskletHandler(Timed(), log="test.tasklet", exec_interval=0.1)
        handler.start()

        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert len(gaps) == 2
        assert all(gap >= 0.09 for gap in gaps)


class Lingering(Tasklet):
    """Tasklet whose terminate waits in steps unless killed."""

    def __init__(self, steps=3, step=1.0):
        self.handler = None
        self.steps = steps
        self.step = step
        self.sleep_results = []
        self.entered_terminate = threading.Event()
        self.term_exit = None

    def initialize(self):
        pass

    def execute(self):
        self.handler.stop()

    def terminate(self):
        self.entered_terminate.set()
        for _ in range(self.steps):
            ok = self.handler.sleep(self.step)
            self.sleep_results.append(ok)
            if not ok:
                break
        self.term_exit = time.monotonic()


class TestTerminate:
    """Terminate grace period, stop and kill during terminate."""

    def test_stop_does_not_shorten_terminate(self):
        tasklet = Lingering(steps=3, step=0.05)
        handler = make_handler(tasklet)

        handler.start()

        assert tasklet.sleep_results == [True, True, True]

    def test_kill_shortens_terminate(self, run_handler):
        tasklet = Lingering(steps=3, step=1.0)
        handler = make_handler(tasklet)
        run_handler(handler)
        assert tasklet.entered_terminate.wait(2)

        # a second stop during terminate is a no-op, kill still applies
        handler.stop()
        killed_at = time.monotonic()
        handler.kill()

        assert handler.wait_stopped(2)
        assert tasklet.sleep_results == [False]
        assert tasklet.term_exit - killed_at < 0.2

    def test_term_delay_budget_kills_lingering_terminate(self, trace_logs):
        tasklet = Lingering(steps=1, step=5.0)
        handler = make_handler(tasklet, term_delay=0.2)

        started = time.monotonic()
        handler.start()

        assert time.monotonic() - started < 1.0
        assert tasklet.sleep_results == [False]
        assert handler.kill_event.is_set()
        assert any("grace period" in r.getMessage() for r in trace_logs.records)

    def test_unbounded_term_delay(self):
        tasklet = Lingering(steps=2, step=0.05)
        handler = make_handler(tasklet, term_delay=0)

        handler.start()

        assert tasklet.sleep_results == [True, True]
        assert not handler.kill_event.is_set()
