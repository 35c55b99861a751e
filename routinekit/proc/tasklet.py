import time
import threading
from abc import ABC, abstractmethod
from typing import Optional, Union
import logging

from routinekit.config import effective_settings as config
from routinekit.log import LevelLogger, get_logger
from routinekit.proc.utils import run_guarded


class Tasklet(ABC):
    """
    A unit of long-running work driven by a `TaskletHandler`.

    Callbacks report success by returning normally. Raising `TaskletError`
    reports an ordinary failure; any other exception is treated as a panic.
    """

    @abstractmethod
    def initialize(self) -> None:
        """One-time setup. A failure aborts the lifecycle before any execute."""

    @abstractmethod
    def execute(self) -> None:
        """One iteration of work, called repeatedly until stopped."""

    @abstractmethod
    def terminate(self) -> None:
        """Shutdown hook, called once if `initialize` succeeded."""


class TaskletHandler:
    """
    Drives a Tasklet's lifecycle on the calling thread.

    The handler owns the stop and kill events of its tasklet and the sleep
    primitive bound to them. Cancellation is cooperative: events are checked
    between executes and inside `sleep`, so long-running work must either
    return promptly, call `sleep`, or consult `stop_event`/`kill_event`.

    The tasklet is either passed in explicitly or, when omitted, the handler
    itself must implement `Tasklet`::

        class Worker(Tasklet, TaskletHandler):
            def initialize(self): ...
            def execute(self): ...
            def terminate(self): ...
    """

    def __init__(
        self,
        tasklet: Optional[Tasklet] = None,
        log: Optional[Union[str, logging.Logger, LevelLogger]] = None,
        name: Optional[str] = None,
        exec_interval: Optional[float] = None,
        term_delay: Optional[float] = None,
    ) -> None:
        """
        :param tasklet: The tasklet to drive, defaults to the handler itself.
        :param log: Logger (or logger name) for lifecycle records.
        :param name: Handler name, defaults to the class name.
        :param exec_interval: Floor in seconds between consecutive executes.
        :param term_delay: Grace budget in seconds for terminate, <= 0 is unbounded.
        :raises TypeError: If no tasklet is given and the handler is not one.
        """
        if tasklet is None:
            if not isinstance(self, Tasklet):
                raise TypeError(f"{type(self).__name__} needs a tasklet or must implement Tasklet")
            tasklet = self
        self.tasklet: Tasklet = tasklet
        self.name: str = name or type(self).__name__.lower()
        self.log: LevelLogger = get_logger(log if log is not None else self.name)

        self.exec_interval: float = config.EXEC_INTERVAL if exec_interval is None else exec_interval
        self.term_delay: float = config.TERM_DELAY if term_delay is None else term_delay

        self.stop_event = threading.Event()
        self.kill_event = threading.Event()

        self._state_lock = threading.Lock()
        self._enabled = False
        self._alive = False
        self._initialized = False
        self._idle = threading.Event()
        self._idle.set()
        # Monotonic deadline of the terminate phase, None outside of it.
        self._term_deadline: Optional[float] = None
        self._terminating = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} alive={self._alive} enabled={self._enabled}>"

    #* --- State snapshots ---

    def is_enabled(self) -> bool:
        return self._enabled

    def is_alive(self) -> bool:
        return self._alive

    def is_initialized(self) -> bool:
        return self._initialized

    def enable(self) -> None:
        """Marks the handler as wanted. Only consulted by a supervising manager."""
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    #* --- Lifecycle ---

    def start(self) -> None:
        """
        Runs the full lifecycle on the calling thread and returns when done.

        Calling `start` on a handler that is already alive returns immediately.
        """
        if not self._claim():
            self.log.debug("already running")
            return
        try:
            self._run()
        finally:
            self._release()

    def _claim(self) -> bool:
        """Atomically marks the handler alive and resets its events, False if it already was."""
        with self._state_lock:
            if self._alive:
                return False
            self.stop_event.clear()
            self.kill_event.clear()
            self._initialized = False
            self._terminating = False
            self._term_deadline = None
            self._alive = True
            self._idle.clear()
            return True

    def _release(self) -> None:
        with self._state_lock:
            self._initialized = False
            self._terminating = False
            self._term_deadline = None
            self._alive = False
            self._idle.set()

    def _run(self) -> None:
        if not run_guarded(self.tasklet.initialize, self.log, "initialize"):
            return
        self._initialized = True
        self.log.trace("initialized")

        while not (self.stop_event.is_set() or self.kill_event.is_set()):
            run_guarded(self.tasklet.execute, self.log, "execute")
            if self.exec_interval > 0:
                self.sleep(self.exec_interval)

        self._terminating = True
        if self.term_delay > 0:
            self._term_deadline = time.monotonic() + self.term_delay
        self.log.trace("terminating")
        run_guarded(self.tasklet.terminate, self.log, "terminate")

    def stop(self) -> None:
        """Requests a graceful shutdown. Returns immediately."""
        self.stop_event.set()

    def kill(self) -> None:
        """Requests an immediate shutdown, cutting the terminate grace period short."""
        self.kill_event.set()
        self.stop_event.set()

    def sleep(self, seconds: float) -> bool:
        """
        Waits cooperatively for `seconds`.

        While running, the wait ends early when the handler is stopped or
        killed. During terminate only a kill ends it early, and the wait is
        capped by what remains of `term_delay`; running out of that budget
        kills the handler.

        :param seconds: Duration to wait, values <= 0 return at once.
        :return: True if the full duration elapsed, False if interrupted.
        """
        if seconds <= 0:
            return True
        if not self._terminating:
            return not self.stop_event.wait(seconds)

        deadline = self._term_deadline
        if deadline is None:
            return not self.kill_event.wait(seconds)

        remaining = deadline - time.monotonic()
        if remaining >= seconds:
            return not self.kill_event.wait(seconds)
        if remaining > 0 and self.kill_event.wait(remaining):
            return False
        if not self.kill_event.is_set():
            self.log.warning(f"terminate grace period of {self.term_delay}s exceeded")
            self.kill_event.set()
        return False

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Blocks until the lifecycle has fully exited.

        :param timeout: Maximum seconds to wait, None waits forever.
        :return: True if the handler is not alive when returning.
        """
        return self._idle.wait(timeout)
