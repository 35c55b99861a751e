import time
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

from routinekit.config import effective_settings as config
from routinekit.proc.errors import (
    DuplicateRoutineError, InvalidRoutineError, NoRoutinesError, RoutineActiveError,
)
from routinekit.proc.process import Process
from routinekit.proc.tasklet import Tasklet, TaskletHandler


class Routine(Protocol):
    """What a RoutineManager needs from a supervised routine."""

    def is_enabled(self) -> bool: ...
    def is_alive(self) -> bool: ...
    def is_initialized(self) -> bool: ...
    def enable(self) -> None: ...
    def disable(self) -> None: ...
    def start(self) -> None: ...
    def stop(self) -> None: ...
    def kill(self) -> None: ...


RoutineHandler = TaskletHandler


class RoutineManager(Tasklet, Process):
    """
    A Process supervising a named collection of routines.

    Each `execute` is one supervisory sweep: every routine that is enabled but
    not alive is started on a new thread, then the manager sleeps for
    `monitor_interval`. There is no restart backoff; a routine that dies is
    relaunched on the next sweep. On terminate all routines are disabled and
    stopped; the manager never kills them itself.
    """

    def __init__(self, log: Any = None, name: str = "manager",
                 monitor_interval: Optional[float] = None,
                 stop_delay: Optional[float] = None, **kwargs: Any) -> None:
        """
        :param log: Logger (or logger name) for the manager.
        :param name: Manager name, used for its logger and threads.
        :param monitor_interval: Seconds between sweeps, defaults to `MONITOR_INTERVAL`.
        :param stop_delay: Seconds to wait for routines on terminate, defaults to `STOP_DELAY`.
        """
        super().__init__(None, log=log, name=name, **kwargs)
        self.monitor_interval: float = config.MONITOR_INTERVAL if monitor_interval is None else monitor_interval
        self.stop_delay: float = config.STOP_DELAY if stop_delay is None else stop_delay
        self._routines: Dict[str, Routine] = {}
        self._routines_lock = threading.Lock()
        # Start threads whose routine.start() has not returned yet.
        self._launchers: Dict[threading.Thread, Tuple[str, Routine]] = {}
        self._launch_lock = threading.Lock()
        self._closing = False

    #* --- Tasklet callbacks ---

    def initialize(self) -> None:
        if not self._routines:
            raise NoRoutinesError()
        with self._launch_lock:
            self._closing = False
        self.log.debug(f"loaded routines: {', '.join(self.list_routines())}")

    def execute(self) -> None:
        self.check_routines()
        self.sleep(self.monitor_interval)

    def terminate(self) -> None:
        self.log.info("stopping all activated routines")
        with self._launch_lock:
            self._closing = True
        with self._routines_lock:
            for name, routine in self._routines.items():
                routine.disable()
                if routine.is_alive():
                    self.log.info(f"stopping routine: {name}")
                    routine.stop()

        if self.stop_delay <= 0:
            return

        deadline = time.monotonic() + self.stop_delay
        while not self.kill_event.is_set() and time.monotonic() < deadline:
            self.sleep(config.STOP_POLL_INTERVAL)
            if not self._unsettled_routines():
                return

        unsettled = self._unsettled_routines()
        if unsettled:
            self.log.error(f"failed stopping routines: {', '.join(unsettled)}")

    #* --- Supervision ---

    def check_routines(self) -> None:
        """Starts every routine that is enabled but not alive."""
        with self._routines_lock:
            snapshot = list(self._routines.items())

        self.log.trace("checking routines ...")
        for name, routine in snapshot:
            if routine.is_enabled() and not routine.is_alive():
                self.log.info(f"starting routine: {name}")
                self._spawn(name, routine)

    def _spawn(self, name: str, routine: Routine) -> None:
        thread = threading.Thread(target=self._launch, args=(name, routine), name=f"{self.name}-{name}", daemon=True)
        with self._launch_lock:
            self._launchers[thread] = (name, routine)
        thread.start()

    def _launch(self, name: str, routine: Routine) -> None:
        """Runs a routine's lifecycle on the current thread, unless the manager is terminating."""
        try:
            with self._launch_lock:
                if self._closing:
                    self.log.trace(f"not starting routine while terminating: {name}")
                    return
            routine.start()
        finally:
            with self._launch_lock:
                self._launchers.pop(threading.current_thread(), None)

    def _unsettled_routines(self) -> List[str]:
        """
        Returns the routines still alive or with a start in flight.

        Routines that came alive after terminate stopped the others are
        stopped here, since their start cleared the earlier stop request.
        """
        with self._routines_lock:
            entries = list(self._routines.items())
        with self._launch_lock:
            launching = list(self._launchers.values())

        unsettled: List[str] = []
        for name, routine in entries + launching:
            in_flight = any(routine is r for _, r in launching)
            if routine.is_alive():
                routine.disable()
                routine.stop()
            elif not in_flight:
                continue
            if name not in unsettled:
                unsettled.append(name)
        return unsettled

    def _get(self, name: str) -> Routine:
        """Looks up a routine, the caller must hold the routines lock."""
        routine = self._routines.get(name)
        if routine is None:
            raise InvalidRoutineError()
        return routine

    #* --- Administration ---

    def list_routines(self) -> List[str]:
        """Returns the names of all loaded routines."""
        with self._routines_lock:
            return list(self._routines)

    def routines_status(self) -> Dict[str, Dict[str, bool]]:
        """Returns the enabled and alive flags of every loaded routine."""
        with self._routines_lock:
            return {
                name: {"enabled": routine.is_enabled(), "alive": routine.is_alive()}
                for name, routine in self._routines.items()
            }

    def add_routine(self, name: str, routine: Routine, enabled: bool = True) -> None:
        """
        Adds a routine under a unique name.

        When the manager is already initialized the routine is started at
        once on a new thread instead of waiting for the next sweep.

        :raises DuplicateRoutineError: If the name is already loaded.
        """
        with self._routines_lock:
            if name in self._routines:
                raise DuplicateRoutineError()
            self._routines[name] = routine
            if enabled:
                routine.enable()
            self.log.trace(f"added routine: {name}")

            if self.is_initialized():
                self._spawn(name, routine)

    def del_routine(self, name: str) -> None:
        """
        Stops and removes a routine.

        A running routine is stopped, then killed one second later; if it is
        still alive a second after the kill it stays loaded.

        :raises InvalidRoutineError: If the name is not loaded.
        :raises RoutineActiveError: If the routine could not be stopped.
        """
        with self._routines_lock:
            routine = self._get(name)
            routine.disable()
            if routine.is_alive():
                routine.stop()
                self.sleep(1)
                routine.kill()
                self.sleep(1)
                if routine.is_alive():
                    raise RoutineActiveError(name)

            self.log.trace(f"deleting routine: {name}")
            del self._routines[name]

    def start_routine(self, name: str) -> None:
        """Enables a routine and starts it if it is not running."""
        with self._routines_lock:
            routine = self._get(name)
            routine.enable()
            if not routine.is_alive():
                self.log.trace(f"activating routine: {name}")
                self._spawn(name, routine)
            else:
                self.log.trace(f"already running routine: {name}")

    def stop_routine(self, name: str) -> None:
        """Disables a routine and asks it to stop."""
        with self._routines_lock:
            routine = self._get(name)
            self.log.trace(f"deactivating routine: {name}")
            routine.disable()
            routine.stop()

    def restart_routine(self, name: str) -> None:
        """
        Enables a routine and restarts it.

        A running routine is only stopped; the next sweep starts it again.
        """
        with self._routines_lock:
            routine = self._get(name)
            routine.enable()
            if routine.is_alive():
                self.log.trace(f"restarting routine: {name}")
                routine.stop()
            else:
                self.log.trace(f"starting routine: {name}")
                self._spawn(name, routine)
