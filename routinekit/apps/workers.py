"""
A routine manager running a pool of workers.

Workers are named 'wrk1', 'wrk2', ... and can be added, deleted, started,
stopped and restarted at runtime, either through the command channel
(--commands) or with SIGUSR1 (add a worker) and SIGUSR2 (delete the oldest).

    python -m routinekit.apps.workers [-x|-xx] [--workers N] [--commands]
"""
import json
import random
import signal
import sys
import threading
from typing import Any, Callable, List, Optional

from routinekit.apps.runner import build_parser, init_app, run_app
from routinekit.comm import HttpCommandListener
from routinekit.config import effective_settings as config
from routinekit.log import LevelLogger, get_logger
from routinekit.proc import RoutineError, RoutineHandler, RoutineManager, Tasklet
from routinekit.proc.utils import process_status


class Worker(Tasklet, RoutineHandler):
    """A worker that may decide to stop itself on any iteration."""

    def __init__(self, log: Any = None, name: Optional[str] = None, work_interval: float = 2.0,
                 self_stop_chance: float = 0.0, rng: Optional[random.Random] = None,
                 **kwargs: Any) -> None:
        super().__init__(None, log=log, name=name, **kwargs)
        self.work_interval = work_interval
        self.self_stop_chance = self_stop_chance
        self.rng = rng or random.Random()
        self.runs = 0

    def initialize(self) -> None:
        self.runs += 1
        self.log.info("initialized")

    def execute(self) -> None:
        self.log.info("running")
        if self.self_stop_chance and self.rng.random() < self.self_stop_chance:
            self.log.info("closing myself")
            self.stop()
            return
        self.sleep(self.work_interval)

    def terminate(self) -> None:
        self.log.info("terminated")


WorkerFactory = Callable[[str, LevelLogger], Worker]


class WorkerPool:
    """
    Manages the numbered workers of a RoutineManager.

    Workers are added with increasing numbers and deleted oldest first, so the
    loaded workers always form the range wrk<index> .. wrk<count>.
    """

    def __init__(self, manager: RoutineManager, max_workers: Optional[int] = None,
                 worker_factory: Optional[WorkerFactory] = None, exit_delay: float = 3.0) -> None:
        self.manager = manager
        self.max_workers = max_workers or config.MAX_WORKERS
        self.worker_factory = worker_factory or (lambda name, log: Worker(log, name=name))
        self.exit_delay = exit_delay
        self.count = 0   # highest worker number ever added
        self.index = 1   # number of the oldest loaded worker
        self._lock = threading.Lock()

    @property
    def active(self) -> int:
        return self.count - self.index + 1

    def populate(self, workers: int) -> None:
        """
        Adds the initial workers.

        :raises RoutineError: If a worker cannot be added.
        """
        for _ in range(workers):
            name = f"wrk{self.count + 1}"
            self.manager.add_routine(name, self.worker_factory(name, self.manager.log.child(name)), True)
            self.count += 1

    def add_worker(self) -> str:
        with self._lock:
            if self.active >= self.max_workers:
                self.manager.log.info("max concurrent workers")
                return "MAX_REACHED"
            name = f"wrk{self.count + 1}"
            try:
                self.manager.add_routine(name, self.worker_factory(name, self.manager.log.child(name)), True)
            except RoutineError as e:
                self.manager.log.error(f"failed adding worker: {name} - {e}")
                return "FAILED"
            self.count += 1
            self.manager.log.info(f"added worker: {name}")
            return "DONE"

    def del_worker(self) -> str:
        with self._lock:
            if self.index > self.count:
                self.manager.log.info("no workers to delete")
                return "NO_WORKERS"
            name = f"wrk{self.index}"
            try:
                self.manager.del_routine(name)
            except RoutineError as e:
                self.manager.log.error(f"failed deleting worker: {name} - {e}")
                return "FAILED"
            self.index += 1
            self.manager.log.info(f"deleted worker: {name}")
            return "DONE"

    def list_workers(self) -> str:
        names = sorted(self.manager.list_routines(), key=lambda n: (len(n), n))
        return ",".join(names) or "<empty>"

    def handle_command(self, cmd: str) -> str:
        parts = cmd.split(":")
        verb = parts[0].strip()
        param = parts[1].strip() if len(parts) > 1 else ""

        if verb == "exit":
            timer = threading.Timer(self.exit_delay, self.manager.stop)
            timer.daemon = True
            timer.start()
            return "DONE"
        if verb == "list_workers":
            return self.list_workers()
        if verb == "add_worker":
            return self.add_worker()
        if verb == "del_worker":
            return self.del_worker()
        if verb == "status":
            return json.dumps({"process": process_status(), "workers": self.manager.routines_status()})

        actions = {
            "start_worker": self.manager.start_routine,
            "stop_worker": self.manager.stop_routine,
            "restart_worker": self.manager.restart_routine,
        }
        if verb not in actions:
            return "INVALID_COMMAND"
        if not param:
            return "MISSING_PARAM"
        try:
            actions[verb](f"wrk{param}")
        except RoutineError as e:
            self.manager.log.error(f"{verb} wrk{param} failed: {e}")
            return "FAILED"
        return "DONE"

    def install_signals(self) -> None:
        """Routes SIGUSR1 to adding and SIGUSR2 to deleting a worker."""
        if hasattr(signal, "SIGUSR1"):
            self.manager.set_signal_handler(signal.SIGUSR1, self.add_worker)
        if hasattr(signal, "SIGUSR2"):
            self.manager.set_signal_handler(signal.SIGUSR2, self.del_worker)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Routine manager running a pool of workers.")
    parser.add_argument("--workers", type=int, default=3, help="workers started initially")
    parser.add_argument("--commands", action="store_true", help="accept commands over the command channel")
    parser.add_argument("--host", default=config.COMMAND_API_HOST, help="command listener host")
    parser.add_argument("--port", type=int, default=config.COMMAND_API_PORT, help="command listener port")
    parser.add_argument("--monitor-interval", type=float, default=None, help="seconds between routine sweeps")
    args = parser.parse_args(argv)
    init_app(args)

    log = get_logger("main")

    def app() -> None:
        manager = RoutineManager(log.child("manager"), monitor_interval=args.monitor_interval,
                                 proc_title="routinekit-workers")
        pool = WorkerPool(manager)
        pool.populate(args.workers)
        if args.commands:
            manager.set_command_handler(HttpCommandListener(args.host, args.port), pool.handle_command)
        else:
            pool.install_signals()
        manager.start()

    return run_app(app, log)


if __name__ == "__main__":
    sys.exit(main())
