"""
A counting process controlled through the command channel.

Commands: 'reset' restarts the counter, 'exit' stops the process after a
short delay, 'status' reports process figures.

    python -m routinekit.apps.managed_process [-x|-xx] [--host H] [--port P]
"""
import json
import sys
import threading
from typing import Any, List, Optional

from routinekit.apps.runner import build_parser, init_app, run_app
from routinekit.comm import HttpCommandListener
from routinekit.config import effective_settings as config
from routinekit.log import get_logger
from routinekit.proc import Process, Tasklet
from routinekit.proc.utils import process_status


class ManagedProcess(Tasklet, Process):

    def __init__(self, log: Any = None, count_interval: float = 1.0, exit_delay: float = 0.5,
                 **kwargs: Any) -> None:
        super().__init__(None, log=log, name="managed", **kwargs)
        self.count_interval = count_interval
        self.exit_delay = exit_delay
        self._counter = 0
        self._counter_lock = threading.Lock()

    @property
    def counter(self) -> int:
        with self._counter_lock:
            return self._counter

    def initialize(self) -> None:
        self.log.info("initialized")

    def execute(self) -> None:
        with self._counter_lock:
            self._counter += 1
            count = self._counter
        self.log.info(f"running: ... {count}")
        self.sleep(self.count_interval)

    def terminate(self) -> None:
        self.log.info("terminated")

    def handle_command(self, cmd: str) -> str:
        self.log.info(f"received command: {cmd}")

        reply = "done"
        if cmd == "exit":
            timer = threading.Timer(self.exit_delay, self.stop)
            timer.daemon = True
            timer.start()
        elif cmd == "reset":
            with self._counter_lock:
                self._counter = 0
        elif cmd == "status":
            reply = json.dumps(process_status())
        else:
            reply = "invalid_command"

        self.log.info(f"reply command: {reply}")
        return reply


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Counting process managed through commands.")
    parser.add_argument("--host", default=config.COMMAND_API_HOST, help="command listener host")
    parser.add_argument("--port", type=int, default=config.COMMAND_API_PORT, help="command listener port")
    args = parser.parse_args(argv)
    init_app(args)

    log = get_logger("main")

    def app() -> None:
        process = ManagedProcess(log.child("managed"), proc_title="routinekit-managed")
        process.set_command_handler(HttpCommandListener(args.host, args.port), process.handle_command)
        process.start()

    return run_app(app, log)


if __name__ == "__main__":
    sys.exit(main())
