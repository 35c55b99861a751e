"""
A counting process that stops itself after a number of counts.

Terminate lingers for a few seconds unless the process is killed; sending
SIGQUIT kills it, cutting the terminate wait short.

    python -m routinekit.apps.basic_process [-x|-xx] [--count N]
"""
import signal
import sys
from typing import Any, List, Optional

from routinekit.apps.runner import build_parser, init_app, run_app
from routinekit.log import get_logger
from routinekit.proc import Process, Tasklet


class CounterProcess(Tasklet, Process):

    def __init__(self, log: Any = None, max_count: int = 60, count_interval: float = 1.0,
                 term_wait: int = 3, term_step: float = 1.0, **kwargs: Any) -> None:
        super().__init__(None, log=log, name="counter", **kwargs)
        self.counter = 0
        self.max_count = max_count
        self.count_interval = count_interval
        self.term_wait = term_wait
        self.term_step = term_step
        if hasattr(signal, "SIGQUIT"):
            self.set_signal_handler(signal.SIGQUIT, self.handle_sigquit)

    def initialize(self) -> None:
        self.counter = 0
        self.log.info("initialized")

    def execute(self) -> None:
        self.counter += 1
        self.log.info(f"running: ... {self.counter}")

        # stop after n counts
        if self.counter >= self.max_count:
            self.log.info(f"exit process at count {self.counter}")
            self.stop()
            return

        self.sleep(self.count_interval)

    def terminate(self) -> None:
        self.log.info("terminating")
        self.log.info(f"exit after {self.term_wait} steps")
        for i in range(self.term_wait):
            if not self.sleep(self.term_step):
                break
            self.log.info(f"term ... {i + 1}")
        self.log.info("terminated")

    def handle_sigquit(self) -> None:
        self.log.info("exit overwrite .. no wait counts")
        self.kill()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Counting process with graceful and forced exit.")
    parser.add_argument("--count", type=int, default=60, help="counts before exiting")
    args = parser.parse_args(argv)
    init_app(args)

    log = get_logger("main")
    return run_app(lambda: CounterProcess(log.child("counter"), max_count=args.count).start(), log)


if __name__ == "__main__":
    sys.exit(main())
