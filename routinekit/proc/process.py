import signal
import threading
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

from routinekit.config import effective_settings as config
from routinekit.log import LevelLogger
from routinekit.proc.tasklet import Tasklet, TaskletHandler
from routinekit.proc.utils import run_guarded, set_proc_title

if TYPE_CHECKING:
    from routinekit.comm.listener import CommandListener

SignalAction = Callable[[], Any]
CommandHandler = Callable[[str], str]

INTERNAL_ERROR_REPLY = "INTERNAL_ERROR"


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class Process(TaskletHandler):
    """
    A TaskletHandler that also routes OS signals and dispatches commands.

    By default SIGINT and SIGTERM stop the process. Extra routes are added with
    `set_signal_handler` before `start`. When a command listener and handler
    are configured, incoming command strings are dispatched on a separate
    thread while the tasklet runs; the handler must synchronize its own
    access to state shared with `execute`.
    """

    def __init__(
        self,
        tasklet: Optional[Tasklet] = None,
        log: Optional[Union[str, logging.Logger, LevelLogger]] = None,
        name: Optional[str] = None,
        proc_title: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(tasklet, log=log, name=name, **kwargs)
        self.proc_title = proc_title
        self.signal_map: Dict[int, SignalAction] = {
            signal.SIGINT: self.stop,
            signal.SIGTERM: self.stop,
        }
        self.cmd_listener: Optional["CommandListener"] = None
        self.cmd_handler: Optional[CommandHandler] = None

    def set_signal_handler(self, signum: int, action: Optional[SignalAction]) -> None:
        """
        Routes a signal to a zero-argument action, replacing any previous route.

        :param signum: The OS signal number, e.g. `signal.SIGQUIT`.
        :param action: The callable to run, or None to remove the route.
        :raises RuntimeError: If the process is already running.
        """
        if self.is_alive():
            raise RuntimeError("signal handlers must be set before start")
        if action is None:
            self.signal_map.pop(signum, None)
        else:
            self.signal_map[signum] = action

    def set_command_handler(self, listener: Optional["CommandListener"], handler: Optional[CommandHandler]) -> None:
        """
        Enables command dispatch for the next `start`.

        :param listener: The transport delivering request strings.
        :param handler: Maps a request string to its reply string.
        """
        self.cmd_listener = listener
        self.cmd_handler = handler

    def start(self) -> None:
        # Signals and listener belong to the run that claimed the alive slot.
        if not self._claim():
            self.log.debug("already running")
            return

        previous_handlers: Dict[int, Any] = {}
        dispatcher: Optional[threading.Thread] = None
        try:
            if self.proc_title and not set_proc_title(self.proc_title):
                self.log.warning(f"failed setting process title '{self.proc_title}'")
            previous_handlers = self._install_signals()
            dispatcher = self._start_dispatcher()
            self._run()
        finally:
            self._stop_dispatcher(dispatcher)
            self._restore_signals(previous_handlers)
            self._release()

    #* --- Signals ---

    def _install_signals(self) -> Dict[int, Any]:
        """Subscribes every routed signal, returning the dispositions it replaced."""
        if not self.signal_map:
            return {}
        if threading.current_thread() is not threading.main_thread():
            self.log.warning("signal routing is only available on the main thread, signals not handled")
            return {}

        previous: Dict[int, Any] = {}
        for signum in list(self.signal_map):
            try:
                previous[signum] = signal.signal(signum, self._on_signal)
            except (OSError, ValueError) as e:
                self.log.warning(f"cannot route signal {signal_name(signum)}: {e}")
        return previous

    def _restore_signals(self, previous: Dict[int, Any]) -> None:
        for signum, handler in previous.items():
            try:
                signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
            except (OSError, ValueError) as e:
                self.log.warning(f"cannot restore signal {signal_name(signum)}: {e}")

    def _on_signal(self, signum: int, frame: Any) -> None:
        name = signal_name(signum)
        self.log.debug(f"<received signal: {name}>")
        action = self.signal_map.get(signum)
        if action is None:
            self.log.warning(f"no handler registered for signal: {name}")
            return
        threading.Thread(
            target=run_guarded,
            args=(action, self.log, f"signal {name}"),
            name=f"{self.name}-signal-{name}",
            daemon=True,
        ).start()

    #* --- Commands ---

    def dispatch_command(self, request: str) -> str:
        """
        Runs the command handler for one request and returns its reply.

        Empty requests get an empty reply without reaching the handler. A
        failing handler is logged and answered with 'INTERNAL_ERROR'.

        :param request: The raw request string.
        :return: The stripped reply string.
        """
        request = (request or "").strip()
        if not request or self.cmd_handler is None:
            return ""

        self.log.debug(f"CMD_REQ: {request}")
        replies = []
        if run_guarded(lambda: replies.append(self.cmd_handler(request)), self.log, f"command '{request}'"):
            reply = str(replies[0] or "").strip()
        else:
            reply = INTERNAL_ERROR_REPLY
        self.log.debug(f"CMD_RES: {reply}")
        return reply

    def _start_dispatcher(self) -> Optional[threading.Thread]:
        if self.cmd_listener is None or self.cmd_handler is None:
            return None
        self.cmd_listener.open()
        thread = threading.Thread(target=self._serve_commands, name=f"{self.name}-commands", daemon=True)
        thread.start()
        return thread

    def _serve_commands(self) -> None:
        try:
            self.cmd_listener.serve(self.dispatch_command)
        except Exception as e:
            self.log.error(f"command listener failed: {e}", exc_info=True)

    def _stop_dispatcher(self, thread: Optional[threading.Thread]) -> None:
        if thread is None:
            return
        self.cmd_listener.close()
        thread.join(config.DISPATCH_JOIN_TIMEOUT)
        if thread.is_alive():
            self.log.warning("command dispatch did not exit in time")
