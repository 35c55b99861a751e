import logging
import threading
from abc import ABC, abstractmethod
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Callable, Optional, Tuple

from routinekit.config import effective_settings as config

log = logging.getLogger(__name__)

Dispatch = Callable[[str], str]


class CommandListener(ABC):
    """
    A transport delivering request strings and carrying back reply strings.

    The owner calls `open` once before serving, runs `serve` on a dedicated
    thread, and calls `close` to make `serve` return.
    """

    def open(self) -> None:
        """Prepares the transport for a new `serve` call."""

    @abstractmethod
    def serve(self, dispatch: Dispatch) -> None:
        """Blocks, passing each request to `dispatch` and replying with its result, until closed."""

    @abstractmethod
    def close(self) -> None:
        """Stops serving. Requests not yet dispatched are dropped."""


class CommandServer(HTTPServer):
    """An HTTPServer carrying the dispatch function of its current owner."""

    dispatch: Optional[Dispatch] = None


class CommandRequestHandler(BaseHTTPRequestHandler):
    """
    Request handler for the command channel.
    A request is the UTF-8 text body of a POST to `COMMAND_API_PATH`; the
    reply is the text body of the 200 response.
    """

    def _send_response(self, code: int, body: bytes) -> None:
        self.send_response(code)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self):
        if self.path != config.COMMAND_API_PATH:
            self._send_response(404, b"Not Found")
            return

        dispatch = self.server.dispatch
        if dispatch is None:
            self._send_response(503, b"Not Serving")
            return

        try:
            content_length = int(self.headers.get("Content-Length") or 0)
            request = self.rfile.read(content_length).decode("utf-8", errors="replace")
            reply = dispatch(request) or ""
            self._send_response(200, reply.encode("utf-8"))
        except ValueError:
            self._send_response(400, b"Bad Request")
        except Exception as e:
            log.error(f"Error dispatching command request: {e}", exc_info=True)
            self._send_response(500, b"Internal Server Error")

    def do_GET(self):
        self._send_response(405, b"Method Not Allowed")

    def log_message(self, format_str: str, *args) -> None:
        """Override to direct HTTP server logs to our application's logger."""
        log.debug("CommandListener: " + (format_str % args))


class HttpCommandListener(CommandListener):
    """
    Serves commands over HTTP on a local address.

    The socket is bound at construction so the address is known before
    serving; port 0 picks a free port, which is then kept for later reopens.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 poll_interval: Optional[float] = None) -> None:
        """
        :param host: Interface to bind, defaults to `COMMAND_API_HOST`.
        :param port: Port to bind, defaults to `COMMAND_API_PORT`.
        :param poll_interval: Seconds between checks for `close`.
        """
        self.host = host or config.COMMAND_API_HOST
        self.port = config.COMMAND_API_PORT if port is None else port
        self.poll_interval = poll_interval or config.COMMAND_POLL_INTERVAL
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._server: Optional[CommandServer] = None
        self._serving = False
        self.open()

    @property
    def address(self) -> Tuple[str, int]:
        return self.host, self.port

    def open(self) -> None:
        with self._lock:
            self._closed.clear()
            if self._server is None:
                server = CommandServer((self.host, self.port), CommandRequestHandler)
                server.timeout = self.poll_interval
                self.port = server.server_address[1]
                self._server = server

    def serve(self, dispatch: Dispatch) -> None:
        with self._lock:
            server = self._server
            if server is None or self._closed.is_set():
                return
            self._serving = True
            server.dispatch = dispatch

        log.info(f"Command listener serving on http://{self.host}:{self.port}{config.COMMAND_API_PATH}")
        try:
            # The server runs until close() sets the closed event
            while not self._closed.is_set():
                server.handle_request()
        finally:
            with self._lock:
                server.dispatch = None
                server.server_close()
                self._serving = False
                if self._server is server:
                    self._server = None
            log.info("Command listener shutting down.")

    def close(self) -> None:
        with self._lock:
            self._closed.set()
            if self._server is not None and not self._serving:
                self._server.server_close()
                self._server = None
