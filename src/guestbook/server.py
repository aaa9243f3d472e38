"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the listener, the worker pool, the parser and the router together,
and owns the process lifecycle:

    STARTING ──bind()──► SERVING ──stop token set──► DRAINING ──► STOPPED

    ┌───────────┬─────────────────────────────────────────────────────────┐
    │ STARTING  │ templates are loaded by create_app(); nothing bound yet │
    │ SERVING   │ accept loop running; one worker per connection          │
    │ DRAINING  │ listener closed, idle keep-alive connections closed,    │
    │           │ in-flight and already-sent queued requests finish with  │
    │           │ "Connection: close"                                     │
    │           │ (bounded by shutdown_timeout; stragglers are cut)       │
    │ STOPPED   │ workers released, serve() returns                       │
    └───────────┴─────────────────────────────────────────────────────────┘

Per connection (on a worker thread):

    read_request() ─► parse ─► handler ─► send ─► keep-alive? ─► loop
         │              │         │
         │ timeout      │ bad     │ exception
         ▼              ▼         ▼
        408            4xx/5xx   500 (logged with traceback)
       close          close     connection continues

The stop token is a threading.Event. ``run()`` sets it from SIGINT and
SIGTERM; tests and embedders call ``shutdown()`` or pass their own event
to ``serve()``.

=============================================================================
"""

import logging
import signal
import threading
import time
from enum import Enum
from typing import Optional, Set, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    plain_error, internal_error, service_unavailable,
)


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# How often the drain re-checks connections that went idle after a response
DRAIN_POLL_INTERVAL = 0.05


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup shared by the CLI and ``HTTPServer.run()``."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    logging.getLogger("guestbook").setLevel(level.upper())


class ServerState(Enum):
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


class HTTPServer:
    """
    Threaded HTTP/1.1 server with graceful drain.

        server = HTTPServer(ServerConfig(port=8080))
        server.router.add_route("/", home)
        server.run()                 # blocks; Ctrl+C drains and returns

    Or, driven by your own stop token:

        stop = threading.Event()
        server.bind()                # port 0 → server.address has the real one
        threading.Thread(target=server.serve, args=(stop,)).start()
        ...
        stop.set()
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = router or Router()

        self._stop_event = threading.Event()
        self._serving = threading.Event()
        self._stopped = threading.Event()
        self._state = ServerState.STARTING

        self._connections: Set[Connection] = set()
        self._connections_cond = threading.Condition()

        self.drain_timed_out = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def get(self, path: str):
        return self._router.get(path)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def _set_state(self, state: ServerState):
        logger.debug("Server state %s -> %s", self._state.value, state.value)
        self._state = state
        if state == ServerState.SERVING:
            self._serving.set()
        elif state == ServerState.STOPPED:
            self._stopped.set()

    def bind(self) -> Tuple[str, int]:
        """Bind the listener now (idempotent). Returns the bound address."""
        if not self._socket_server.is_bound:
            self._socket_server.bind()
        return self.address

    def serve(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Accept and serve connections until the stop token is set, then drain.

        Blocks. Returns once the server is STOPPED.
        """
        if stop_event is not None:
            self._stop_event = stop_event

        self.bind()
        self._router.log_routes()
        self._thread_pool.start()

        self._set_state(ServerState.SERVING)
        logger.info("Server running on http://%s:%d", *self.address)

        try:
            self._socket_server.accept_loop(self._handle_connection, self._stop_event)
        finally:
            self._drain()

    def run(self) -> None:
        """
        Serve until SIGINT or SIGTERM, then drain. Main thread only.

        The previous signal handlers are restored before returning.
        """
        self._setup_logging()

        def on_signal(signum, frame):
            logger.info("Received %s, shutting down...", signal.Signals(signum).name)
            self.shutdown()

        previous = {
            sig: signal.signal(sig, on_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            self.serve()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def shutdown(self) -> None:
        """Ask the server to drain and stop. Safe from any thread."""
        self._stop_event.set()

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        return self._serving.wait(timeout)

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    def _setup_logging(self):
        configure_logging(self.config.log_level)

    def _drain(self):
        """
        Stop accepting, let in-flight requests finish, then stop the workers.

        Idle connections are aborted immediately, and again whenever a busy
        one finishes its response and goes idle. Whatever is still active
        at the deadline is cut.
        """
        self._set_state(ServerState.DRAINING)
        logger.info("Shutting down...")
        self._socket_server.close()

        deadline = time.monotonic() + self.config.shutdown_timeout

        with self._connections_cond:
            while True:
                for conn in list(self._connections):
                    conn.abort_if_idle()
                if not self._connections:
                    break
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._connections_cond.wait(timeout=min(remaining, DRAIN_POLL_INTERVAL))
            leftovers = list(self._connections)

        if leftovers:
            self.drain_timed_out = True
            logger.error(
                "Shutdown: timed out after %.1fs with %d active connection(s); closing them",
                self.config.shutdown_timeout, len(leftovers),
            )
            for conn in leftovers:
                conn.abort()

        self._thread_pool.shutdown(wait=False, timeout=2.0)
        self._set_state(ServerState.STOPPED)
        logger.info("Server stopped.")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Runs on the accept thread: register the connection and queue it."""
        with self._connections_cond:
            self._connections.add(conn)

        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning("[%s] Worker queue full, rejecting connection", conn.id)
            response = service_unavailable()
            conn.send_response(response.to_bytes(self.config.server_name))
            conn.close()
            self._forget(conn)

    def _forget(self, conn: Connection):
        with self._connections_cond:
            self._connections.discard(conn)
            self._connections_cond.notify_all()

    def _process_connection(self, conn: Connection):
        """Runs on a worker: serve requests until the connection ends."""
        try:
            with conn:
                self._serve_requests(conn)
        finally:
            self._forget(conn)

    def _serve_requests(self, conn: Connection):
        while True:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                return
            except ValueError as e:
                logger.debug("[%s] %s", conn.id, e)
                self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                return

            if raw_request is None:
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.debug("[%s] Bad request: %s", conn.id, e)
                self._send_error(conn, HTTPStatus(e.status_code))
                return

            response = self._dispatch(request, conn)
            keep_alive = self._finalize(request, response)

            if not conn.send_response(self._serialize(request, response)):
                return
            if not keep_alive:
                return
            conn.set_keep_alive()

    def _dispatch(self, request: HTTPRequest, conn: Connection) -> HTTPResponse:
        try:
            return self._router.handle(request)
        except Exception:
            logger.exception("[%s] Handler error on %s %s", conn.id, request.method, request.path)
            return internal_error()

    def _finalize(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        """Set the Connection header; return whether to keep the connection."""
        keep_alive = (
            request.is_keep_alive
            and not self._stop_event.is_set()
            and (response.get_header("Connection") or "").lower() != "close"
        )

        if not keep_alive:
            response.set_header("Connection", "close")
        elif request.version == "HTTP/1.0":
            response.set_header("Connection", "keep-alive")

        return keep_alive

    def _serialize(self, request: HTTPRequest, response: HTTPResponse) -> bytes:
        data = response.to_bytes(self.config.server_name)
        # HEAD gets the headers GET would have, Content-Length included
        if request.method == "HEAD" and response.body:
            data = data[:-len(response.body)]
        return data

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Protocol-level error before any handler ran; the connection closes."""
        response = plain_error(status, f"{int(status)} {status.phrase}")
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))
