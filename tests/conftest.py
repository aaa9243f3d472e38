"""
pytest configuration and fixtures.
"""

import http.client
import json
import threading
from datetime import datetime, timezone
from typing import Dict, Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from guestbook import HTTPServer, MessageStore, ServerConfig, create_app
from guestbook.config import DEFAULT_STATIC_DIR, DEFAULT_TEMPLATE_DIR
from guestbook.templates import Templates


FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    """Clock that always reports the same instant."""
    return lambda: fixed_now


@pytest.fixture
def store(clock) -> MessageStore:
    """Fresh store holding only the welcome message."""
    return MessageStore.with_welcome(clock=clock)


@pytest.fixture(scope="session")
def templates() -> Templates:
    """The shipped templates, compiled once per test session."""
    return Templates.load(DEFAULT_TEMPLATE_DIR)


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration on a free port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        read_timeout=2.0,
        idle_timeout=2.0,
        shutdown_timeout=2.0,
        template_dir=DEFAULT_TEMPLATE_DIR,
        static_dir=DEFAULT_STATIC_DIR,
        log_level="WARNING",
    )


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/messages?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"author": "alice", "content": "hi"}'
    return (
        b"POST /api/messages HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


class RunningServer:
    """A server serving from a background thread, plus a tiny HTTP client."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self.stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def host(self) -> str:
        return self.server.address[0]

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> "RunningServer":
        """Bind, then serve in a background thread."""
        self.server.bind()
        self._thread = threading.Thread(
            target=self.server.serve,
            args=(self.stop_event,),
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_serving(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self):
        """Set the stop token and wait for the drain to finish."""
        self.stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self, timeout: float = 5.0) -> http.client.HTTPConnection:
        return http.client.HTTPConnection(self.host, self.port, timeout=timeout)

    def request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """One request on a fresh connection. Returns (status, headers, body)."""
        conn = self.connect()
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, response.headers, response.read()
        finally:
            conn.close()

    def post_json(self, path: str, payload) -> tuple:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        return self.request("POST", path, body, {"Content-Type": "application/json"})


@pytest.fixture
def running_app(config, store, templates) -> Generator[RunningServer, None, None]:
    """The full guestbook, serving on a free port."""
    running = RunningServer(create_app(config, store=store, templates=templates)).start()

    yield running

    running.stop()


@pytest.fixture
def serve() -> Generator:
    """Factory: start any HTTPServer in the background; all are stopped at teardown."""
    started = []

    def start(server: HTTPServer) -> RunningServer:
        running = RunningServer(server).start()
        started.append(running)
        return running

    yield start

    for running in started:
        running.stop()
