"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket: buffered request reads, per-phase
timeouts, state tracking for the drain logic, and close.

    ┌─────────────┬───────────────────────────────────────────────────────┐
    │  Timeout    │  Applies to                                           │
    ├─────────────┼───────────────────────────────────────────────────────┤
    │  read (10s) │  the first request, counted from when a worker picks  │
    │             │  it up; any later request, from its first byte        │
    │  idle (60s) │  waiting for the first byte of the next request on a  │
    │             │  keep-alive connection                                │
    │  write (15s)│  sending one response                                 │
    └─────────────┴───────────────────────────────────────────────────────┘

    NEW ──first byte──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE
     │                                                            │
     └──────────────────────── idle ◄─────────────────────────────┘
                                                    CLOSING ──► CLOSED

A connection is *idle* while it sits in NEW or KEEP_ALIVE with nothing
buffered and nothing unread on the socket. Only idle connections may be
aborted by the drain; the others are read and answered first, including
one still queued for a worker whose request has already arrived.

=============================================================================
"""

import select
import socket
import threading
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        id: Short identifier used in log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    read_timeout: float = 10.0
    write_timeout: float = 15.0
    idle_timeout: float = 60.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)

    @property
    def is_idle(self) -> bool:
        """
        Between requests with no bytes of the next one received.

        A connection still waiting for a worker is NEW; it only counts as
        idle if the client has not sent anything yet.
        """
        return (
            self.state in (ConnectionState.NEW, ConnectionState.KEEP_ALIVE)
            and not self._buffer
            and not self._input_pending()
        )

    def _input_pending(self) -> bool:
        """Bytes (or EOF) are waiting in the kernel, unread."""
        try:
            readable, _, _ = select.select([self.socket], [], [], 0)
        except (OSError, ValueError):
            # socket already shut down or closed
            return False
        return bool(readable)

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request (headers plus Content-Length body).

        Bytes past the end of the request stay buffered for the next call,
        so pipelined requests are not lost.

        Returns:
            The raw request, or None if the peer closed (or went quiet) before
            sending any part of it.

        Raises:
            TimeoutError: The read deadline passed with a partial request.
            ValueError: The request exceeds max_request_size.
        """
        if self.requests_handled == 0 or self._buffer:
            deadline = time.monotonic() + self.read_timeout
        else:
            deadline = None

        try:
            # The first byte of a keep-alive request may take up to idle_timeout
            if deadline is None:
                chunk = self._recv(self.idle_timeout)
                if not chunk:
                    return None
                self._begin_request(chunk)
                deadline = time.monotonic() + self.read_timeout

            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv(deadline - time.monotonic())
                if not chunk:
                    return self._closed_mid_request()
                self._begin_request(chunk)
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])
            if body_start + content_length > self.max_request_size:
                raise ValueError(f"Request too large: {body_start + content_length} bytes")

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv(deadline - time.monotonic())
                if not chunk:
                    return self._closed_mid_request()
                self._buffer += chunk

        except socket.timeout:
            if self._buffer:
                raise TimeoutError("Request read timeout")
            logger.debug("[%s] Timed out waiting for a request", self.id)
            return None

        request_end = body_start + content_length
        request_data = self._buffer[:request_end]
        self._buffer = self._buffer[request_end:]

        self.state = ConnectionState.PROCESSING
        self.requests_handled += 1
        self.last_activity = time.monotonic()
        return request_data

    def _begin_request(self, chunk: bytes):
        with self._lock:
            self._buffer += chunk
            if self.state in (ConnectionState.NEW, ConnectionState.KEEP_ALIVE):
                self.state = ConnectionState.READING

    def _closed_mid_request(self) -> None:
        if self._buffer:
            logger.debug("[%s] Peer closed with %d bytes of a request buffered", self.id, len(self._buffer))
            self._buffer = b""
        return None

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self, timeout: float) -> bytes:
        """recv() with a timeout; b"" when the peer is gone."""
        if timeout <= 0:
            raise socket.timeout("deadline exceeded")
        try:
            self.socket.settimeout(timeout)
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except OSError as e:
            # reset by peer, or shut down by abort()
            logger.debug("[%s] recv failed: %s", self.id, e)
            return b""
        self.last_activity = time.monotonic()
        return data

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """Content-Length from raw header bytes, 0 if absent or garbled."""
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a full response within write_timeout.

        Returns:
            False if the peer went away or the send timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.settimeout(self.write_timeout)
            self.socket.sendall(data)
        except OSError as e:
            logger.debug("[%s] Send failed: %s", self.id, e)
            return False
        self.last_activity = time.monotonic()
        return True

    def set_keep_alive(self):
        with self._lock:
            if self.state != ConnectionState.CLOSED:
                self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort_if_idle(self) -> bool:
        """
        Shut the socket down if the connection is idle.

        A worker blocked in recv() wakes up with b"" and closes the
        connection itself. Returns True if the connection was aborted.
        """
        with self._lock:
            if not self.is_idle:
                return False
            self._shutdown_socket()
            self.state = ConnectionState.CLOSING
            return True

    def abort(self):
        """Shut the socket down regardless of state."""
        with self._lock:
            self._shutdown_socket()
            if self.state != ConnectionState.CLOSED:
                self.state = ConnectionState.CLOSING

    def _shutdown_socket(self):
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already disconnected
            pass

    def close(self):
        """
        Close the connection.

        Sends FIN, discards whatever the client still has in flight (briefly),
        then releases the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            # peer already gone or socket aborted
            pass

        self.socket.close()
        self.state = ConnectionState.CLOSED
        logger.debug("[%s] Connection closed after %d requests", self.id, self.requests_handled)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
