"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP listener. Binds, listens, and hands every accepted client socket
(wrapped in a Connection) to a callback until a stop token is set.

    bind()           socket() → setsockopt() → bind() → listen()
      │
    accept_loop(on_connection, stop_event)
      │   while not stop_event.is_set():
      │       accept()            ← wakes at least once a second
      │       on_connection(Connection(...))
      ▼
    close()          listener closed; established connections untouched

accept() uses a one-second socket timeout so a stop request is noticed
promptly without a self-pipe or select().

=============================================================================
"""

import socket
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP listener.

        server = SocketServer(config)
        server.bind()
        server.accept_loop(handle_connection, stop_event)   # blocks
        server.close()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when the config asked for 0."""
        if self._address is not None:
            return self._address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Restart without waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Bind and start listening.

        Raises:
            OSError: If the address is unavailable.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error("Failed to bind to %s:%s: %s", self.config.host, self.config.port, e)
            raise

        self._socket = sock
        self._address = sock.getsockname()[:2]
        logger.info("Listening on %s:%d", *self._address)
        return self._address

    def accept_loop(
        self,
        on_connection: Callable[[Connection], None],
        stop_event: threading.Event,
    ) -> None:
        """
        Accept connections until ``stop_event`` is set.

        ``on_connection`` runs on this thread and must not block; the HTTP
        server just queues the connection for a worker.
        """
        if self._socket is None:
            raise RuntimeError("SocketServer.bind() must be called first")

        while not stop_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not stop_event.is_set():
                    logger.error("Accept error: %s", e)
                break

            logger.debug("Accepted connection from %s:%s", *client_address[:2])
            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
                idle_timeout=self.config.idle_timeout,
                max_request_size=self.config.max_request_size,
            )
            on_connection(conn)

    def close(self):
        """Stop listening. New connection attempts are refused from here on."""
        if self._socket is None:
            return
        try:
            self._socket.close()
        finally:
            self._socket = None
        logger.info("Listener closed")
