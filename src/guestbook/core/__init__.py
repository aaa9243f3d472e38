"""
Networking and concurrency primitives: the TCP listener, the per-client
Connection, the worker pool, and the readers-writer lock guarding the
message store.
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool
from .rwlock import ReadWriteLock

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
    "ReadWriteLock",
]
