"""
=============================================================================
READERS-WRITER LOCK
=============================================================================

Many readers or one writer, never both.

    readers  ████████░░░░░░░░████████
    writer   ░░░░░░░░████░░░░░░░░░░░░
                     ▲
                     a waiting writer stops new readers from entering,
                     so a steady stream of reads cannot starve it

Built on a single threading.Condition:

    with lock.read_locked():     # shared
        ...
    with lock.write_locked():    # exclusive
        ...

Not reentrant: a thread holding the read side must not ask for the write
side (it would wait for itself).

=============================================================================
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Writer-preferring readers-writer lock."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            if self._readers == 0:
                raise RuntimeError("release_read() without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Threads currently holding the read side (diagnostics only)."""
        return self._readers

    @property
    def write_held(self) -> bool:
        return self._writer
