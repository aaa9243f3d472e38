"""
Unit tests for the readers-writer lock.
"""

import threading
import time

import pytest

from guestbook.core.rwlock import ReadWriteLock


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(3, timeout=2.0)

        def reader():
            with lock.read_locked():
                # all three must be inside at once to pass the barrier
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        with lock.read_locked():
            inside.wait()
        for t in threads:
            t.join(timeout=2.0)

        assert lock.readers == 0

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        entered = threading.Event()

        lock.acquire_write()
        assert lock.write_held

        def reader():
            with lock.read_locked():
                entered.set()

        t = threading.Thread(target=reader)
        t.start()

        assert not entered.wait(0.1)
        lock.release_write()
        assert entered.wait(2.0)
        t.join(timeout=2.0)

    def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        order = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                order.append("writer")

        def late_reader():
            with lock.read_locked():
                order.append("reader")

        w = threading.Thread(target=writer)
        w.start()
        # let the writer queue up behind the held read lock
        time.sleep(0.1)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.1)

        assert order == []
        lock.release_read()
        w.join(timeout=2.0)
        r.join(timeout=2.0)

        assert order == ["writer", "reader"]

    def test_unmatched_release_read(self):
        with pytest.raises(RuntimeError):
            ReadWriteLock().release_read()

    def test_unmatched_release_write(self):
        with pytest.raises(RuntimeError):
            ReadWriteLock().release_write()

    def test_context_manager_releases_on_error(self):
        lock = ReadWriteLock()

        with pytest.raises(KeyError):
            with lock.write_locked():
                raise KeyError("boom")

        assert not lock.write_held
        with lock.read_locked():
            assert lock.readers == 1
