"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads fed from a bounded queue. The server submits one task per
accepted connection; a worker owns that connection until it closes.

    accept() ──► submit(handle, conn) ──► [ queue (bounded) ] ──► worker-0
                         │                                   ├──► worker-1
                         │ queue full                        └──► ...
                         ▼
                  False → caller answers 503

Sizing:

    min_workers   started up front, always running
    max_workers   ceiling; one more worker is added whenever every worker
                  is busy and tasks are waiting
    queue_size    pending connections before submit() starts refusing

Shutdown sets a stop flag and puts one ``None`` (poison pill) per worker on
the queue; a worker exits at its next pill or poll. A task already running
finishes. Tasks still queued are dropped unless ``shutdown(wait=True)``
ran them first.

=============================================================================
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, List, NamedTuple, Optional


logger = logging.getLogger(__name__)


class Task(NamedTuple):
    """A deferred call: ``func(*args, **kwargs)``."""

    func: Callable[..., Any]
    args: tuple
    kwargs: dict
    queued_at: float

    def run(self) -> None:
        self.func(*self.args, **self.kwargs)


class ThreadPool:
    """
    Fixed-floor, capped-ceiling pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=64, queue_size=100)
        pool.start()
        if not pool.submit(handle_connection, args=(conn,)):
            reject(conn)
        ...
        pool.shutdown(wait=False, timeout=5.0)

    A task that raises is logged with its traceback; its worker carries on.
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 64, queue_size: int = 100,
                 poll_interval: float = 1.0):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("need 1 <= min_workers <= max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.poll_interval = poll_interval

        self._queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._busy = 0
        self._spawned = 0
        self._running = False
        self._stopping = threading.Event()

    # =========================================================================
    # WORKERS
    # =========================================================================

    def _spawn(self) -> None:
        # caller holds self._lock
        thread = threading.Thread(
            target=self._work,
            name=f"guestbook-worker-{self._spawned}",
            daemon=True,
        )
        self._spawned += 1
        self._threads.append(thread)
        thread.start()

    def _work(self) -> None:
        name = threading.current_thread().name
        logger.debug("%s started", name)

        while not self._stopping.is_set():
            try:
                task = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            try:
                if task is None:
                    break
                self._run(name, task)
            finally:
                self._queue.task_done()

        logger.debug("%s stopped", name)

    def _run(self, name: str, task: Task) -> None:
        with self._lock:
            self._busy += 1
        started = time.monotonic()
        try:
            task.run()
        except Exception:
            logger.exception("%s: task failed after %.3fs", name, time.monotonic() - started)
        else:
            logger.debug("%s: task done in %.3fs (waited %.3fs)",
                         name, time.monotonic() - started, started - task.queued_at)
        finally:
            with self._lock:
                self._busy -= 1

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            logger.info("Starting %d workers (max %d)", self.min_workers, self.max_workers)
            self._stopping.clear()
            for _ in range(self.min_workers):
                self._spawn()
            self._running = True

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue ``func(*args, **kwargs)`` without blocking.

        Returns False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running or self._stopping.is_set():
            raise RuntimeError("Thread pool is not running")

        try:
            self._queue.put_nowait(Task(func, args, kwargs or {}, time.monotonic()))
        except queue.Full:
            return False

        with self._lock:
            everyone_busy = self._busy >= len(self._threads)
            if everyone_busy and len(self._threads) < self.max_workers and not self._queue.empty():
                logger.debug("Adding worker %d", len(self._threads) + 1)
                self._spawn()
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the pool.

        ``wait`` lets queued tasks finish before the workers are told to
        exit. ``timeout`` bounds both that wait and joining the workers.
        """
        if not self._running:
            return

        logger.info("Shutting down worker pool")
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining() -> Optional[float]:
            return None if deadline is None else max(0.0, deadline - time.monotonic())

        if wait:
            while self._queue.unfinished_tasks:
                if remaining() == 0.0:
                    logger.warning("Worker pool shutdown timed out with tasks pending")
                    break
                time.sleep(0.05)

        self._stopping.set()
        with self._lock:
            threads, self._threads = self._threads, []
            self._running = False

        for _ in threads:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                # workers still see _stopping on their next poll
                break

        for thread in threads:
            thread.join(timeout=remaining())
            if thread.is_alive():
                logger.warning("%s did not exit in time", thread.name)

        logger.info("Worker pool stopped")

    @property
    def worker_count(self) -> int:
        return len(self._threads)
