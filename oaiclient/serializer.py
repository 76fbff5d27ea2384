"""
Execution serializer.

All result deliveries go through one FIFO queue drained by one worker thread,
so callbacks for a streaming session never run concurrently or out of order,
and a late cancellation cannot race a frame delivery on the caller's state.
Submitting never blocks the submitting (I/O) thread.

Work submitted with an `owner` handle is dropped when dequeued if the owner has
been cancelled by then.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import Protocol

from .cancellation import CancellableRequest

logger = logging.getLogger(__name__)

Work = Callable[[], None]


class ExecutionSerializer(Protocol):
    def submit(self, work: Work, *, owner: CancellableRequest | None = None) -> None: ...


def _run(work: Work) -> None:
    try:
        work()
    except Exception:
        logger.exception("Result callback raised; continuing with the next delivery")


class InlineExecutionSerializer:
    """Runs work immediately on the submitting thread, under a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def submit(self, work: Work, *, owner: CancellableRequest | None = None) -> None:
        with self._lock:
            if owner is not None and owner.is_cancelled:
                return
            _run(work)


class QueueExecutionSerializer:
    """FIFO queue with one daemon worker thread, started lazily."""

    def __init__(self, *, name: str = "oaiclient-serializer") -> None:
        self._name = name
        self._queue: queue.SimpleQueue[tuple[Work, CancellableRequest | None] | None] = (
            queue.SimpleQueue()
        )
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stopped = False

    def _ensure_worker(self) -> None:
        if self._thread is not None:
            return
        with self._lock:
            if self._thread is None:
                thread = threading.Thread(target=self._drain, name=self._name, daemon=True)
                thread.start()
                self._thread = thread

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            work, owner = item
            if owner is not None and owner.is_cancelled:
                continue
            _run(work)

    @property
    def on_worker_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def submit(self, work: Work, *, owner: CancellableRequest | None = None) -> None:
        if self._stopped:
            raise RuntimeError("ExecutionSerializer has been shut down")
        self._ensure_worker()
        self._queue.put((work, owner))

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until everything submitted before this call has run."""
        if self.on_worker_thread:
            raise RuntimeError("flush() cannot be called from a delivery callback")
        done = threading.Event()
        self.submit(done.set)
        return done.wait(timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            thread = self._thread
        if thread is None:
            return
        self._queue.put(None)
        if wait and not self.on_worker_thread:
            thread.join()


_default_lock = threading.Lock()
_default: QueueExecutionSerializer | None = None


def default_serializer() -> QueueExecutionSerializer:
    """The process-wide delivery queue shared by every client."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = QueueExecutionSerializer()
    return _default
