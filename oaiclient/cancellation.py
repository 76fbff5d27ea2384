"""
Cancellable request handles.

A handle moves from ACTIVE to exactly one of CANCELLED or COMPLETED. Transitions
are compare-and-swap under a lock, so `cancel()` may be called from any thread,
any number of times, at any point of the call's life.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class RequestState(Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Closeable(Protocol):
    def close(self) -> None: ...


class CancellableRequest:
    """
    Caller-held token for one in-flight call.

    The handle owns at most one transport resource (an open connection, or a
    pending worker future). Cancelling releases it; cancelling after completion
    is a no-op.
    """

    def __init__(self, *, on_cancel: Callable[[bool], None] | None = None) -> None:
        self._lock = threading.Lock()
        self._state = RequestState.ACTIVE
        self._resource: Closeable | None = None
        self._future_cancel: Callable[[], object] | None = None
        self._on_cancel = on_cancel

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def is_cancelled(self) -> bool:
        return self._state is RequestState.CANCELLED

    @property
    def is_active(self) -> bool:
        return self._state is RequestState.ACTIVE

    def cancel(self, *, report: bool = False) -> bool:
        """
        Cancel the call.

        Args:
            report: Deliver a `RequestCancelledError` as the terminal signal instead of
                staying silent.

        Returns:
            True if this call performed the transition, False if the handle was
            already cancelled or completed.
        """
        with self._lock:
            if self._state is not RequestState.ACTIVE:
                return False
            self._state = RequestState.CANCELLED
            resource, self._resource = self._resource, None
            future_cancel, self._future_cancel = self._future_cancel, None
            on_cancel = self._on_cancel
        logger.debug("request cancelled")
        if future_cancel is not None:
            future_cancel()
        if resource is not None:
            resource.close()
        if on_cancel is not None:
            on_cancel(report)
        return True

    def complete(self) -> bool:
        """Mark the call finished. Returns False if it was already cancelled or completed."""
        with self._lock:
            if self._state is not RequestState.ACTIVE:
                return False
            self._state = RequestState.COMPLETED
            self._resource = None
            self._future_cancel = None
            return True

    def bind(self, resource: Closeable) -> None:
        """Attach the transport resource; closes it at once if already cancelled."""
        with self._lock:
            if self._state is RequestState.ACTIVE:
                self._resource = resource
                return
        resource.close()

    def bind_future(self, cancel: Callable[[], object]) -> None:
        with self._lock:
            if self._state is RequestState.ACTIVE:
                self._future_cancel = cancel
                return
        cancel()

    def __repr__(self) -> str:
        return f"CancellableRequest(state={self._state.value})"


class NoOpCancellableRequest(CancellableRequest):
    """Returned when a call fails before any transport work starts."""

    def __init__(self) -> None:
        super().__init__()
        self._state = RequestState.COMPLETED
