"""Blocking-callback facade: one completion callable, invoked exactly once."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..cancellation import CancellableRequest, NoOpCancellableRequest
from ..decoder import ResponseModel
from ..exceptions import OpenAIClientError
from ..result import Failure, Result
from .core import ExecutionCore
from .pipeline import RequestDescriptor


class Client:
    """
    Returns immediately with a handle; the result arrives later on the delivery queue.

    Args:
        core: The shared execution core.
        report_cancellation: Deliver `Failure(RequestCancelledError)` when a call is
            cancelled instead of staying silent.
    """

    def __init__(self, core: ExecutionCore, *, report_cancellation: bool = False) -> None:
        self._core = core
        self._report_cancellation = report_cancellation

    @property
    def core(self) -> ExecutionCore:
        return self._core

    def perform_request(
        self,
        request: RequestDescriptor,
        model: ResponseModel,
        completion: Callable[[Result[Any]], None],
    ) -> CancellableRequest:
        return self._core.perform(
            request,
            model,
            completion,
            report_cancellation=self._report_cancellation,
        )

    def reject(
        self, error: OpenAIClientError, completion: Callable[[Result[Any]], None]
    ) -> CancellableRequest:
        """Deliver `Failure(error)` on the delivery queue without sending anything."""
        self._core.serializer.submit(lambda: completion(Failure(error)))
        return NoOpCancellableRequest()
