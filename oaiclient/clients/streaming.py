"""Raw streaming-callback facade: per-frame `on_result` plus a terminal `completion`."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..cancellation import CancellableRequest
from ..decoder import ResponseModel
from ..streaming.session import CompletionCallback, ResultCallback
from .core import ExecutionCore
from .pipeline import RequestDescriptor


class StreamingClient:
    """
    `completion` is called once with None on clean end (`[DONE]`), or with the
    terminal error. Neither callback fires after a silent cancellation.
    """

    def __init__(self, core: ExecutionCore, *, report_cancellation: bool = False) -> None:
        self._core = core
        self._report_cancellation = report_cancellation

    @property
    def core(self) -> ExecutionCore:
        return self._core

    def perform_streaming_request(
        self,
        request: RequestDescriptor,
        model: ResponseModel,
        on_result: ResultCallback,
        completion: CompletionCallback | None = None,
    ) -> CancellableRequest:
        """Stream server-sent events, decoding each `data:` frame as `model`."""
        return self._core.perform_streaming(
            request,
            interpreter_factory=self._core.sse_interpreter(request, model),
            on_result=on_result,
            completion=completion,
            report_cancellation=self._report_cancellation,
        )

    def perform_bytes_streaming_request(
        self,
        request: RequestDescriptor,
        on_result: ResultCallback,
        completion: CompletionCallback | None = None,
        *,
        wrap: Callable[[bytes], Any] | None = None,
    ) -> CancellableRequest:
        """Stream raw body chunks (e.g. audio), optionally wrapped into a result type."""
        return self._core.perform_streaming(
            request,
            interpreter_factory=self._core.bytes_interpreter(request, wrap),
            on_result=on_result,
            completion=completion,
            report_cancellation=self._report_cancellation,
        )
