"""
Reactive-stream facade.

`Observable` is cold: each `subscribe()` starts one call. A one-shot call emits
its value then completes; a streaming call emits one value per frame then
completes. The first error terminates the observable and cancels the call.
Callbacks run on the delivery queue, so an observer never sees concurrent
emissions.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ..cancellation import CancellableRequest
from ..decoder import ResponseModel
from ..exceptions import OpenAIClientError
from ..result import Failure, Result
from .callback import Client
from .pipeline import RequestDescriptor
from .streaming import StreamingClient

T = TypeVar("T")

OnNext = Callable[[Any], None]
OnError = Callable[[OpenAIClientError], None]
OnCompleted = Callable[[], None]


def _ignore(*_: Any) -> None:
    return None


class Subscription:
    """Returned by `Observable.subscribe`; `dispose()` cancels the underlying call."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handle: CancellableRequest | None = None
        self._disposed = False
        self._terminated = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _attach(self, handle: CancellableRequest) -> None:
        with self._lock:
            self._handle = handle
            disposed = self._disposed
        if disposed:
            handle.cancel()

    def _terminate(self) -> bool:
        """Mark the stream terminated; False if it already was (or was disposed)."""
        with self._lock:
            if self._terminated or self._disposed:
                return False
            self._terminated = True
            return True

    def _is_open(self) -> bool:
        return not (self._terminated or self._disposed)

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            handle = self._handle
        if handle is not None:
            handle.cancel()


class _Emitter:
    """Routes core callbacks to one observer, enforcing at most one terminal event."""

    def __init__(
        self,
        subscription: Subscription,
        on_next: OnNext,
        on_error: OnError,
        on_completed: OnCompleted,
    ) -> None:
        self._subscription = subscription
        self._on_next = on_next
        self._on_error = on_error
        self._on_completed = on_completed

    def next(self, value: Any) -> None:
        if self._subscription._is_open():
            self._on_next(value)

    def error(self, error: OpenAIClientError) -> None:
        if self._subscription._terminate():
            handle = self._subscription._handle
            if handle is not None:
                handle.cancel()
            self._on_error(error)

    def completed(self) -> None:
        if self._subscription._terminate():
            self._on_completed()

    def result(self, result: Result[Any]) -> None:
        if isinstance(result, Failure):
            self.error(result.error)
        else:
            self.next(result.value)


class Observable(Generic[T]):
    def __init__(self, start: Callable[[_Emitter], CancellableRequest]) -> None:
        self._start = start

    def subscribe(
        self,
        on_next: OnNext | None = None,
        on_error: OnError | None = None,
        on_completed: OnCompleted | None = None,
    ) -> Subscription:
        subscription = Subscription()
        emitter = _Emitter(
            subscription,
            on_next or _ignore,
            on_error or _ignore,
            on_completed or _ignore,
        )
        subscription._attach(self._start(emitter))
        return subscription


class ReactiveClient:
    def __init__(self, client: Client, streaming: StreamingClient) -> None:
        self._client = client
        self._streaming = streaming

    def perform_request(self, request: RequestDescriptor, model: ResponseModel) -> Observable[Any]:
        def _start(emitter: _Emitter) -> CancellableRequest:
            def completion(result: Result[Any]) -> None:
                emitter.result(result)
                if not isinstance(result, Failure):
                    emitter.completed()

            return self._client.perform_request(request, model, completion)

        return Observable(_start)

    def perform_streaming_request(
        self, request: RequestDescriptor, model: ResponseModel
    ) -> Observable[Any]:
        def _start(emitter: _Emitter) -> CancellableRequest:
            return self._streaming.perform_streaming_request(
                request, model, emitter.result, _completion_for(emitter)
            )

        return Observable(_start)

    def perform_bytes_streaming_request(
        self,
        request: RequestDescriptor,
        *,
        wrap: Callable[[bytes], Any] | None = None,
    ) -> Observable[Any]:
        def _start(emitter: _Emitter) -> CancellableRequest:
            return self._streaming.perform_bytes_streaming_request(
                request, emitter.result, _completion_for(emitter), wrap=wrap
            )

        return Observable(_start)


def _completion_for(emitter: _Emitter) -> Callable[[OpenAIClientError | None], None]:
    def completion(error: OpenAIClientError | None) -> None:
        if error is None:
            emitter.completed()
        else:
            emitter.error(error)

    return completion
