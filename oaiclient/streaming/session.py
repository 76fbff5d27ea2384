"""
Streaming session: one open connection, its framing state, and its result sinks.

`run()` executes on an I/O worker thread. Decoded frames and the single terminal
signal are handed to the execution serializer, which delivers them to the
caller in arrival order. Whether the terminal signal is delivered is decided at
delivery time, so a cancellation that lands while frames are still queued stops
everything behind it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..cancellation import CancellableRequest
from ..clients.pipeline import MiddlewarePipeline, RawResponse, RequestDescriptor
from ..decoder import api_error_from_response
from ..exceptions import OpenAIClientError, TransportError
from ..result import Result
from ..serializer import ExecutionSerializer
from ..transport import StreamConnection, Transport
from .interpreter import FrameDecoded, StreamFinished, StreamInterpreter, StreamItem

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Result[Any]], None]
CompletionCallback = Callable[[OpenAIClientError | None], None]
InterpreterFactory = Callable[[StreamConnection], StreamInterpreter]


class StreamingSession:
    def __init__(
        self,
        *,
        request: RequestDescriptor,
        transport: Transport,
        pipeline: MiddlewarePipeline,
        serializer: ExecutionSerializer,
        handle: CancellableRequest,
        interpreter_factory: InterpreterFactory,
        on_result: ResultCallback,
        completion: CompletionCallback | None,
    ) -> None:
        self._request = request
        self._transport = transport
        self._pipeline = pipeline
        self._serializer = serializer
        self._handle = handle
        self._interpreter_factory = interpreter_factory
        self._on_result = on_result
        self._completion = completion
        self._terminal_submitted = False

    @property
    def handle(self) -> CancellableRequest:
        return self._handle

    def run(self) -> None:
        if not self._handle.is_active:
            return
        try:
            request = self._pipeline.prepare(self._request)
            connection = self._transport.open_stream(request)
        except OpenAIClientError as e:
            self.terminate(e)
            return
        self._handle.bind(connection)
        logger.debug("stream opened: %s %s -> %s", request.method, request.url, connection.status_code)
        try:
            self._consume(request, connection)
        except TransportError as e:
            if self._handle.is_cancelled:
                return
            self.terminate(e)
        finally:
            connection.close()

    def _consume(self, request: RequestDescriptor, connection: StreamConnection) -> None:
        if not 200 <= connection.status_code < 300:
            raw = RawResponse(
                status_code=connection.status_code,
                headers=connection.headers,
                content=connection.read(),
                request=request,
            )
            if self._handle.is_cancelled:
                return
            raw = self._pipeline.handle(raw)
            if not raw.is_success:
                self.terminate(api_error_from_response(raw))
                return
            # A middleware turned the error into a success: interpret the body instead.
            interpreter = self._interpreter_factory(connection)
            self._dispatch(interpreter.process(raw.content))
            self._dispatch(interpreter.finish())
            return

        interpreter = self._interpreter_factory(connection)
        for chunk in connection.iter_bytes():
            if not self._handle.is_active:
                return
            self._dispatch(interpreter.process(chunk))
            if interpreter.finished:
                return
        if self._handle.is_active:
            self._dispatch(interpreter.finish())

    def _dispatch(self, items: list[StreamItem]) -> None:
        for item in items:
            if isinstance(item, FrameDecoded):
                self._deliver(item.result)
            elif isinstance(item, StreamFinished):
                self.terminate(item.error)
                return

    def _deliver(self, result: Result[Any]) -> None:
        on_result = self._on_result
        self._serializer.submit(lambda: on_result(result), owner=self._handle)

    def terminate(self, error: OpenAIClientError | None) -> None:
        if self._terminal_submitted:
            return
        self._terminal_submitted = True
        handle = self._handle
        completion = self._completion

        def _finish() -> None:
            if not handle.complete():
                return
            if error is not None:
                logger.debug("stream finished with %s", type(error).__name__)
            if completion is not None:
                completion(error)

        self._serializer.submit(_finish, owner=handle)
