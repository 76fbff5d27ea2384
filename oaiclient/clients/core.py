"""
Shared execution core.

Every facade delegates here. The core owns the single implementation of
middleware application, transport calls, decoding, stream framing, ordered
delivery and cancellation. Facades only translate its callbacks into their
own idiom.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from ..cancellation import CancellableRequest
from ..configuration import Configuration
from ..decoder import ResponseDecoder, ResponseModel
from ..exceptions import ClientClosedError, OpenAIClientError, RequestCancelledError
from ..result import Failure, Result
from ..serializer import ExecutionSerializer, default_serializer
from ..streaming.interpreter import BytesStreamInterpreter, SSEStreamInterpreter
from ..streaming.session import (
    CompletionCallback,
    InterpreterFactory,
    ResultCallback,
    StreamingSession,
)
from ..transport import StreamConnection, Transport
from .pipeline import Middleware, MiddlewarePipeline, RequestDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 16


class ExecutionCore:
    """
    Runs calls on I/O worker threads and delivers results through the serializer.

    Args:
        configuration: Shared, immutable client configuration.
        transport: Network transport; not closed by the core unless `owns_transport`.
        middlewares: Interceptors, applied in list order both before send and after receive.
        serializer: Delivery queue. Defaults to the process-wide one.
        max_workers: Size of the I/O worker pool. A streaming call holds a worker
            for as long as its connection stays open.
    """

    def __init__(
        self,
        configuration: Configuration,
        transport: Transport,
        *,
        middlewares: Sequence[Middleware] = (),
        serializer: ExecutionSerializer | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        owns_transport: bool = False,
    ) -> None:
        self.configuration = configuration
        self.transport = transport
        self.pipeline = MiddlewarePipeline(middlewares)
        self.decoder = ResponseDecoder(configuration.parsing_options)
        self.serializer: ExecutionSerializer = serializer or default_serializer()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="oaiclient-io"
        )
        self._owns_transport = owns_transport
        self._lock = threading.Lock()
        self._closed = False
        # Calls submitted but not yet picked up by a worker, with their failure path.
        self._pending: dict[CancellableRequest, Callable[[OpenAIClientError], None]] = {}

    # ------------------------------------------------------------------
    # One-shot calls
    # ------------------------------------------------------------------

    def perform(
        self,
        request: RequestDescriptor,
        model: ResponseModel,
        completion: Callable[[Result[Any]], None],
        *,
        report_cancellation: bool = False,
    ) -> CancellableRequest:
        """Send `request` and deliver one decoded `Result` to `completion`."""

        def _report(report: bool) -> None:
            if report or report_cancellation:
                self.serializer.submit(lambda: completion(Failure(RequestCancelledError())))

        handle = CancellableRequest(on_cancel=_report)

        def _deliver(result: Result[Any]) -> None:
            def _finish() -> None:
                if handle.complete():
                    completion(result)

            self.serializer.submit(_finish, owner=handle)

        def _work() -> None:
            if not handle.is_active:
                return
            try:
                prepared = self.pipeline.prepare(request)
                response = self.transport.send(prepared, bind=handle.bind)
            except OpenAIClientError as e:
                if handle.is_active:
                    _deliver(Failure(e))
                return
            except Exception as e:
                logger.exception("Unexpected error while sending request")
                _deliver(Failure(_unexpected(e)))
                return
            if not handle.is_active:
                return
            try:
                result = self.decoder.decode(self.pipeline.handle(response), model)
            except Exception as e:
                logger.exception("Unexpected error while handling response")
                result = Failure(_unexpected(e))
            logger.debug(
                "%s %s -> %s", prepared.method, prepared.url, response.status_code
            )
            _deliver(result)

        self._submit(handle, _work, lambda error: _deliver(Failure(error)))
        return handle

    # ------------------------------------------------------------------
    # Streaming calls
    # ------------------------------------------------------------------

    def perform_streaming(
        self,
        request: RequestDescriptor,
        *,
        interpreter_factory: InterpreterFactory,
        on_result: ResultCallback,
        completion: CompletionCallback | None,
        report_cancellation: bool = False,
    ) -> CancellableRequest:
        """Open a streaming call; frames go to `on_result`, the terminal signal to `completion`."""

        def _report(report: bool) -> None:
            if (report or report_cancellation) and completion is not None:
                self.serializer.submit(lambda: completion(RequestCancelledError()))

        handle = CancellableRequest(on_cancel=_report)
        session = StreamingSession(
            request=request,
            transport=self.transport,
            pipeline=self.pipeline,
            serializer=self.serializer,
            handle=handle,
            interpreter_factory=interpreter_factory,
            on_result=on_result,
            completion=completion,
        )

        def _work() -> None:
            try:
                session.run()
            except Exception as e:
                logger.exception("Unexpected error in streaming session")
                session.terminate(_unexpected(e))

        self._submit(handle, _work, session.terminate)
        return handle

    def sse_interpreter(self, request: RequestDescriptor, model: ResponseModel) -> InterpreterFactory:
        def _factory(connection: StreamConnection) -> SSEStreamInterpreter:
            return SSEStreamInterpreter(
                request=request,
                model=model,
                pipeline=self.pipeline,
                decoder=self.decoder,
                policy=self.configuration.stream_error_policy,
                status_code=connection.status_code,
                content_type=connection.header("content-type"),
            )

        return _factory

    def bytes_interpreter(
        self, request: RequestDescriptor, wrap: Callable[[bytes], Any] | None = None
    ) -> InterpreterFactory:
        def _factory(connection: StreamConnection) -> BytesStreamInterpreter:
            return BytesStreamInterpreter(request=request, pipeline=self.pipeline, wrap=wrap)

        return _factory

    # ------------------------------------------------------------------

    def _submit(
        self,
        handle: CancellableRequest,
        work: Callable[[], None],
        fail: Callable[[OpenAIClientError], None],
    ) -> None:
        """
        Queue `work` for an I/O worker.

        `fail` is the call's terminal failure path. It is used instead of `work`
        when the core is already closed, or closes before a worker picks the call up.
        """

        def _start() -> None:
            with self._lock:
                if self._pending.pop(handle, None) is None:
                    return
            work()

        def _forget(future: Future[None]) -> None:
            if future.cancelled():
                with self._lock:
                    self._pending.pop(handle, None)

        with self._lock:
            closed = self._closed
            if not closed:
                self._pending[handle] = fail
                future = self._executor.submit(_start)
        if closed:
            logger.debug("call rejected: client is closed")
            fail(ClientClosedError())
            return
        future.add_done_callback(_forget)
        handle.bind_future(future.cancel)

    def close(self, *, wait: bool = False) -> None:
        """
        Stop accepting calls and release worker threads (and the transport, if owned).

        Calls still waiting for a worker end with `ClientClosedError`; calls
        already running finish normally. With `wait=True`, block until running
        I/O work has returned.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            abandoned = list(self._pending.values())
            self._pending.clear()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        if abandoned:
            logger.debug("closing with %d queued call(s)", len(abandoned))
        for fail in abandoned:
            fail(ClientClosedError())
        if self._owns_transport:
            self.transport.close()


def _unexpected(exc: Exception) -> OpenAIClientError:
    error = OpenAIClientError(f"Unexpected error: {exc}")
    error.__cause__ = exc
    return error
