"""
Async/await facade.

Built on the callback and streaming facades: a call suspends the awaiting task
until the completion fires on the delivery queue, then resumes it on its own
event loop. Cancelling the awaiting task cancels the underlying request.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from typing import Any

from ..decoder import ResponseModel
from ..exceptions import OpenAIClientError
from ..result import Failure, Result, Success
from .callback import Client
from .pipeline import RequestDescriptor
from .streaming import StreamingClient

_END = object()


def _post(loop: asyncio.AbstractEventLoop, fn: Callable[..., Any], *args: Any) -> None:
    # The loop may already be closed if the awaiting side went away.
    with suppress(RuntimeError):
        loop.call_soon_threadsafe(fn, *args)


def _resolve(future: asyncio.Future[Result[Any]], result: Result[Any]) -> None:
    if not future.done():
        future.set_result(result)


class AsyncClient:
    def __init__(self, client: Client, streaming: StreamingClient) -> None:
        self._client = client
        self._streaming = streaming

    async def perform_request(self, request: RequestDescriptor, model: ResponseModel) -> Any:
        """
        Await one call.

        Returns:
            The decoded value.

        Raises:
            OpenAIClientError: The typed error of a failed call.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Result[Any]] = loop.create_future()
        handle = self._client.perform_request(
            request, model, lambda result: _post(loop, _resolve, future, result)
        )
        try:
            result = await future
        except asyncio.CancelledError:
            handle.cancel()
            raise
        return result.unwrap()

    async def perform_streaming_request(
        self, request: RequestDescriptor, model: ResponseModel
    ) -> AsyncIterator[Any]:
        """
        Iterate decoded frames.

        The request starts on the first iteration. Any failure (a per-frame failure
        included) is raised and ends iteration. Leaving the loop early, or closing
        the iterator, cancels the request.
        """
        async for value in self._iterate(
            lambda on_result, completion: self._streaming.perform_streaming_request(
                request, model, on_result, completion
            )
        ):
            yield value

    async def perform_bytes_streaming_request(
        self,
        request: RequestDescriptor,
        *,
        wrap: Callable[[bytes], Any] | None = None,
    ) -> AsyncIterator[Any]:
        async for value in self._iterate(
            lambda on_result, completion: self._streaming.perform_bytes_streaming_request(
                request, on_result, completion, wrap=wrap
            )
        ):
            yield value

    async def _iterate(self, start: Callable[..., Any]) -> AsyncIterator[Any]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Any] = asyncio.Queue()

        def on_result(result: Result[Any]) -> None:
            _post(loop, queue.put_nowait, result)

        def completion(error: OpenAIClientError | None) -> None:
            _post(loop, queue.put_nowait, error if error is not None else _END)

        handle = start(on_result, completion)
        try:
            while True:
                item = await queue.get()
                if item is _END:
                    return
                if isinstance(item, OpenAIClientError):
                    raise item
                if isinstance(item, Failure):
                    raise item.error
                if isinstance(item, Success):
                    yield item.value
        finally:
            handle.cancel()
