"""
Chat completion service.

`create` always sends a non-streaming query and `stream` a streaming one,
whatever `query.stream` says.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING

from ..builders import json_request
from ..clients.pipeline import RequestDescriptor
from ..configuration import Configuration
from ..models.chat import ChatQuery, ChatResult, ChatStreamResult
from ..result import Result
from ..urls import APIPath, build_url

if TYPE_CHECKING:
    from ..cancellation import CancellableRequest
    from ..clients.async_client import AsyncClient
    from ..clients.callback import Client
    from ..clients.reactive import Observable, ReactiveClient
    from ..clients.streaming import StreamingClient
    from ..exceptions import OpenAIClientError


def chats_request(configuration: Configuration, query: ChatQuery) -> RequestDescriptor:
    return json_request(
        configuration,
        build_url(configuration, APIPath.CHATS),
        body=query.make_non_streamable(),
    )


def chats_stream_request(configuration: Configuration, query: ChatQuery) -> RequestDescriptor:
    return json_request(
        configuration,
        build_url(configuration, APIPath.CHATS),
        body=query.make_streamable(),
        stream=True,
    )


class ChatService:
    def __init__(self, client: Client, streaming: StreamingClient):
        self._client = client
        self._streaming = streaming
        self._configuration = client.core.configuration

    def create(
        self,
        query: ChatQuery,
        completion: Callable[[Result[ChatResult]], None],
    ) -> CancellableRequest:
        return self._client.perform_request(
            chats_request(self._configuration, query), ChatResult, completion
        )

    def stream(
        self,
        query: ChatQuery,
        on_result: Callable[[Result[ChatStreamResult]], None],
        completion: Callable[[OpenAIClientError | None], None] | None = None,
    ) -> CancellableRequest:
        """
        Stream chat completion chunks.

        Example:
            ```python
            handle = client.chats.stream(
                query,
                on_result=lambda r: print(r.unwrap().choices[0].delta.content or ""),
                completion=lambda error: print("done", error),
            )
            ```
        """
        return self._streaming.perform_streaming_request(
            chats_stream_request(self._configuration, query),
            ChatStreamResult,
            on_result,
            completion,
        )


class AsyncChatService:
    def __init__(self, client: AsyncClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    async def create(self, query: ChatQuery) -> ChatResult:
        return await self._client.perform_request(
            chats_request(self._configuration, query), ChatResult
        )

    def stream(self, query: ChatQuery) -> AsyncIterator[ChatStreamResult]:
        """
        Iterate chat completion chunks.

        Example:
            ```python
            async for chunk in client.chats.stream(query):
                print(chunk.choices[0].delta.content or "", end="")
            ```
        """
        return self._client.perform_streaming_request(
            chats_stream_request(self._configuration, query), ChatStreamResult
        )


class ReactiveChatService:
    def __init__(self, client: ReactiveClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    def create(self, query: ChatQuery) -> Observable[ChatResult]:
        return self._client.perform_request(chats_request(self._configuration, query), ChatResult)

    def stream(self, query: ChatQuery) -> Observable[ChatStreamResult]:
        return self._client.perform_streaming_request(
            chats_stream_request(self._configuration, query), ChatStreamResult
        )
