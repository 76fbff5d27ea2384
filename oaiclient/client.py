"""
Main OpenAI API client.

All facades of one client share a single execution core: one transport, one
middleware pipeline, one decoder and one delivery queue.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from .clients.async_client import AsyncClient
from .clients.callback import Client
from .clients.core import DEFAULT_MAX_WORKERS, ExecutionCore
from .clients.pipeline import Middleware
from .clients.reactive import ReactiveClient
from .clients.streaming import StreamingClient
from .configuration import Configuration
from .serializer import ExecutionSerializer
from .services.audio import AsyncAudioService, AudioService
from .services.chats import AsyncChatService, ChatService, ReactiveChatService
from .services.embeddings import AsyncEmbeddingService, EmbeddingService
from .services.models import AsyncModelService, ModelService, ReactiveModelService
from .services.runs import AsyncRunService, RunService
from .transport import HTTPXTransport, Transport


def _build_core(
    api_key: str | None,
    configuration: Configuration | None,
    *,
    transport: httpx.BaseTransport | None,
    http_transport: Transport | None,
    middlewares: Sequence[Middleware],
    serializer: ExecutionSerializer | None,
    max_workers: int,
) -> ExecutionCore:
    if configuration is None:
        if api_key is None:
            raise ValueError("Either api_key or configuration is required")
        configuration = Configuration(token=api_key)
    elif api_key is not None:
        raise ValueError("Pass api_key or configuration, not both")

    owns_transport = http_transport is None
    if http_transport is None:
        http_transport = HTTPXTransport(transport=transport, timeout=configuration.timeout)
    return ExecutionCore(
        configuration,
        http_transport,
        middlewares=middlewares,
        serializer=serializer,
        max_workers=max_workers,
        owns_transport=owns_transport,
    )


class ReactiveOpenAI:
    """Observable-returning view over an `OpenAI` client."""

    def __init__(self, client: ReactiveClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration
        self._chats: ReactiveChatService | None = None
        self._models: ReactiveModelService | None = None

    @property
    def client(self) -> ReactiveClient:
        return self._client

    @property
    def chats(self) -> ReactiveChatService:
        if self._chats is None:
            self._chats = ReactiveChatService(self._client, self._configuration)
        return self._chats

    @property
    def models(self) -> ReactiveModelService:
        if self._models is None:
            self._models = ReactiveModelService(self._client, self._configuration)
        return self._models


class OpenAI:
    """
    Callback-style OpenAI API client.

    Every call returns a `CancellableRequest` at once; results arrive on the
    delivery queue.

    Example:
        ```python
        from oaiclient import OpenAI
        from oaiclient.models import ChatMessage, ChatQuery

        with OpenAI(api_key="sk-...") as client:
            query = ChatQuery(model="gpt-4o", messages=[ChatMessage(role="user", content="Hi")])
            handle = client.chats.create(query, lambda result: print(result.unwrap()))
        ```

    Args:
        api_key: Bearer token. Mutually exclusive with `configuration`.
        configuration: Full client configuration.
        transport: httpx transport override (e.g. `httpx.MockTransport` in tests).
        http_transport: Replace the HTTP layer entirely; not closed by `close()`.
        middlewares: Interceptors applied to every call in list order.
        serializer: Delivery queue; defaults to the process-wide one.
        max_workers: I/O worker pool size.
        report_cancellation: Deliver `RequestCancelledError` for every cancelled call.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        configuration: Configuration | None = None,
        transport: httpx.BaseTransport | None = None,
        http_transport: Transport | None = None,
        middlewares: Sequence[Middleware] = (),
        serializer: ExecutionSerializer | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        report_cancellation: bool = False,
    ):
        self._core = _build_core(
            api_key,
            configuration,
            transport=transport,
            http_transport=http_transport,
            middlewares=middlewares,
            serializer=serializer,
            max_workers=max_workers,
        )
        self._client = Client(self._core, report_cancellation=report_cancellation)
        self._streaming = StreamingClient(self._core, report_cancellation=report_cancellation)

        self._chats: ChatService | None = None
        self._models: ModelService | None = None
        self._embeddings: EmbeddingService | None = None
        self._audio: AudioService | None = None
        self._runs: RunService | None = None
        self._reactive: ReactiveOpenAI | None = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> OpenAI:
        """Build a client from `OPENAI_*` environment variables."""
        return cls(configuration=Configuration.from_env(), **kwargs)

    def __enter__(self) -> OpenAI:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Stop accepting calls and release worker threads and the HTTP client."""
        self._core.close()

    @property
    def configuration(self) -> Configuration:
        return self._core.configuration

    @property
    def client(self) -> Client:
        """Raw one-shot facade, for endpoints without a service wrapper."""
        return self._client

    @property
    def streaming(self) -> StreamingClient:
        """Raw streaming facade."""
        return self._streaming

    # =========================================================================
    # Service Properties (lazy initialization)
    # =========================================================================

    @property
    def chats(self) -> ChatService:
        """Chat completions."""
        if self._chats is None:
            self._chats = ChatService(self._client, self._streaming)
        return self._chats

    @property
    def models(self) -> ModelService:
        if self._models is None:
            self._models = ModelService(self._client)
        return self._models

    @property
    def embeddings(self) -> EmbeddingService:
        if self._embeddings is None:
            self._embeddings = EmbeddingService(self._client)
        return self._embeddings

    @property
    def audio(self) -> AudioService:
        """Speech synthesis and transcription."""
        if self._audio is None:
            self._audio = AudioService(self._client, self._streaming)
        return self._audio

    @property
    def runs(self) -> RunService:
        """Assistant runs."""
        if self._runs is None:
            self._runs = RunService(self._client)
        return self._runs

    @property
    def reactive(self) -> ReactiveOpenAI:
        """Observable-returning variants sharing this client's core."""
        if self._reactive is None:
            self._reactive = ReactiveOpenAI(
                ReactiveClient(self._client, self._streaming), self._core.configuration
            )
        return self._reactive


class AsyncOpenAI:
    """
    Asynchronous OpenAI API client.

    Same services as `OpenAI`, with awaitable calls and async iterators for streams.

    Example:
        ```python
        async with AsyncOpenAI(api_key="sk-...") as client:
            async for chunk in client.chats.stream(query):
                print(chunk.choices[0].delta.content or "", end="")
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        configuration: Configuration | None = None,
        transport: httpx.BaseTransport | None = None,
        http_transport: Transport | None = None,
        middlewares: Sequence[Middleware] = (),
        serializer: ExecutionSerializer | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self._core = _build_core(
            api_key,
            configuration,
            transport=transport,
            http_transport=http_transport,
            middlewares=middlewares,
            serializer=serializer,
            max_workers=max_workers,
        )
        self._client = AsyncClient(Client(self._core), StreamingClient(self._core))
        self._chats: AsyncChatService | None = None
        self._models: AsyncModelService | None = None
        self._embeddings: AsyncEmbeddingService | None = None
        self._audio: AsyncAudioService | None = None
        self._runs: AsyncRunService | None = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> AsyncOpenAI:
        return cls(configuration=Configuration.from_env(), **kwargs)

    @property
    def configuration(self) -> Configuration:
        return self._core.configuration

    @property
    def client(self) -> AsyncClient:
        return self._client

    @property
    def chats(self) -> AsyncChatService:
        if self._chats is None:
            self._chats = AsyncChatService(self._client, self._core.configuration)
        return self._chats

    @property
    def models(self) -> AsyncModelService:
        if self._models is None:
            self._models = AsyncModelService(self._client, self._core.configuration)
        return self._models

    @property
    def embeddings(self) -> AsyncEmbeddingService:
        if self._embeddings is None:
            self._embeddings = AsyncEmbeddingService(self._client, self._core.configuration)
        return self._embeddings

    @property
    def audio(self) -> AsyncAudioService:
        if self._audio is None:
            self._audio = AsyncAudioService(self._client, self._core.configuration)
        return self._audio

    @property
    def runs(self) -> AsyncRunService:
        if self._runs is None:
            self._runs = AsyncRunService(self._client, self._core.configuration)
        return self._runs

    async def __aenter__(self) -> AsyncOpenAI:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release worker threads and the HTTP client."""
        self._core.close()
