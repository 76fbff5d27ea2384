from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..builders import json_request
from ..clients.pipeline import RequestDescriptor
from ..configuration import Configuration
from ..models.embeddings import EmbeddingsQuery, EmbeddingsResult
from ..result import Result
from ..urls import APIPath, build_url

if TYPE_CHECKING:
    from ..cancellation import CancellableRequest
    from ..clients.async_client import AsyncClient
    from ..clients.callback import Client


def embeddings_request(configuration: Configuration, query: EmbeddingsQuery) -> RequestDescriptor:
    return json_request(configuration, build_url(configuration, APIPath.EMBEDDINGS), body=query)


class EmbeddingService:
    def __init__(self, client: Client):
        self._client = client
        self._configuration = client.core.configuration

    def create(
        self,
        query: EmbeddingsQuery,
        completion: Callable[[Result[EmbeddingsResult]], None],
    ) -> CancellableRequest:
        return self._client.perform_request(
            embeddings_request(self._configuration, query), EmbeddingsResult, completion
        )


class AsyncEmbeddingService:
    def __init__(self, client: AsyncClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    async def create(self, query: EmbeddingsQuery) -> EmbeddingsResult:
        return await self._client.perform_request(
            embeddings_request(self._configuration, query), EmbeddingsResult
        )
