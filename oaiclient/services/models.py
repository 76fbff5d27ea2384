"""Model listing service."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..builders import json_request
from ..clients.pipeline import RequestDescriptor
from ..configuration import Configuration
from ..models.model import ModelResult, ModelsResult
from ..result import Result
from ..urls import APIPath, build_url

if TYPE_CHECKING:
    from ..cancellation import CancellableRequest
    from ..clients.async_client import AsyncClient
    from ..clients.callback import Client
    from ..clients.reactive import Observable, ReactiveClient


def models_request(configuration: Configuration) -> RequestDescriptor:
    return json_request(configuration, build_url(configuration, APIPath.MODELS), method="GET")


def model_request(configuration: Configuration, model: str) -> RequestDescriptor:
    return json_request(
        configuration,
        build_url(configuration, APIPath.MODEL, path_params={"model": model}),
        method="GET",
    )


class ModelService:
    def __init__(self, client: Client):
        self._client = client
        self._configuration = client.core.configuration

    def list(self, completion: Callable[[Result[ModelsResult]], None]) -> CancellableRequest:
        return self._client.perform_request(
            models_request(self._configuration), ModelsResult, completion
        )

    def retrieve(
        self, model: str, completion: Callable[[Result[ModelResult]], None]
    ) -> CancellableRequest:
        return self._client.perform_request(
            model_request(self._configuration, model), ModelResult, completion
        )


class AsyncModelService:
    def __init__(self, client: AsyncClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    async def list(self) -> ModelsResult:
        return await self._client.perform_request(models_request(self._configuration), ModelsResult)

    async def retrieve(self, model: str) -> ModelResult:
        return await self._client.perform_request(
            model_request(self._configuration, model), ModelResult
        )


class ReactiveModelService:
    def __init__(self, client: ReactiveClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    def list(self) -> Observable[ModelsResult]:
        return self._client.perform_request(models_request(self._configuration), ModelsResult)

    def retrieve(self, model: str) -> Observable[ModelResult]:
        return self._client.perform_request(
            model_request(self._configuration, model), ModelResult
        )
