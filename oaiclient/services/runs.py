from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..builders import json_request
from ..clients.pipeline import RequestDescriptor
from ..configuration import Configuration
from ..models.runs import RunResult
from ..result import Result
from ..urls import APIPath, build_url

if TYPE_CHECKING:
    from ..cancellation import CancellableRequest
    from ..clients.async_client import AsyncClient
    from ..clients.callback import Client

# Assistants endpoints are gated behind this beta header.
ASSISTANTS_BETA = "assistants=v2"


def run_retrieve_request(
    configuration: Configuration, thread_id: str, run_id: str
) -> RequestDescriptor:
    request = json_request(
        configuration,
        build_url(
            configuration,
            APIPath.RUN_RETRIEVE,
            path_params={"thread_id": thread_id, "run_id": run_id},
        ),
        method="GET",
    )
    if request.header("OpenAI-Beta") is not None:
        return request
    return request.with_headers({"OpenAI-Beta": ASSISTANTS_BETA})


class RunService:
    def __init__(self, client: Client):
        self._client = client
        self._configuration = client.core.configuration

    def retrieve(
        self,
        thread_id: str,
        run_id: str,
        completion: Callable[[Result[RunResult]], None],
    ) -> CancellableRequest:
        return self._client.perform_request(
            run_retrieve_request(self._configuration, thread_id, run_id), RunResult, completion
        )


class AsyncRunService:
    def __init__(self, client: AsyncClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    async def retrieve(self, thread_id: str, run_id: str) -> RunResult:
        return await self._client.perform_request(
            run_retrieve_request(self._configuration, thread_id, run_id), RunResult
        )
