from __future__ import annotations

import json
import threading
from typing import Any

import httpx
import pytest
from pydantic import BaseModel

from oaiclient import (
    APIError,
    BaseMiddleware,
    ClientClosedError,
    Configuration,
    InlineExecutionSerializer,
    OpenAI,
    RawResponse,
    RequestCancelledError,
    RequestDescriptor,
    RequestState,
    Result,
    TransportError,
)
from oaiclient.builders import json_request
from oaiclient.models import EmbeddingsQuery, ModelsResult


class _Item(BaseModel):
    id: str


class _Collector:
    def __init__(self) -> None:
        self.results: list[Result[Any]] = []
        self.done = threading.Event()

    def __call__(self, result: Result[Any]) -> None:
        self.results.append(result)
        self.done.set()

    def wait(self) -> Result[Any]:
        assert self.done.wait(5), "completion was not called"
        return self.results[0]


def _client(handler: Any, **kwargs: Any) -> OpenAI:
    return OpenAI(
        configuration=Configuration(token="sk-test", host="api.example"),
        transport=httpx.MockTransport(handler),
        serializer=InlineExecutionSerializer(),
        **kwargs,
    )


def _get(client: OpenAI, path: str) -> RequestDescriptor:
    return json_request(client.configuration, f"https://api.example/v1{path}", method="GET")


def test_success_is_decoded_and_delivered_once() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == "Bearer sk-test"
        return httpx.Response(200, json={"id": "abc"}, request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        handle = client.client.perform_request(_get(client, "/items/abc"), _Item, collector)
        result = collector.wait()
        assert result.unwrap() == _Item(id="abc")
        client.client.core.close(wait=True)
        assert len(collector.results) == 1
        assert handle.cancel() is False
    finally:
        client.close()


def test_http_error_is_api_error_with_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not_found"}, request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        client.client.perform_request(_get(client, "/items/missing"), _Item, collector)
        result = collector.wait()
        assert not result.ok
        assert isinstance(result.error, APIError)
        assert result.error.status_code == 404
        with pytest.raises(APIError):
            result.unwrap()
    finally:
        client.close()


def test_connection_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        client.models.list(collector)
        result = collector.wait()
        assert isinstance(result.error, TransportError)
    finally:
        client.close()


def test_middlewares_rewrite_request_and_response_in_order() -> None:
    seen: list[str] = []

    class AddHeader(BaseMiddleware):
        def intercept_request(self, request: RequestDescriptor) -> RequestDescriptor:
            seen.append("request")
            return request.with_headers({"X-Trace": "1"})

    class RecoverFromServerError(BaseMiddleware):
        def intercept_response(self, response: RawResponse) -> RawResponse:
            seen.append("response")
            if response.status_code == 503:
                return response.replace(status_code=200, content=b'{"object":"list","data":[]}')
            return response

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-trace"] == "1"
        return httpx.Response(503, text="unavailable", request=request)

    client = _client(handler, middlewares=[AddHeader(), RecoverFromServerError()])
    try:
        collector = _Collector()
        client.models.list(collector)
        assert collector.wait().unwrap() == ModelsResult(data=[])
        assert seen == ["request", "response"]
    finally:
        client.close()


def _blocking_handler(gate: threading.Event, entered: threading.Event) -> Any:
    def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        gate.wait(5)
        return httpx.Response(200, json={"object": "list", "data": []}, request=request)

    return handler


def test_cancel_in_flight_call_suppresses_completion() -> None:
    gate, entered = threading.Event(), threading.Event()
    client = _client(_blocking_handler(gate, entered))
    try:
        collector = _Collector()
        handle = client.models.list(collector)
        assert entered.wait(5)
        assert handle.cancel() is True
        gate.set()
        client.client.core.close(wait=True)
        assert collector.results == []
        assert handle.is_cancelled
    finally:
        client.close()


def test_reported_cancellation_is_the_only_delivery() -> None:
    gate, entered = threading.Event(), threading.Event()
    client = _client(_blocking_handler(gate, entered))
    try:
        collector = _Collector()
        handle = client.models.list(collector)
        assert entered.wait(5)
        handle.cancel(report=True)
        handle.cancel(report=True)
        gate.set()
        client.client.core.close(wait=True)
        assert len(collector.results) == 1
        assert isinstance(collector.results[0].error, RequestCancelledError)
    finally:
        client.close()


def test_client_level_report_cancellation() -> None:
    gate, entered = threading.Event(), threading.Event()
    client = _client(_blocking_handler(gate, entered), report_cancellation=True)
    try:
        collector = _Collector()
        handle = client.models.list(collector)
        assert entered.wait(5)
        handle.cancel()
        gate.set()
        client.client.core.close(wait=True)
        assert [type(r.error) for r in collector.results] == [RequestCancelledError]
    finally:
        client.close()


def test_concurrent_calls_each_complete_exactly_once() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        model_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"id": model_id, "object": "model"}, request=request)

    client = _client(handler)
    try:
        collectors = {f"m{i}": _Collector() for i in range(20)}
        for model_id, collector in collectors.items():
            client.models.retrieve(model_id, collector)
        for model_id, collector in collectors.items():
            assert collector.wait().unwrap().id == model_id
        client.client.core.close(wait=True)
        assert all(len(c.results) == 1 for c in collectors.values())
    finally:
        client.close()


def test_calls_after_close_end_with_client_closed_error() -> None:
    client = _client(lambda request: httpx.Response(200, json={}, request=request))
    client.close()
    collector = _Collector()
    handle = client.models.list(collector)
    assert isinstance(collector.wait().error, ClientClosedError)
    assert handle.state is RequestState.COMPLETED


def test_call_still_queued_at_close_gets_a_terminal_error() -> None:
    gate, entered = threading.Event(), threading.Event()
    client = _client(_blocking_handler(gate, entered), max_workers=1)
    try:
        running, queued = _Collector(), _Collector()
        client.models.list(running)
        assert entered.wait(5)
        handle = client.models.list(queued)
        client.close()
        assert [type(r.error) for r in queued.results] == [ClientClosedError]
        assert handle.state is RequestState.COMPLETED
        gate.set()
        assert running.wait().unwrap() == ModelsResult(data=[])
        assert len(queued.results) == 1
    finally:
        gate.set()
        client.close()


def test_cancelled_queued_call_stays_silent_at_close() -> None:
    gate, entered = threading.Event(), threading.Event()
    client = _client(_blocking_handler(gate, entered), max_workers=1)
    try:
        client.models.list(_Collector())
        assert entered.wait(5)
        queued = _Collector()
        handle = client.models.list(queued)
        assert handle.cancel() is True
        client.close()
        gate.set()
        assert queued.results == []
        assert handle.is_cancelled
    finally:
        gate.set()
        client.close()


def test_request_body_is_sent_as_json() -> None:
    captured: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "object": "list",
                "model": "text-embedding-3-small",
                "data": [{"object": "embedding", "index": 0, "embedding": [0.1, 0.2]}],
            },
            request=request,
        )

    client = _client(handler)
    try:
        collector = _Collector()
        client.embeddings.create(
            EmbeddingsQuery(model="text-embedding-3-small", input="hello"), collector
        )
        result = collector.wait().unwrap()
        assert result.data[0].embedding == [0.1, 0.2]
        assert captured == {"model": "text-embedding-3-small", "input": "hello"}
    finally:
        client.close()
