from __future__ import annotations

import json
import threading
from typing import Any

import httpx

from oaiclient import (
    Configuration,
    InlineExecutionSerializer,
    MalformedFrameError,
    OpenAI,
    OpenAIClientError,
)
from oaiclient.models import ChatMessage, ChatQuery

QUERY = ChatQuery(model="gpt-test", messages=[ChatMessage(role="user", content="hi")])


class _Observer:
    def __init__(self) -> None:
        self.values: list[Any] = []
        self.errors: list[OpenAIClientError] = []
        self.completed = 0
        self.done = threading.Event()

    def on_next(self, value: Any) -> None:
        self.values.append(value)

    def on_error(self, error: OpenAIClientError) -> None:
        self.errors.append(error)
        self.done.set()

    def on_completed(self) -> None:
        self.completed += 1
        self.done.set()

    def subscribe(self, observable: Any) -> Any:
        return observable.subscribe(self.on_next, self.on_error, self.on_completed)


def _sse(*frames: str) -> str:
    return "".join(f"data: {f}\n\n" for f in frames)


def _chunk(content: str) -> str:
    return json.dumps(
        {
            "id": "c",
            "object": "chat.completion.chunk",
            "created": 1,
            "model": "gpt-test",
            "choices": [{"index": 0, "delta": {"content": content}}],
        }
    )


def _client(handler: Any) -> OpenAI:
    return OpenAI(
        configuration=Configuration(token="sk-test", host="api.example"),
        transport=httpx.MockTransport(handler),
        serializer=InlineExecutionSerializer(),
    )


def _stream_handler(body: str) -> Any:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"content-type": "text/event-stream"}, text=body, request=request
        )

    return handler


def test_one_shot_emits_value_then_completes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"object": "list", "data": [{"id": "m1", "object": "model"}]}, request=request
        )

    client = _client(handler)
    try:
        observer = _Observer()
        observer.subscribe(client.reactive.models.list())
        assert observer.done.wait(5)
        assert [m.id for m in observer.values[0].data] == ["m1"]
        assert observer.completed == 1
        assert observer.errors == []
    finally:
        client.close()


def test_stream_emits_each_frame_then_completes() -> None:
    client = _client(_stream_handler(_sse(_chunk("a"), _chunk("b"), "[DONE]")))
    try:
        observer = _Observer()
        observer.subscribe(client.reactive.chats.stream(QUERY))
        assert observer.done.wait(5)
        assert [v.choices[0].delta.content for v in observer.values] == ["a", "b"]
        assert observer.completed == 1
    finally:
        client.close()


def test_first_error_terminates_the_observable() -> None:
    client = _client(_stream_handler(_sse(_chunk("a"), "{broken", _chunk("b"), "[DONE]")))
    try:
        observer = _Observer()
        observer.subscribe(client.reactive.chats.stream(QUERY))
        assert observer.done.wait(5)
        client.client.core.close(wait=True)
        assert [v.choices[0].delta.content for v in observer.values] == ["a"]
        assert len(observer.errors) == 1
        assert isinstance(observer.errors[0], MalformedFrameError)
        assert observer.completed == 0
    finally:
        client.close()


def test_each_subscription_starts_its_own_call() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"id": "m1", "object": "model"}, request=request)

    client = _client(handler)
    try:
        observable = client.reactive.models.retrieve("m1")
        first, second = _Observer(), _Observer()
        assert calls == []
        first.subscribe(observable)
        second.subscribe(observable)
        assert first.done.wait(5) and second.done.wait(5)
        assert calls == ["/v1/models/m1", "/v1/models/m1"]
    finally:
        client.close()


def test_dispose_cancels_and_silences_the_subscription() -> None:
    gate, entered = threading.Event(), threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        gate.wait(5)
        return httpx.Response(200, json={"object": "list", "data": []}, request=request)

    client = _client(handler)
    try:
        observer = _Observer()
        subscription = observer.subscribe(client.reactive.models.list())
        assert entered.wait(5)
        subscription.dispose()
        subscription.dispose()
        gate.set()
        client.client.core.close(wait=True)
        assert subscription.disposed
        assert observer.values == []
        assert observer.errors == []
        assert observer.completed == 0
    finally:
        client.close()
