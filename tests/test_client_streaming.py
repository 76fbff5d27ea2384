from __future__ import annotations

import base64
import json
import threading
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from oaiclient import (
    APIError,
    BaseMiddleware,
    Configuration,
    DecodeError,
    InlineExecutionSerializer,
    MalformedFrameError,
    OpenAI,
    OpenAIClientError,
    QueueExecutionSerializer,
    RequestCancelledError,
    RequestDescriptor,
    Result,
    StreamErrorPolicy,
    StreamTerminatedError,
)
from oaiclient.models import AudioSpeechQuery, ChatMessage, ChatQuery
from oaiclient.services.chats import chats_stream_request

QUERY = ChatQuery(model="gpt-test", messages=[ChatMessage(role="user", content="hi")])
SSE_HEADERS = {"content-type": "text/event-stream"}


def _chunk(content: str, *, finish: str | None = None) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1,
        "model": "gpt-test",
        "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": finish}],
    }


def _frame(payload: dict[str, Any] | str) -> bytes:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n".encode()


class _StreamCollector:
    def __init__(self) -> None:
        self.results: list[Result[Any]] = []
        self.completions: list[OpenAIClientError | None] = []
        self.done = threading.Event()

    def on_result(self, result: Result[Any]) -> None:
        self.results.append(result)

    def completion(self, error: OpenAIClientError | None) -> None:
        self.completions.append(error)
        self.done.set()

    def wait(self) -> OpenAIClientError | None:
        assert self.done.wait(5), "stream did not terminate"
        return self.completions[0]

    @property
    def contents(self) -> list[str]:
        return [r.unwrap().choices[0].delta.content for r in self.results if r.ok]


def _client(
    chunks: list[bytes] | Iterator[bytes],
    *,
    status: int = 200,
    headers: dict[str, str] | None = None,
    policy: StreamErrorPolicy = StreamErrorPolicy.TERMINATE,
    **kwargs: Any,
) -> OpenAI:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "text/event-stream"
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(
            status,
            headers=headers if headers is not None else SSE_HEADERS,
            content=iter(chunks),
            request=request,
        )

    return OpenAI(
        configuration=Configuration(
            token="sk-test", host="api.example", stream_error_policy=policy
        ),
        transport=httpx.MockTransport(handler),
        serializer=InlineExecutionSerializer(),
        **kwargs,
    )


def _run(client: OpenAI) -> _StreamCollector:
    collector = _StreamCollector()
    client.chats.stream(QUERY, collector.on_result, collector.completion)
    collector.wait()
    client.client.core.close(wait=True)
    return collector


def test_frames_in_one_chunk_then_done() -> None:
    body = _frame(_chunk("Hel")) + _frame(_chunk("lo")) + _frame(_chunk("!", finish="stop"))
    client = _client([body + b"data: [DONE]\n\n"])
    try:
        collector = _run(client)
        assert collector.contents == ["Hel", "lo", "!"]
        assert collector.completions == [None]
    finally:
        client.close()


def test_each_frame_split_across_two_chunks() -> None:
    chunks: list[bytes] = []
    for frame in (_frame(_chunk("a")), _frame(_chunk("b")), b"data: [DONE]\n\n"):
        middle = len(frame) // 2
        chunks.extend([frame[:middle], frame[middle:]])
    client = _client(chunks)
    try:
        collector = _run(client)
        assert collector.contents == ["a", "b"]
        assert collector.completions == [None]
    finally:
        client.close()


def test_close_without_done_is_abnormal_termination() -> None:
    client = _client([_frame(_chunk("partial"))])
    try:
        collector = _run(client)
        assert collector.contents == ["partial"]
        assert len(collector.completions) == 1
        assert isinstance(collector.completions[0], StreamTerminatedError)
    finally:
        client.close()


def test_unterminated_trailing_done_still_completes_cleanly() -> None:
    client = _client([_frame(_chunk("x")), b"data: [DONE]"])
    try:
        collector = _run(client)
        assert collector.contents == ["x"]
        assert collector.completions == [None]
    finally:
        client.close()


def test_malformed_frame_terminates_by_default() -> None:
    client = _client(
        [_frame(_chunk("ok")), b"data: {not json\n\n", _frame(_chunk("late")), b"data: [DONE]\n\n"]
    )
    try:
        collector = _run(client)
        assert collector.contents == ["ok"]
        assert len(collector.results) == 1
        error = collector.completions[0]
        assert isinstance(error, MalformedFrameError)
        assert error.frame == "{not json"
    finally:
        client.close()


def test_skip_policy_reports_bad_frames_and_continues() -> None:
    client = _client(
        [
            _frame(_chunk("one")),
            b"data: {not json\n\n",
            _frame({"unexpected": True}),
            _frame(_chunk("two")),
            b"data: [DONE]\n\n",
        ],
        policy=StreamErrorPolicy.SKIP,
    )
    try:
        collector = _run(client)
        kinds = [type(r.error).__name__ if not r.ok else "ok" for r in collector.results]
        assert kinds == ["ok", "MalformedFrameError", "DecodeError", "ok"]
        assert collector.contents == ["one", "two"]
        assert collector.completions == [None]
    finally:
        client.close()


def test_error_envelope_inside_stream_is_terminal_api_error() -> None:
    client = _client(
        [
            _frame(_chunk("a")),
            _frame({"error": {"message": "overloaded", "type": "server_error"}}),
            _frame(_chunk("never")),
        ]
    )
    try:
        collector = _run(client)
        assert collector.contents == ["a"]
        error = collector.completions[0]
        assert isinstance(error, APIError)
        assert error.message == "overloaded"
    finally:
        client.close()


def test_http_error_status_on_stream_is_api_error_without_frames() -> None:
    body = json.dumps({"error": {"message": "bad key", "type": "invalid_request_error"}})
    client = _client(
        [body.encode()], status=401, headers={"content-type": "application/json"}
    )
    try:
        collector = _run(client)
        assert collector.results == []
        error = collector.completions[0]
        assert isinstance(error, APIError)
        assert error.status_code == 401
        assert error.message == "bad key"
    finally:
        client.close()


def test_json_error_body_with_success_status_is_api_error() -> None:
    body = json.dumps({"error": {"message": "model not found"}}).encode()
    client = _client([body], headers={"content-type": "application/json"})
    try:
        collector = _run(client)
        assert collector.results == []
        assert isinstance(collector.completions[0], APIError)
    finally:
        client.close()


def test_done_is_recognized_before_stream_data_middleware() -> None:
    class Base64Frames(BaseMiddleware):
        def intercept_stream_data(self, request: RequestDescriptor, data: bytes) -> bytes:
            return base64.b64decode(data)

    encoded = base64.b64encode(json.dumps(_chunk("decoded")).encode()).decode()
    client = _client(
        [f"data: {encoded}\n\n".encode(), b"data: [DONE]\n\n"], middlewares=[Base64Frames()]
    )
    try:
        collector = _run(client)
        assert collector.contents == ["decoded"]
        assert collector.completions == [None]
    finally:
        client.close()


def test_untyped_frames_are_delivered_as_plain_json() -> None:
    client = _client([_frame({"id": "x"}), b"data: [DONE]\n\n"])
    try:
        collector = _StreamCollector()
        client.streaming.perform_streaming_request(
            chats_stream_request(client.configuration, QUERY),
            None,
            collector.on_result,
            collector.completion,
        )
        assert collector.wait() is None
        assert [r.unwrap() for r in collector.results] == [{"id": "x"}]
    finally:
        client.close()


def test_frame_missing_required_field_terminates_with_decode_error() -> None:
    client = _client([_frame({"id": "x"}), b"data: [DONE]\n\n"])
    try:
        collector = _run(client)
        assert collector.results == []
        assert isinstance(collector.completions[0], DecodeError)
    finally:
        client.close()


def _gated_chunks(gate: threading.Event) -> Iterator[bytes]:
    yield _frame(_chunk("first"))
    gate.wait(5)
    yield _frame(_chunk("second"))
    yield b"data: [DONE]\n\n"


@pytest.mark.parametrize("report", [False, True])
def test_cancel_mid_stream_stops_all_further_delivery(report: bool) -> None:
    gate = threading.Event()
    client = _client(_gated_chunks(gate))
    try:
        collector = _StreamCollector()
        first = threading.Event()

        def on_result(result: Result[Any]) -> None:
            collector.on_result(result)
            first.set()

        handle = client.chats.stream(QUERY, on_result, collector.completion)
        assert first.wait(5)
        assert handle.cancel(report=report) is True
        gate.set()
        client.client.core.close(wait=True)

        assert collector.contents == ["first"]
        if report:
            assert [type(e) for e in collector.completions] == [RequestCancelledError]
        else:
            assert collector.completions == []
    finally:
        client.close()


def test_bytes_stream_delivers_each_chunk_then_completes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "audio/mpeg"},
            content=iter([b"ID3", b"\x00\x01", b"\x02"]),
            request=request,
        )

    client = OpenAI(
        configuration=Configuration(token="sk-test", host="api.example"),
        transport=httpx.MockTransport(handler),
        serializer=InlineExecutionSerializer(),
    )
    try:
        collector = _StreamCollector()
        client.audio.speech_stream(
            AudioSpeechQuery(model="tts-1", input="hi", voice="alloy"),
            collector.on_result,
            collector.completion,
        )
        assert collector.wait() is None
        assert [r.unwrap().audio for r in collector.results] == [b"ID3", b"\x00\x01", b"\x02"]
    finally:
        client.close()


def test_cancel_twice_from_on_result_on_the_delivery_queue() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers=SSE_HEADERS,
            content=iter([_frame(_chunk("a")), _frame(_chunk("b")), b"data: [DONE]\n\n"]),
            request=request,
        )

    serializer = QueueExecutionSerializer(name="test-delivery")
    client = OpenAI(
        configuration=Configuration(token="sk-test", host="api.example"),
        transport=httpx.MockTransport(handler),
        serializer=serializer,
    )
    try:
        collector = _StreamCollector()
        started = threading.Event()
        handles: list[Any] = []
        cancels: list[bool] = []

        def on_result(result: Result[Any]) -> None:
            collector.on_result(result)
            assert started.wait(5)
            cancels.append(handles[0].cancel())
            cancels.append(handles[0].cancel())

        handles.append(client.chats.stream(QUERY, on_result, collector.completion))
        started.set()
        client.client.core.close(wait=True)
        assert serializer.flush(5)

        assert collector.contents == ["a"]
        assert collector.completions == []
        assert cancels == [True, False]
        assert handles[0].is_cancelled
    finally:
        client.close()
        serializer.shutdown()
