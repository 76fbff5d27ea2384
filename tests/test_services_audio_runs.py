from __future__ import annotations

import threading
from typing import Any

import httpx

from oaiclient import (
    Configuration,
    InlineExecutionSerializer,
    InvalidQueryError,
    NoOpCancellableRequest,
    OpenAI,
    Result,
)
from oaiclient.models import (
    AudioSpeechQuery,
    AudioTranscriptionQuery,
    SpeechFormat,
    TranscriptionFormat,
)


class _Collector:
    def __init__(self) -> None:
        self.results: list[Result[Any]] = []
        self.done = threading.Event()

    def __call__(self, result: Result[Any]) -> None:
        self.results.append(result)
        self.done.set()

    def wait(self) -> Result[Any]:
        assert self.done.wait(5)
        return self.results[0]


def _client(handler: Any) -> OpenAI:
    return OpenAI(
        configuration=Configuration(token="sk-test", host="api.example"),
        transport=httpx.MockTransport(handler),
        serializer=InlineExecutionSerializer(),
    )


def _query(fmt: TranscriptionFormat) -> AudioTranscriptionQuery:
    return AudioTranscriptionQuery(
        file=b"RIFF-data", file_name="clip.wav", model="whisper-1", response_format=fmt
    )


def test_speech_wraps_raw_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/audio/speech"
        assert request.headers["content-type"] == "application/json"
        return httpx.Response(200, content=b"OggS...", request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        client.audio.speech(
            AudioSpeechQuery(
                model="tts-1", input="hi", voice="alloy", response_format=SpeechFormat.OPUS
            ),
            collector,
        )
        assert collector.wait().unwrap().audio == b"OggS..."
    finally:
        client.close()


def test_speech_http_error_is_passed_through() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "bad voice"}}, request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        client.audio.speech(AudioSpeechQuery(model="tts-1", input="hi", voice="x"), collector)
        result = collector.wait()
        assert not result.ok
        assert "bad voice" in str(result.error)
    finally:
        client.close()


def test_transcription_is_a_multipart_upload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/audio/transcriptions"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content
        assert b'filename="clip.wav"' in body
        assert b"Content-Type: audio/wav" in body
        assert b"RIFF-data" in body
        return httpx.Response(200, json={"text": "hello there"}, request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        client.audio.transcriptions(_query(TranscriptionFormat.JSON), collector)
        assert collector.wait().unwrap().text == "hello there"
    finally:
        client.close()


def test_verbose_transcription_decodes_segments() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert b"verbose_json" in request.content
        return httpx.Response(
            200,
            json={
                "text": "hi",
                "language": "english",
                "duration": 1.5,
                "segments": [{"id": 0, "start": 0.0, "end": 1.5, "text": "hi"}],
            },
            request=request,
        )

    client = _client(handler)
    try:
        collector = _Collector()
        client.audio.transcriptions_verbose(_query(TranscriptionFormat.VERBOSE_JSON), collector)
        result = collector.wait().unwrap()
        assert result.segments[0].end == 1.5
    finally:
        client.close()


def test_verbose_transcription_with_wrong_format_fails_without_network() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, request=request)

    client = _client(handler)
    try:
        collector = _Collector()
        handle = client.audio.transcriptions_verbose(_query(TranscriptionFormat.TEXT), collector)
        result = collector.wait()
        assert isinstance(handle, NoOpCancellableRequest)
        assert handle.cancel() is False
        assert isinstance(result.error, InvalidQueryError)
        assert calls == []
    finally:
        client.close()


def test_run_retrieve_callback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.raw_path == b"/v1/threads/t%2F1/runs/r1"
        return httpx.Response(
            200,
            json={"id": "r1", "object": "thread.run", "thread_id": "t/1", "status": "completed"},
            request=request,
        )

    client = _client(handler)
    try:
        collector = _Collector()
        client.runs.retrieve("t/1", "r1", collector)
        run = collector.wait().unwrap()
        assert (run.thread_id, run.status) == ("t/1", "completed")
    finally:
        client.close()
