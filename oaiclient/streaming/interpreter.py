"""
Stream interpreters: turn connection bytes into decoded frames and a terminal signal.

An interpreter is fed chunks in arrival order and returns the items they
complete. Once it has produced a `StreamFinished` it produces nothing more.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..clients.pipeline import MiddlewarePipeline, RequestDescriptor
from ..configuration import StreamErrorPolicy
from ..decoder import ResponseDecoder, ResponseModel
from ..exceptions import (
    APIError,
    MalformedFrameError,
    OpenAIClientError,
    StreamTerminatedError,
)
from ..models.errors import parse_error_envelope
from ..result import Failure, Result, Success
from .parser import ServerSentEventsParser

DONE_MARKER = "[DONE]"
EVENT_STREAM = "text/event-stream"
# Raw bytes kept from a non-SSE body, to recognize an error envelope at close.
_MAX_RAW_BODY = 64 * 1024


@dataclass(frozen=True, slots=True)
class FrameDecoded:
    result: Result[Any]


@dataclass(frozen=True, slots=True)
class StreamFinished:
    error: OpenAIClientError | None = None


StreamItem = FrameDecoded | StreamFinished


class StreamInterpreter(Protocol):
    @property
    def finished(self) -> bool: ...

    def process(self, chunk: bytes) -> list[StreamItem]: ...

    def finish(self) -> list[StreamItem]: ...


class SSEStreamInterpreter:
    """
    Interprets `data:` frames as JSON documents.

    - `data: [DONE]` ends the stream cleanly and is never decoded;
    - a frame holding an `{"error": {...}}` envelope ends the stream with an APIError;
    - a frame that fails to decode ends the stream (`StreamErrorPolicy.TERMINATE`) or
      is reported as a per-frame failure (`StreamErrorPolicy.SKIP`);
    - the connection closing before `[DONE]` is a `StreamTerminatedError`.
    """

    def __init__(
        self,
        *,
        request: RequestDescriptor,
        model: ResponseModel,
        pipeline: MiddlewarePipeline,
        decoder: ResponseDecoder,
        policy: StreamErrorPolicy = StreamErrorPolicy.TERMINATE,
        status_code: int = 200,
        content_type: str | None = None,
    ) -> None:
        self._request = request
        self._model = model
        self._pipeline = pipeline
        self._decoder = decoder
        self._policy = policy
        self._status_code = status_code
        self._parser = ServerSentEventsParser()
        self._finished = False
        self._frames = 0
        self._raw: bytearray | None = None
        if content_type is not None and EVENT_STREAM not in content_type.lower():
            self._raw = bytearray()

    @property
    def finished(self) -> bool:
        return self._finished

    def process(self, chunk: bytes) -> list[StreamItem]:
        if self._finished:
            return []
        if self._raw is not None and len(self._raw) < _MAX_RAW_BODY:
            self._raw.extend(chunk[: _MAX_RAW_BODY - len(self._raw)])
        items: list[StreamItem] = []
        for event in self._parser.feed(chunk):
            item = self._interpret(event.data)
            if item is None:
                continue
            items.append(item)
            if isinstance(item, StreamFinished):
                break
        return items

    def finish(self) -> list[StreamItem]:
        if self._finished:
            return []
        trailing = self._parser.flush()
        if trailing is not None and trailing.data.strip() == DONE_MARKER:
            self._finished = True
            return [StreamFinished()]
        self._finished = True
        if self._raw:
            envelope_error = self._envelope_error(bytes(self._raw))
            if envelope_error is not None:
                return [StreamFinished(envelope_error)]
        return [
            StreamFinished(
                StreamTerminatedError(
                    f"Stream closed before {DONE_MARKER} after {self._frames} frame(s)"
                )
            )
        ]

    def _envelope_error(self, body: bytes) -> APIError | None:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        envelope = parse_error_envelope(data)
        if envelope is None:
            return None
        return APIError(
            envelope.message or "Error received in stream",
            status_code=self._status_code,
            payload=envelope,
        )

    def _interpret(self, data: str) -> StreamItem | None:
        if data.strip() == DONE_MARKER:
            self._finished = True
            return StreamFinished()

        payload = self._pipeline.handle_stream_data(self._request, data.encode("utf-8"))
        try:
            value = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            text = payload.decode("utf-8", errors="replace")
            return self._frame_failure(
                MalformedFrameError(f"Stream frame is not valid JSON: {e}", frame=text)
            )

        envelope = parse_error_envelope(value)
        if envelope is not None:
            self._finished = True
            return StreamFinished(
                APIError(
                    envelope.message or "Error received in stream",
                    status_code=self._status_code,
                    payload=envelope,
                )
            )

        if self._model is None:
            result: Result[Any] = Success(value)
        else:
            result = self._decoder.validate(value, self._model, body=payload)  # type: ignore[arg-type]
        if isinstance(result, Failure):
            return self._frame_failure(result.error)
        self._frames += 1
        return FrameDecoded(result)

    def _frame_failure(self, error: OpenAIClientError) -> StreamItem:
        if self._policy is StreamErrorPolicy.SKIP:
            return FrameDecoded(Failure(error))
        self._finished = True
        return StreamFinished(error)


class BytesStreamInterpreter:
    """Delivers each received chunk as one frame; a clean close completes the stream."""

    def __init__(
        self,
        *,
        request: RequestDescriptor,
        pipeline: MiddlewarePipeline,
        wrap: Callable[[bytes], Any] | None = None,
    ) -> None:
        self._request = request
        self._pipeline = pipeline
        self._wrap = wrap
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def process(self, chunk: bytes) -> list[StreamItem]:
        if self._finished:
            return []
        data = self._pipeline.handle_stream_data(self._request, chunk)
        value = self._wrap(data) if self._wrap is not None else data
        return [FrameDecoded(Success(value))]

    def finish(self) -> list[StreamItem]:
        if self._finished:
            return []
        self._finished = True
        return [StreamFinished()]
