"""
Audio speech and transcription service.

Speech responses are raw audio bytes, wrapped into `AudioSpeechResult`.
Transcriptions are multipart uploads; the verbose variant only accepts a
`verbose_json` query and rejects anything else before sending.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any

from ..builders import json_request, multipart_request
from ..clients.pipeline import RequestDescriptor
from ..configuration import Configuration
from ..exceptions import InvalidQueryError
from ..models.audio import (
    AudioSpeechQuery,
    AudioSpeechResult,
    AudioTranscriptionQuery,
    AudioTranscriptionResult,
    AudioTranscriptionStreamResult,
    AudioTranscriptionVerboseResult,
    TranscriptionFormat,
)
from ..result import Result, Success
from ..urls import APIPath, build_url

if TYPE_CHECKING:
    from ..cancellation import CancellableRequest
    from ..clients.async_client import AsyncClient
    from ..clients.callback import Client
    from ..clients.streaming import StreamingClient
    from ..exceptions import OpenAIClientError


def speech_request(configuration: Configuration, query: AudioSpeechQuery) -> RequestDescriptor:
    return json_request(configuration, build_url(configuration, APIPath.AUDIO_SPEECH), body=query)


def transcription_request(
    configuration: Configuration, query: AudioTranscriptionQuery, *, stream: bool = False
) -> RequestDescriptor:
    if stream:
        query = query.make_streamable()
    return multipart_request(
        configuration,
        build_url(configuration, APIPath.AUDIO_TRANSCRIPTIONS),
        fields=query.form_fields(),
        files={"file": (query.file_name, query.file, query.mime_type)},
        stream=stream,
    )


def check_verbose_query(query: AudioTranscriptionQuery) -> InvalidQueryError | None:
    if query.response_format is not TranscriptionFormat.VERBOSE_JSON:
        return InvalidQueryError(
            "Verbose transcription requires response_format="
            f"{TranscriptionFormat.VERBOSE_JSON.value!r}, got {query.response_format.value!r}"
        )
    return None


def _speech_result(audio: bytes) -> AudioSpeechResult:
    return AudioSpeechResult(audio=audio)


class AudioService:
    def __init__(self, client: Client, streaming: StreamingClient):
        self._client = client
        self._streaming = streaming
        self._configuration = client.core.configuration

    def speech(
        self,
        query: AudioSpeechQuery,
        completion: Callable[[Result[AudioSpeechResult]], None],
    ) -> CancellableRequest:
        def _wrapped(result: Result[Any]) -> None:
            completion(Success(_speech_result(result.value)) if result.ok else result)

        return self._client.perform_request(
            speech_request(self._configuration, query), bytes, _wrapped
        )

    def speech_stream(
        self,
        query: AudioSpeechQuery,
        on_result: Callable[[Result[AudioSpeechResult]], None],
        completion: Callable[[OpenAIClientError | None], None] | None = None,
    ) -> CancellableRequest:
        """Deliver audio as it arrives, one `AudioSpeechResult` per received chunk."""
        return self._streaming.perform_bytes_streaming_request(
            speech_request(self._configuration, query),
            on_result,
            completion,
            wrap=_speech_result,
        )

    def transcriptions(
        self,
        query: AudioTranscriptionQuery,
        completion: Callable[[Result[AudioTranscriptionResult]], None],
    ) -> CancellableRequest:
        return self._client.perform_request(
            transcription_request(self._configuration, query),
            AudioTranscriptionResult,
            completion,
        )

    def transcriptions_verbose(
        self,
        query: AudioTranscriptionQuery,
        completion: Callable[[Result[AudioTranscriptionVerboseResult]], None],
    ) -> CancellableRequest:
        error = check_verbose_query(query)
        if error is not None:
            return self._client.reject(error, completion)
        return self._client.perform_request(
            transcription_request(self._configuration, query),
            AudioTranscriptionVerboseResult,
            completion,
        )

    def transcriptions_stream(
        self,
        query: AudioTranscriptionQuery,
        on_result: Callable[[Result[AudioTranscriptionStreamResult]], None],
        completion: Callable[[OpenAIClientError | None], None] | None = None,
    ) -> CancellableRequest:
        return self._streaming.perform_streaming_request(
            transcription_request(self._configuration, query, stream=True),
            AudioTranscriptionStreamResult,
            on_result,
            completion,
        )


class AsyncAudioService:
    def __init__(self, client: AsyncClient, configuration: Configuration):
        self._client = client
        self._configuration = configuration

    async def speech(self, query: AudioSpeechQuery) -> AudioSpeechResult:
        audio = await self._client.perform_request(
            speech_request(self._configuration, query), bytes
        )
        return _speech_result(audio)

    def speech_stream(self, query: AudioSpeechQuery) -> AsyncIterator[AudioSpeechResult]:
        return self._client.perform_bytes_streaming_request(
            speech_request(self._configuration, query), wrap=_speech_result
        )

    async def transcriptions(self, query: AudioTranscriptionQuery) -> AudioTranscriptionResult:
        return await self._client.perform_request(
            transcription_request(self._configuration, query), AudioTranscriptionResult
        )

    async def transcriptions_verbose(
        self, query: AudioTranscriptionQuery
    ) -> AudioTranscriptionVerboseResult:
        error = check_verbose_query(query)
        if error is not None:
            raise error
        return await self._client.perform_request(
            transcription_request(self._configuration, query),
            AudioTranscriptionVerboseResult,
        )

    def transcriptions_stream(
        self, query: AudioTranscriptionQuery
    ) -> AsyncIterator[AudioTranscriptionStreamResult]:
        return self._client.perform_streaming_request(
            transcription_request(self._configuration, query, stream=True),
            AudioTranscriptionStreamResult,
        )
