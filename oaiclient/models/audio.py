"""Audio speech and transcription payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from .base import OpenAIModel


class SpeechFormat(str, Enum):
    MP3 = "mp3"
    OPUS = "opus"
    AAC = "aac"
    FLAC = "flac"
    WAV = "wav"
    PCM = "pcm"


class AudioSpeechQuery(OpenAIModel):
    model: str
    input: str
    voice: str
    response_format: SpeechFormat = SpeechFormat.MP3
    speed: float | None = None


class AudioSpeechResult(OpenAIModel):
    audio: bytes


class TranscriptionFormat(str, Enum):
    JSON = "json"
    TEXT = "text"
    VERBOSE_JSON = "verbose_json"
    SRT = "srt"
    VTT = "vtt"


class AudioTranscriptionQuery(OpenAIModel):
    file: bytes = Field(exclude=True)
    file_name: str = Field(exclude=True)
    model: str
    response_format: TranscriptionFormat = TranscriptionFormat.JSON
    language: str | None = None
    prompt: str | None = None
    temperature: float | None = None
    stream: bool = False

    def make_streamable(self) -> AudioTranscriptionQuery:
        return self.model_copy(update={"stream": True})

    def form_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @property
    def mime_type(self) -> str:
        ext = self.file_name.rsplit(".", 1)[-1].lower() if "." in self.file_name else ""
        return {
            "mp3": "audio/mpeg",
            "mpga": "audio/mpeg",
            "m4a": "audio/mp4",
            "mp4": "audio/mp4",
            "wav": "audio/wav",
            "webm": "audio/webm",
            "ogg": "audio/ogg",
            "flac": "audio/flac",
        }.get(ext, "application/octet-stream")


class AudioTranscriptionResult(OpenAIModel):
    text: str


class TranscriptionSegment(OpenAIModel):
    id: int
    start: float
    end: float
    text: str


class AudioTranscriptionVerboseResult(OpenAIModel):
    text: str
    language: str
    duration: float
    segments: list[TranscriptionSegment] = Field(default_factory=list)


class AudioTranscriptionStreamResult(OpenAIModel):
    type: str
    delta: str | None = None
    text: str | None = None
