"""
Request and result payload models.

All Pydantic models are available from this module.
"""

from __future__ import annotations

# Audio
from .audio import (
    AudioSpeechQuery,
    AudioSpeechResult,
    AudioTranscriptionQuery,
    AudioTranscriptionResult,
    AudioTranscriptionStreamResult,
    AudioTranscriptionVerboseResult,
    SpeechFormat,
    TranscriptionFormat,
    TranscriptionSegment,
)
from .base import OpenAIModel

# Chat
from .chat import (
    ChatChoice,
    ChatMessage,
    ChatQuery,
    ChatResult,
    ChatStreamChoice,
    ChatStreamResult,
    ChoiceDelta,
    Usage,
)

# Embeddings
from .embeddings import Embedding, EmbeddingsQuery, EmbeddingsResult

# Errors
from .errors import APIErrorPayload

# Models
from .model import ModelResult, ModelsResult

# Runs
from .runs import RunResult

__all__ = [
    "APIErrorPayload",
    "AudioSpeechQuery",
    "AudioSpeechResult",
    "AudioTranscriptionQuery",
    "AudioTranscriptionResult",
    "AudioTranscriptionStreamResult",
    "AudioTranscriptionVerboseResult",
    "ChatChoice",
    "ChatMessage",
    "ChatQuery",
    "ChatResult",
    "ChatStreamChoice",
    "ChatStreamResult",
    "ChoiceDelta",
    "Embedding",
    "EmbeddingsQuery",
    "EmbeddingsResult",
    "ModelResult",
    "ModelsResult",
    "OpenAIModel",
    "RunResult",
    "SpeechFormat",
    "TranscriptionFormat",
    "TranscriptionSegment",
    "Usage",
]
