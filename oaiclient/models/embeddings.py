from __future__ import annotations

from .base import OpenAIModel
from .chat import Usage


class EmbeddingsQuery(OpenAIModel):
    model: str
    input: str | list[str]
    dimensions: int | None = None
    user: str | None = None


class Embedding(OpenAIModel):
    object: str = "embedding"
    index: int
    embedding: list[float]


class EmbeddingsResult(OpenAIModel):
    object: str = "list"
    model: str
    data: list[Embedding]
    usage: Usage | None = None
