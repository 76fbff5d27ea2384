from __future__ import annotations

from .base import OpenAIModel


class ModelResult(OpenAIModel):
    id: str
    object: str = "model"
    created: int | None = None
    owned_by: str | None = None


class ModelsResult(OpenAIModel):
    object: str = "list"
    data: list[ModelResult]
