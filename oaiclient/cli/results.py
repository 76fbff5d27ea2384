from __future__ import annotations

from typing import Any

from pydantic import Field

from ..models.base import OpenAIModel


class ErrorInfo(OpenAIModel):
    type: str
    message: str
    hint: str | None = None
    details: dict[str, Any] | None = None


class CommandMeta(OpenAIModel):
    duration_ms: int = Field(..., alias="durationMs")
    request_id: str | None = Field(None, alias="requestId")


class CommandResult(OpenAIModel):
    ok: bool
    command: str
    data: Any | None = None
    warnings: list[str] = Field(default_factory=list)
    meta: CommandMeta
    error: ErrorInfo | None = None
