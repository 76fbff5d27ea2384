"""Chat completion payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .base import OpenAIModel

Role = Literal["system", "developer", "user", "assistant", "tool"]


class ChatMessage(OpenAIModel):
    role: Role
    content: str | None = None
    name: str | None = None
    tool_call_id: str | None = None


class ChatQuery(OpenAIModel):
    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    n: int | None = None
    stop: str | list[str] | None = None
    user: str | None = None
    stream: bool = False

    def make_streamable(self) -> ChatQuery:
        return self.model_copy(update={"stream": True})

    def make_non_streamable(self) -> ChatQuery:
        return self.model_copy(update={"stream": False})


class Usage(OpenAIModel):
    prompt_tokens: int
    completion_tokens: int | None = None
    total_tokens: int


class ChatChoice(OpenAIModel):
    index: int
    message: ChatMessage
    finish_reason: str | None = None


class ChatResult(OpenAIModel):
    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: list[ChatChoice]
    usage: Usage | None = None


class ChoiceDelta(OpenAIModel):
    role: Role | None = None
    content: str | None = None


class ChatStreamChoice(OpenAIModel):
    index: int
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: str | None = None


class ChatStreamResult(OpenAIModel):
    id: str
    object: str = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChatStreamChoice]
    usage: Usage | None = None
