from __future__ import annotations

from .base import OpenAIModel


class RunResult(OpenAIModel):
    id: str
    object: str = "thread.run"
    thread_id: str
    assistant_id: str | None = None
    status: str
    created_at: int | None = None
