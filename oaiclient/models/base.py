from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class OpenAIModel(BaseModel):
    """Base for request and result payloads; unknown keys are kept on `model_extra`."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )
