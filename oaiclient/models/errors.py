from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError


class APIErrorPayload(BaseModel):
    """The object inside an API `{"error": {...}}` envelope."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    type: str | None = None
    param: str | None = None
    code: str | int | None = None


def parse_error_envelope(data: Any) -> APIErrorPayload | None:
    """Return the payload if `data` is an error envelope, else None."""
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        try:
            return APIErrorPayload.model_validate(error)
        except ValidationError:
            return None
    return None
