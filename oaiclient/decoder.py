"""
Response decoding.

Turns a (middleware-processed) raw response into a `Result`:

- non-2xx: always an `APIError` with the status code, whatever the body holds;
- 2xx: the body validated against the requested model, or a `DecodeError`.

`ParsingOptions` can relax unknown-field and type-coercion handling. No option
turns a missing required field into a success.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .clients.pipeline import RawResponse
from .configuration import ParsingOptions
from .exceptions import APIError, DecodeError
from .models.errors import parse_error_envelope
from .result import Failure, Result, Success

T = TypeVar("T")

# `None` requests the plain JSON value; `bytes` requests the raw body.
ResponseModel = type[BaseModel] | type[bytes] | None


def _known_keys(model: type[BaseModel]) -> set[str]:
    keys: set[str] = set()
    for name, info in model.model_fields.items():
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
        if isinstance(info.validation_alias, str):
            keys.add(info.validation_alias)
    return keys


def _extra_paths(value: Any, path: str = "") -> list[str]:
    """Dotted paths of keys that no model declared, at any depth."""
    found: list[str] = []
    if isinstance(value, BaseModel):
        for key in value.model_extra or {}:
            found.append(f"{path}{key}")
        for name in type(value).model_fields:
            found.extend(_extra_paths(getattr(value, name), f"{path}{name}."))
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            found.extend(_extra_paths(item, f"{path}{index}."))
    elif isinstance(value, dict):
        for key, item in value.items():
            found.extend(_extra_paths(item, f"{path}{key}."))
    return found


def _status_message(status_code: int) -> str:
    return f"API request failed with HTTP {status_code}"


def api_error_from_response(response: RawResponse) -> APIError:
    payload: Any = None
    text = response.content.decode("utf-8", errors="replace")
    if text.strip():
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = text
    envelope = parse_error_envelope(payload)
    if envelope is not None:
        payload = envelope
    message = envelope.message if envelope is not None and envelope.message else None
    if message is None and isinstance(payload, dict) and isinstance(payload.get("error"), str):
        message = payload["error"]
    return APIError(
        message or _status_message(response.status_code),
        status_code=response.status_code,
        payload=payload,
        request_id=response.header("x-request-id"),
    )


class ResponseDecoder:
    def __init__(self, parsing_options: ParsingOptions = ParsingOptions.RELAXED) -> None:
        self._options = parsing_options

    @property
    def parsing_options(self) -> ParsingOptions:
        return self._options

    def decode(self, response: RawResponse, model: ResponseModel) -> Result[Any]:
        if not response.is_success:
            return Failure(api_error_from_response(response))
        if model is bytes:
            return Success(response.content)
        return self.decode_json(response.content, model)

    def decode_json(self, body: bytes | str, model: ResponseModel) -> Result[Any]:
        """Decode one JSON document, e.g. a response body or a single stream frame."""
        raw = body.encode("utf-8") if isinstance(body, str) else body
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Failure(DecodeError(f"Response body is not valid JSON: {e}", body=raw))
        if model is None:
            return Success(data)
        if model is bytes:
            return Success(raw)
        return self.validate(data, model, body=raw)

    def validate(self, data: Any, model: type[BaseModel], *, body: bytes | None = None) -> Result[Any]:
        allow_unknown = ParsingOptions.ALLOW_UNKNOWN_FIELDS in self._options
        if not allow_unknown and isinstance(data, dict):
            # Models that ignore extras drop them silently; check the top level by name.
            unknown = sorted(set(data) - _known_keys(model))
            if unknown:
                return self._unknown(model, unknown, body)
        strict = ParsingOptions.LAX_TYPES not in self._options
        try:
            value = model.model_validate(data, strict=strict)
        except ValidationError as e:
            return Failure(
                DecodeError(f"Response does not match {model.__name__}: {e}", body=body)
            )
        if not allow_unknown:
            unknown = _extra_paths(value)
            if unknown:
                return self._unknown(model, unknown, body)
        return Success(value)

    @staticmethod
    def _unknown(model: type[BaseModel], fields: list[str], body: bytes | None) -> Failure:
        return Failure(
            DecodeError(f"Unknown field(s) for {model.__name__}: {', '.join(fields)}", body=body)
        )
