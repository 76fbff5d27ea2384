"""
Request descriptor builders.

Builders attach the default headers (`Authorization`, `OpenAI-Organization`,
`Content-Type`) and then the configured custom headers, which win on collision.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel

from .clients.pipeline import RequestDescriptor
from .configuration import Configuration

JSON_CONTENT_TYPE = "application/json"


def default_headers(configuration: Configuration) -> dict[str, str]:
    headers: dict[str, str] = {}
    if configuration.token:
        headers["Authorization"] = f"Bearer {configuration.token}"
    if configuration.organization_id:
        headers["OpenAI-Organization"] = configuration.organization_id
    return headers


def _encode_json_body(body: BaseModel | Mapping[str, Any] | None) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def json_request(
    configuration: Configuration,
    url: str,
    *,
    method: str = "POST",
    body: BaseModel | Mapping[str, Any] | None = None,
    stream: bool = False,
    timeout: float | None = None,
) -> RequestDescriptor:
    """Build a descriptor with a JSON body (or no body, for GET/DELETE)."""
    headers = default_headers(configuration)
    content = _encode_json_body(body)
    if content is not None:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    if stream:
        headers["Accept"] = "text/event-stream"
    headers.update(configuration.custom_headers)
    return RequestDescriptor(
        method=method,
        url=url,
        headers=tuple(headers.items()),
        content=content,
        stream=stream,
        timeout=timeout if timeout is not None else configuration.timeout,
    )


def multipart_request(
    configuration: Configuration,
    url: str,
    *,
    fields: Mapping[str, Any],
    files: Mapping[str, tuple[str, bytes, str]],
    stream: bool = False,
    timeout: float | None = None,
) -> RequestDescriptor:
    """
    Build a multipart/form-data descriptor.

    `files` maps a form field to `(filename, content, mime_type)`. Encoding is
    delegated to httpx so the boundary and part headers match what it would send.
    """
    data = {k: _form_value(v) for k, v in fields.items() if v is not None}
    encoded = httpx.Request("POST", url, data=data, files=dict(files))
    content = encoded.read()

    headers = default_headers(configuration)
    headers["Content-Type"] = encoded.headers["Content-Type"]
    if stream:
        headers["Accept"] = "text/event-stream"
    headers.update(configuration.custom_headers)
    return RequestDescriptor(
        method="POST",
        url=url,
        headers=tuple(headers.items()),
        content=content,
        stream=stream,
        timeout=timeout if timeout is not None else configuration.timeout,
    )


def _form_value(value: Any) -> str | list[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_form_value(v) for v in value]  # type: ignore[misc]
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)
