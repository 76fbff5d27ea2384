"""
Internal request pipeline primitives.

Requests and responses are modeled independently of the underlying HTTP transport
so cross-cutting behavior can be implemented as middleware.

Ordering: pre-send transforms (`intercept_request`) and post-receive transforms
(`intercept_response`, `intercept_stream_data`) both run in registration order.
Post-receive is *not* reversed.

Middleware transforms are expected to be total. A middleware that needs to fail
a call should produce a request or response that fails in the next stage (for
example a response with an error status) rather than raise mid-pipeline.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeAlias, runtime_checkable

Header: TypeAlias = tuple[str, str]


def _normalize_headers(headers: Mapping[str, str] | Iterable[Header] | None) -> tuple[Header, ...]:
    if headers is None:
        return ()
    items = headers.items() if isinstance(headers, Mapping) else headers
    return tuple((str(name), str(value)) for name, value in items)


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """An immutable description of one HTTP call."""

    method: str
    url: str
    headers: tuple[Header, ...] = ()
    content: bytes | None = None
    stream: bool = False
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", _normalize_headers(self.headers))

    def header(self, name: str) -> str | None:
        """Return the last value for `name` (case-insensitive), if any."""
        lowered = name.lower()
        found: str | None = None
        for key, value in self.headers:
            if key.lower() == lowered:
                found = value
        return found

    def with_headers(self, headers: Mapping[str, str]) -> RequestDescriptor:
        """Return a copy with `headers` set, replacing same-named headers."""
        lowered = {name.lower() for name in headers}
        kept = tuple(h for h in self.headers if h[0].lower() not in lowered)
        return dataclasses.replace(self, headers=kept + _normalize_headers(headers))

    def replace(self, **changes: object) -> RequestDescriptor:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class RawResponse:
    """A fully-read response, before decoding."""

    status_code: int
    headers: tuple[Header, ...]
    content: bytes
    request: RequestDescriptor | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _normalize_headers(self.headers))

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    @property
    def content_type(self) -> str | None:
        return self.header("content-type")

    def replace(self, **changes: object) -> RawResponse:
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]


@runtime_checkable
class Middleware(Protocol):
    def intercept_request(self, request: RequestDescriptor) -> RequestDescriptor: ...

    def intercept_response(self, response: RawResponse) -> RawResponse: ...

    def intercept_stream_data(self, request: RequestDescriptor, data: bytes) -> bytes: ...


class BaseMiddleware:
    """Pass-through middleware; subclasses override only the hooks they need."""

    def intercept_request(self, request: RequestDescriptor) -> RequestDescriptor:
        return request

    def intercept_response(self, response: RawResponse) -> RawResponse:
        return response

    def intercept_stream_data(self, request: RequestDescriptor, data: bytes) -> bytes:
        return data


class MiddlewarePipeline:
    """An ordered, immutable sequence of middleware shared by every facade."""

    __slots__ = ("_middlewares",)

    def __init__(self, middlewares: Sequence[Middleware] = ()) -> None:
        self._middlewares: tuple[Middleware, ...] = tuple(middlewares)

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return self._middlewares

    def __len__(self) -> int:
        return len(self._middlewares)

    def prepare(self, request: RequestDescriptor) -> RequestDescriptor:
        for middleware in self._middlewares:
            request = middleware.intercept_request(request)
        return request

    def handle(self, response: RawResponse) -> RawResponse:
        for middleware in self._middlewares:
            response = middleware.intercept_response(response)
        return response

    def handle_stream_data(self, request: RequestDescriptor, data: bytes) -> bytes:
        for middleware in self._middlewares:
            data = middleware.intercept_stream_data(request, data)
        return data
