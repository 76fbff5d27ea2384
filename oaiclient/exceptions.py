"""
Typed errors delivered (or raised) by the request-execution core.

Every call ends in exactly one of: a success value, one of these errors, or a
silent cancellation. The callback facades deliver these as values; the async
facade and `Result.unwrap()` raise them.
"""

from __future__ import annotations

from typing import Any


class OpenAIClientError(Exception):
    """Base class for every error produced by the client."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransportError(OpenAIClientError):
    """Connection failure, timeout or name resolution failure. Never retried here."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class APIError(OpenAIClientError):
    """Non-2xx response, or an error envelope received inside a stream."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        payload: Any | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
        self.request_id = request_id

    def __repr__(self) -> str:
        return f"APIError(status_code={self.status_code!r}, message={self.message!r})"


class DecodeError(OpenAIClientError):
    """A successful response whose body does not match the expected schema."""

    def __init__(self, message: str, *, body: bytes | None = None) -> None:
        super().__init__(message)
        self.body = body


class StreamFramingError(OpenAIClientError):
    """A streaming session broke its framing contract. Always terminal."""


class MalformedFrameError(StreamFramingError):
    def __init__(self, message: str, *, frame: str) -> None:
        super().__init__(message)
        self.frame = frame


class StreamTerminatedError(StreamFramingError):
    """The connection closed before the terminal marker was received."""


class RequestCancelledError(OpenAIClientError):
    """Only delivered when the caller asked for cancellation to be reported."""

    def __init__(self, message: str = "Request was cancelled") -> None:
        super().__init__(message)


class InvalidQueryError(OpenAIClientError):
    """A query rejected locally, before any network call."""


class ClientClosedError(OpenAIClientError):
    """The client was closed before the call started."""

    def __init__(self, message: str = "Client has been closed") -> None:
        super().__init__(message)
