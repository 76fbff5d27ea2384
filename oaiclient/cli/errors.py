from __future__ import annotations

from typing import Any

from ..exceptions import (
    APIError,
    DecodeError,
    OpenAIClientError,
    RequestCancelledError,
    StreamFramingError,
    TransportError,
)


class CLIError(Exception):
    def __init__(
        self,
        message: str,
        *,
        exit_code: int = 1,
        error_type: str = "error",
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.error_type = error_type
        self.hint = hint
        self.details = details

    def __str__(self) -> str:  # pragma: no cover
        return self.message


def usage_error(message: str, *, hint: str | None = None) -> CLIError:
    return CLIError(message, exit_code=2, error_type="usage_error", hint=hint)


def classify_client_error(exc: OpenAIClientError) -> tuple[str, int]:
    """Map a client error to `(error_type, exit_code)`."""
    if isinstance(exc, APIError):
        if exc.status_code in (401, 403):
            return "auth_error", 3
        if exc.status_code == 404:
            return "not_found", 4
        if exc.status_code == 429 or exc.status_code >= 500:
            return "server_error", 5
        return "api_error", 1
    if isinstance(exc, TransportError):
        return "network_error", 5
    if isinstance(exc, (DecodeError, StreamFramingError)):
        return "decode_error", 1
    if isinstance(exc, RequestCancelledError):
        return "cancelled", 130
    return "client_error", 1


def details_for_client_error(exc: OpenAIClientError) -> dict[str, Any] | None:
    if isinstance(exc, APIError):
        details: dict[str, Any] = {"statusCode": exc.status_code}
        if exc.request_id:
            details["requestId"] = exc.request_id
        return details
    return None
