from __future__ import annotations

import sys
import time
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..client import OpenAI
from ..clients.pipeline import BaseMiddleware, Middleware, RawResponse, RequestDescriptor
from ..configuration import Configuration, maybe_load_dotenv
from ..exceptions import OpenAIClientError
from .errors import CLIError, classify_client_error, details_for_client_error, usage_error
from .logging import set_redaction_api_key
from .results import CommandMeta, CommandResult, ErrorInfo

OutputFormat = Literal["table", "json"]


def _strip_url_query_and_fragment(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class TraceMiddleware(BaseMiddleware):
    """Writes one stderr line per request and per response."""

    def _write(self, line: str) -> None:
        sys.stderr.write(line + "\n")
        with suppress(OSError, ValueError):
            sys.stderr.flush()

    def intercept_request(self, request: RequestDescriptor) -> RequestDescriptor:
        self._write(f"trace -> {request.method} {_strip_url_query_and_fragment(request.url)}")
        return request

    def intercept_response(self, response: RawResponse) -> RawResponse:
        url = response.request.url if response.request is not None else "?"
        self._write(f"trace <- {response.status_code} {_strip_url_query_and_fragment(url)}")
        return response


@dataclass
class CLIContext:
    output: OutputFormat
    quiet: bool
    verbosity: int
    dotenv: bool
    env_file: Path
    api_key: str | None
    host: str | None
    base_path: str | None
    timeout: float | None
    trace: bool
    transport: httpx.BaseTransport | None = None

    _client: OpenAI | None = field(default=None, repr=False)

    def load_dotenv_if_requested(self) -> None:
        try:
            maybe_load_dotenv(load_dotenv=self.dotenv, dotenv_path=self.env_file, override=False)
        except ImportError as exc:
            raise CLIError(
                "Optional .env support requires python-dotenv.",
                exit_code=2,
                error_type="usage_error",
            ) from exc

    def resolve_configuration(self) -> Configuration:
        self.load_dotenv_if_requested()
        try:
            configuration = Configuration.from_env(
                token=self.api_key,
                host=self.host,
                base_path=self.base_path,
                timeout=self.timeout,
            )
        except ValueError as exc:
            raise usage_error(str(exc)) from exc
        if not configuration.token:
            raise usage_error(
                "Missing API key.",
                hint="Set OPENAI_API_KEY or pass --api-key.",
            )
        set_redaction_api_key(configuration.token)
        return configuration

    def get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client
        middlewares: list[Middleware] = [TraceMiddleware()] if self.trace else []
        self._client = OpenAI(
            configuration=self.resolve_configuration(),
            transport=self.transport,
            middlewares=middlewares,
        )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def exit_code_for_exception(exc: Exception) -> int:
    if isinstance(exc, CLIError):
        return exc.exit_code
    if isinstance(exc, OpenAIClientError):
        return classify_client_error(exc)[1]
    return 1


def error_info_for_exception(exc: Exception) -> ErrorInfo:
    if isinstance(exc, CLIError):
        return ErrorInfo(type=exc.error_type, message=exc.message, hint=exc.hint, details=exc.details)
    if isinstance(exc, OpenAIClientError):
        return ErrorInfo(
            type=classify_client_error(exc)[0],
            message=str(exc),
            details=details_for_client_error(exc),
        )
    return ErrorInfo(type="internal_error", message=str(exc) or exc.__class__.__name__)


def build_result(
    *,
    ok: bool,
    command: str,
    started_at: float,
    data: Any | None,
    warnings: list[str],
    request_id: str | None = None,
    error: ErrorInfo | None = None,
) -> CommandResult:
    duration_ms = int(max(0.0, (time.time() - started_at) * 1000))
    return CommandResult(
        ok=ok,
        command=command,
        data=data,
        warnings=warnings,
        meta=CommandMeta(duration_ms=duration_ms, request_id=request_id),
        error=error,
    )
