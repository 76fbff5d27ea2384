"""
Client configuration.

A `Configuration` is built once and shared read-only by every facade of a client.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, Flag
from pathlib import Path
from types import MappingProxyType

DEFAULT_HOST = "api.openai.com"
DEFAULT_BASE_PATH = "/v1"
DEFAULT_TIMEOUT = 60.0


class ParsingOptions(Flag):
    """Bit flags relaxing how response bodies are validated."""

    NONE = 0
    # Keys the result model does not declare are accepted and kept.
    ALLOW_UNKNOWN_FIELDS = 1
    # Pydantic lax mode: "1" may validate as int, etc.
    LAX_TYPES = 2

    RELAXED = ALLOW_UNKNOWN_FIELDS | LAX_TYPES


class StreamErrorPolicy(Enum):
    """What a streaming session does with a frame that cannot be decoded."""

    TERMINATE = "terminate"
    SKIP = "skip"


def _freeze_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(headers or {}))


@dataclass(frozen=True, slots=True)
class Configuration:
    """
    Immutable connection and parsing settings.

    Attributes:
        token: API token sent as `Authorization: Bearer <token>`. Leave unset when a
            proxy adds authentication.
        organization_id: Optional value for the `OpenAI-Organization` header.
        host: API host, without scheme.
        port: API port.
        scheme: `https` or `http`.
        base_path: Path prefix for every endpoint (e.g. "/v1").
        timeout: Per-request timeout in seconds.
        custom_headers: Headers applied after the defaults; on name collision they win.
        parsing_options: Decoder leniency flags.
        stream_error_policy: Behavior on a frame that fails to decode.
    """

    token: str | None = None
    organization_id: str | None = None
    host: str = DEFAULT_HOST
    port: int = 443
    scheme: str = "https"
    base_path: str = DEFAULT_BASE_PATH
    timeout: float = DEFAULT_TIMEOUT
    # Read-only mapping; compared by value but left out of the hash.
    custom_headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    parsing_options: ParsingOptions = ParsingOptions.RELAXED
    stream_error_policy: StreamErrorPolicy = StreamErrorPolicy.TERMINATE

    def __post_init__(self) -> None:
        if self.scheme not in ("http", "https"):
            raise ValueError(f"scheme must be 'http' or 'https', got {self.scheme!r}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        object.__setattr__(self, "custom_headers", _freeze_headers(self.custom_headers))

    @classmethod
    def from_env(
        cls,
        *,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> Configuration:
        """
        Build a configuration from `OPENAI_*` environment variables.

        Explicit keyword overrides take precedence over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get("OPENAI_API_KEY", "").strip():
            values["token"] = env["OPENAI_API_KEY"].strip()
        if env.get("OPENAI_ORGANIZATION", "").strip():
            values["organization_id"] = env["OPENAI_ORGANIZATION"].strip()
        if env.get("OPENAI_HOST", "").strip():
            values["host"] = env["OPENAI_HOST"].strip()
        if env.get("OPENAI_BASE_PATH", "").strip():
            values["base_path"] = env["OPENAI_BASE_PATH"].strip()
        if env.get("OPENAI_TIMEOUT", "").strip():
            try:
                values["timeout"] = float(env["OPENAI_TIMEOUT"])
            except ValueError as e:
                raise ValueError(f"OPENAI_TIMEOUT is not a number: {env['OPENAI_TIMEOUT']!r}") from e
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


def maybe_load_dotenv(
    *,
    load_dotenv: bool,
    dotenv_path: str | Path | None = None,
    override: bool = False,
) -> bool:
    """
    Optionally load a `.env` file into the process environment.

    Requires `python-dotenv`; raises ImportError when it is requested but missing.
    """
    if not load_dotenv:
        return False
    import dotenv

    path = Path(dotenv_path) if dotenv_path is not None else None
    if path is not None and not path.exists():
        return False
    return bool(dotenv.load_dotenv(dotenv_path=path, override=override))
