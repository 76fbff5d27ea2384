"""
URL and path building.

Endpoint paths are templates such as "/threads/{thread_id}/runs/{run_id}". Path
parameters are percent-encoded and joined onto the configured scheme, host, port
and base path.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote, urlencode

from .configuration import Configuration

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_DEFAULT_PORTS = {"https": 443, "http": 80}


class APIPath:
    """Endpoint path templates used by the bundled services."""

    CHATS = "/chat/completions"
    EMBEDDINGS = "/embeddings"
    MODELS = "/models"
    MODEL = "/models/{model}"

    AUDIO_SPEECH = "/audio/speech"
    AUDIO_TRANSCRIPTIONS = "/audio/transcriptions"

    RUN_RETRIEVE = "/threads/{thread_id}/runs/{run_id}"


def resolve_path(template: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Substitute `{name}` placeholders in `template`.

    Raises:
        ValueError: If a placeholder has no value, a value is empty, or an unused
            parameter is supplied.
    """
    params = dict(params or {})
    used: set[str] = set()

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in params:
            raise ValueError(f"Missing path parameter {name!r} for {template!r}")
        value = str(params[name])
        if not value:
            raise ValueError(f"Path parameter {name!r} cannot be empty")
        used.add(name)
        return quote(value, safe="")

    path = _PLACEHOLDER.sub(_sub, template)
    unused = set(params) - used
    if unused:
        raise ValueError(f"Unknown path parameter(s) for {template!r}: {sorted(unused)}")
    return path


def _join(base_path: str, path: str) -> str:
    base = "/" + base_path.strip("/") if base_path.strip("/") else ""
    tail = path if path.startswith("/") else "/" + path
    return base + tail


def build_url(
    configuration: Configuration,
    path: str,
    *,
    path_params: Mapping[str, Any] | None = None,
    after: str | None = None,
    before: str | None = None,
    query: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
) -> str:
    """
    Build an absolute URL for `path` against the configured host.

    `after`/`before` are the cursor parameters used by list endpoints.
    """
    resolved = resolve_path(path, path_params)
    port = configuration.port
    netloc = configuration.host
    if port != _DEFAULT_PORTS.get(configuration.scheme):
        netloc = f"{netloc}:{port}"
    url = f"{configuration.scheme}://{netloc}{_join(configuration.base_path, resolved)}"

    pairs: list[tuple[str, str]] = []
    if query:
        items = query.items() if isinstance(query, Mapping) else query
        pairs.extend((str(k), str(v)) for k, v in items if v is not None)
    if after is not None:
        pairs.append(("after", after))
    if before is not None:
        pairs.append(("before", before))
    if pairs:
        url = f"{url}?{urlencode(pairs)}"
    return url
