"""
CLI logging setup.

Library modules only create `logging.getLogger(__name__)` loggers; the CLI is
the one place that attaches handlers. Every handler it installs carries a
filter that masks the API key and any `Bearer` token.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path

_BEARER_PATTERN = re.compile(r"Bearer\s+[A-Za-z0-9._\-]+")
_SECRET_KEY_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
_MASK = "***"

_redaction_api_key: str | None = None


def set_redaction_api_key(api_key: str | None) -> None:
    global _redaction_api_key
    _redaction_api_key = api_key or None


def redact(text: str) -> str:
    if _redaction_api_key:
        text = text.replace(_redaction_api_key, _MASK)
    text = _BEARER_PATTERN.sub(f"Bearer {_MASK}", text)
    return _SECRET_KEY_PATTERN.sub(_MASK, text)


class RedactionFilter(logging.Filter):
    """Masks secrets in the formatted message; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


@dataclass(frozen=True, slots=True)
class PreviousLogging:
    level: int
    handlers: list[logging.Handler]


def _level_for(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(
    *,
    verbosity: int,
    log_file: Path | None = None,
    api_key_for_redaction: str | None = None,
) -> PreviousLogging:
    """
    Route `oaiclient` loggers to stderr (and optionally a file).

    Returns the prior root state for `restore_logging`.
    """
    root = logging.getLogger()
    previous = PreviousLogging(level=root.level, handlers=list(root.handlers))
    if api_key_for_redaction is not None:
        set_redaction_api_key(api_key_for_redaction)

    handlers: list[logging.Handler] = []
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(_level_for(verbosity))
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handlers.append(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(threadName)s: %(message)s")
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(RedactionFilter())

    root.handlers = handlers
    root.setLevel(min(h.level for h in handlers))
    return previous


def restore_logging(previous: PreviousLogging) -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if handler not in previous.handlers:
            handler.close()
    root.handlers = previous.handlers
    root.setLevel(previous.level)
