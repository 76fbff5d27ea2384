from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .results import CommandResult

_ERROR_TITLES = {
    "usage_error": "Usage error",
    "auth_error": "Authentication error",
    "not_found": "Not found",
    "server_error": "Server error",
    "network_error": "Network error",
    "decode_error": "Invalid response",
    "api_error": "API error",
    "cancelled": "Cancelled",
    "timeout": "Timed out",
    "internal_error": "Internal error",
}

# Keys holding Unix timestamps in API payloads.
_TIMESTAMP_KEYS = frozenset({"created", "createdAt", "created_at"})


@dataclass(frozen=True, slots=True)
class RenderSettings:
    output: str  # "table" | "json"
    quiet: bool
    verbosity: int


def _cell(key: str, value: Any) -> str:
    if value is None:
        return ""
    if key in _TIMESTAMP_KEYS and isinstance(value, int) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _rows_table(rows: list[dict[str, Any]]) -> Table:
    table = Table(header_style="bold", show_edge=False)
    if not rows:
        table.add_column("(empty)")
        return table
    columns: list[str] = []
    for row in rows:
        columns.extend(k for k in row if k not in columns)
    for column in columns:
        table.add_column(column, no_wrap=column == "id")
    for row in rows:
        table.add_row(*(_cell(c, row.get(c)) for c in columns))
    return table


def _record_table(record: dict[str, Any]) -> Table:
    table = Table(show_header=False, show_edge=False)
    table.add_column(style="bold")
    table.add_column()
    for key, value in record.items():
        table.add_row(key, _cell(key, value))
    return table


def _human(result: CommandResult) -> Any:
    data = result.data
    if data is None:
        return None
    if isinstance(data, dict):
        if result.command == "version":
            return Text(str(data.get("version", "")), style="bold")
        if result.command == "chat":
            return Text(str(data.get("content") or ""))
        rows = data.get("data")
        if isinstance(rows, list):
            return _rows_table([r for r in rows if isinstance(r, dict)])
        return _record_table(data)
    return Text(str(data))


def _print_error(result: CommandResult, stderr: Console, *, verbosity: int) -> None:
    error = result.error
    if error is None:
        stderr.print("Error")
        return
    title = _ERROR_TITLES.get(error.type.strip(), "Error")
    stderr.print(f"{title}: {error.message}", markup=False, highlight=False)
    if error.hint:
        stderr.print(f"Hint: {error.hint}", markup=False, highlight=False)
    if verbosity >= 1:
        if result.meta.request_id:
            stderr.print(f"Request id: {result.meta.request_id}", highlight=False)
        if error.details:
            stderr.print(_record_table(error.details))


def render_result(result: CommandResult, *, settings: RenderSettings) -> int:
    if settings.output == "json":
        payload = result.model_dump(by_alias=True, mode="json")
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        return 0

    stderr = Console(file=sys.stderr, force_terminal=False)
    if not result.ok:
        _print_error(result, stderr, verbosity=settings.verbosity)
        return 0

    renderable = _human(result)
    if renderable is not None:
        Console(file=sys.stdout, force_terminal=False).print(renderable)
    if not settings.quiet:
        for warning in result.warnings:
            stderr.print(f"Warning: {warning}", markup=False)
    return 0
