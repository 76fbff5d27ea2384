from __future__ import annotations

import queue
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from ..cancellation import CancellableRequest
from ..exceptions import APIError, OpenAIClientError
from ..result import Failure, Result
from .click_compat import click
from .context import CLIContext, build_result, error_info_for_exception, exit_code_for_exception
from .errors import CLIError
from .render import RenderSettings, render_result
from .results import CommandResult

T = TypeVar("T")

_END = object()


@dataclass(frozen=True, slots=True)
class CommandOutput:
    data: Any | None = None
    warnings: list[str] | None = None
    streamed: bool = False
    exit_code: int = 0


def emit_result(ctx: CLIContext, result: CommandResult) -> None:
    render_result(
        result,
        settings=RenderSettings(output=ctx.output, quiet=ctx.quiet, verbosity=ctx.verbosity),
    )


CommandFn = Callable[[CLIContext, list[str]], CommandOutput]


def run_command(ctx: CLIContext, *, command: str, fn: CommandFn) -> None:
    started = time.time()
    warnings: list[str] = []
    try:
        out = fn(ctx, warnings)
        if not out.streamed:
            emit_result(
                ctx,
                build_result(
                    ok=True,
                    command=command,
                    started_at=started,
                    data=out.data,
                    warnings=out.warnings or warnings,
                ),
            )
        raise click.exceptions.Exit(out.exit_code)
    except click.exceptions.Exit:
        raise
    except Exception as exc:
        request_id = exc.request_id if isinstance(exc, APIError) else None
        result = build_result(
            ok=False,
            command=command,
            started_at=started,
            data=None,
            warnings=warnings,
            request_id=request_id,
            error=error_info_for_exception(exc),
        )
        emit_result(ctx, result)
        raise click.exceptions.Exit(exit_code_for_exception(exc)) from exc


def wait_for(
    start: Callable[[Callable[[Result[T]], None]], CancellableRequest],
    *,
    timeout: float | None = None,
) -> T:
    """Block the CLI thread on a callback-style call and return its value."""
    inbox: queue.SimpleQueue[Result[T]] = queue.SimpleQueue()
    handle = start(inbox.put)
    try:
        result = inbox.get(timeout=timeout)
    except queue.Empty as exc:
        handle.cancel()
        raise CLIError("Request timed out.", exit_code=5, error_type="timeout") from exc
    except KeyboardInterrupt:
        handle.cancel()
        raise
    return result.unwrap()


def iterate_stream(
    start: Callable[
        [Callable[[Result[Any]], None], Callable[[OpenAIClientError | None], None]],
        CancellableRequest,
    ],
) -> Iterator[Any]:
    """Yield stream values on the CLI thread; raises the terminal error, if any."""
    inbox: queue.SimpleQueue[Any] = queue.SimpleQueue()
    handle = start(inbox.put, lambda error: inbox.put(_END if error is None else error))
    try:
        while True:
            item = inbox.get()
            if item is _END:
                return
            if isinstance(item, OpenAIClientError):
                raise item
            if isinstance(item, Failure):
                raise item.error
            yield item.value
    finally:
        handle.cancel()
