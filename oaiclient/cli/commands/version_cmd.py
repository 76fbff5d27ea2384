from __future__ import annotations

import platform

import httpx
import pydantic

import oaiclient

from ..click_compat import RichCommand, click
from ..context import CLIContext
from ..options import output_options
from ..runner import CommandOutput, run_command


@click.command(name="version", cls=RichCommand)
@output_options
@click.pass_obj
def version_cmd(ctx: CLIContext) -> None:
    """Show client and runtime versions (no network)."""

    def fn(_: CLIContext, _warnings: list[str]) -> CommandOutput:
        data = {
            "version": oaiclient.__version__,
            "pythonVersion": platform.python_version(),
            "httpxVersion": httpx.__version__,
            "pydanticVersion": pydantic.VERSION,
        }
        return CommandOutput(data=data)

    run_command(ctx, command="version", fn=fn)
