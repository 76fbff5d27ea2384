from __future__ import annotations

from pathlib import Path

import httpx

import oaiclient

from .click_compat import RichGroup, click
from .context import CLIContext
from .logging import configure_logging, restore_logging


@click.group(
    name="oaiclient",
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    cls=RichGroup,
)
@click.option("--json", "json_flag", is_flag=True, help="Emit JSON result envelopes.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-essential stderr output.")
@click.option("-v", "verbose", count=True, help="Increase verbosity (-v, -vv).")
@click.option("--dotenv/--no-dotenv", default=False, help="Opt-in .env loading.")
@click.option("--env-file", type=click.Path(dir_okay=False), default=".env")
@click.option("--api-key", type=str, default=None, help="API key (default: $OPENAI_API_KEY).")
@click.option("--host", type=str, default=None, help="API host (default: api.openai.com).")
@click.option("--base-path", type=str, default=None, help="Path prefix (default: /v1).")
@click.option("--timeout", type=float, default=None, help="Per-request timeout in seconds.")
@click.option("--trace", is_flag=True, help="Trace requests and responses to stderr.")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None)
@click.version_option(version=oaiclient.__version__, prog_name="oaiclient")
@click.pass_context
def cli(
    click_ctx: click.Context,
    *,
    json_flag: bool,
    quiet: bool,
    verbose: int,
    dotenv: bool,
    env_file: str,
    api_key: str | None,
    host: str | None,
    base_path: str | None,
    timeout: float | None,
    trace: bool,
    log_file: str | None,
) -> None:
    if click_ctx.invoked_subcommand is None:
        # No args: show help; no network calls.
        click.echo(click_ctx.get_help())
        raise click.exceptions.Exit(0)

    # Embedders (and tests) may pass {"transport": httpx.BaseTransport} as obj.
    transport = None
    if isinstance(click_ctx.obj, dict):
        candidate = click_ctx.obj.get("transport")
        if isinstance(candidate, httpx.BaseTransport):
            transport = candidate

    click_ctx.obj = CLIContext(
        output="json" if json_flag else "table",
        quiet=quiet,
        verbosity=verbose,
        dotenv=dotenv,
        env_file=Path(env_file),
        api_key=api_key,
        host=host,
        base_path=base_path,
        timeout=timeout,
        trace=trace,
        transport=transport,
    )
    click_ctx.call_on_close(click_ctx.obj.close)

    previous_logging = configure_logging(
        verbosity=verbose,
        log_file=Path(log_file) if log_file else None,
        api_key_for_redaction=api_key,
    )
    click_ctx.call_on_close(lambda: restore_logging(previous_logging))


# Register commands
from .commands.chat_cmd import chat_cmd as _chat_cmd  # noqa: E402
from .commands.model_cmds import models_group as _models_group  # noqa: E402
from .commands.version_cmd import version_cmd as _version_cmd  # noqa: E402

cli.add_command(_version_cmd)
cli.add_command(_models_group)
cli.add_command(_chat_cmd)
