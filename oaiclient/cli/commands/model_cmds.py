from __future__ import annotations

from ..click_compat import RichCommand, RichGroup, click
from ..context import CLIContext
from ..options import output_options
from ..runner import CommandOutput, run_command, wait_for


@click.group(name="models", cls=RichGroup)
def models_group() -> None:
    """Model commands."""


@models_group.command(name="list", cls=RichCommand)
@output_options
@click.pass_obj
def models_list(ctx: CLIContext) -> None:
    """List available models."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        models = wait_for(client.models.list)
        rows = [
            {"id": m.id, "ownedBy": m.owned_by, "created": m.created}
            for m in sorted(models.data, key=lambda m: m.id)
        ]
        return CommandOutput(data={"data": rows})

    run_command(ctx, command="models list", fn=fn)


@models_group.command(name="get", cls=RichCommand)
@click.argument("model_id")
@output_options
@click.pass_obj
def models_get(ctx: CLIContext, model_id: str) -> None:
    """Retrieve one model by id."""

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        client = ctx.get_client()
        model = wait_for(lambda completion: client.models.retrieve(model_id, completion))
        return CommandOutput(data=model.model_dump(mode="json", exclude_none=True))

    run_command(ctx, command="models get", fn=fn)
