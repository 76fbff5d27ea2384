from __future__ import annotations

from ...models.chat import ChatMessage, ChatQuery
from ..click_compat import RichCommand, click
from ..context import CLIContext
from ..errors import usage_error
from ..options import output_options
from ..runner import CommandOutput, iterate_stream, run_command, wait_for


@click.command(name="chat", cls=RichCommand)
@click.argument("prompt", required=False)
@click.option("--model", "-m", required=True, help="Model id, e.g. gpt-4o-mini.")
@click.option("--system", "system_prompt", default=None, help="Optional system message.")
@click.option("--temperature", type=float, default=None)
@click.option("--max-tokens", type=int, default=None)
@click.option("--stream/--no-stream", default=False, help="Print tokens as they arrive.")
@output_options
@click.pass_obj
def chat_cmd(
    ctx: CLIContext,
    prompt: str | None,
    *,
    model: str,
    system_prompt: str | None,
    temperature: float | None,
    max_tokens: int | None,
    stream: bool,
) -> None:
    """
    Send one chat prompt (argument or stdin) and print the reply.

    With --stream the reply is printed incrementally; with --json the
    chunks are collected and emitted once, in the result envelope.
    """

    def fn(ctx: CLIContext, _warnings: list[str]) -> CommandOutput:
        text = prompt if prompt is not None else click.get_text_stream("stdin").read()
        if not text.strip():
            raise usage_error("Empty prompt.", hint="Pass PROMPT or pipe text on stdin.")

        messages = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=text))
        query = ChatQuery(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        client = ctx.get_client()

        if not stream:
            result = wait_for(lambda completion: client.chats.create(query, completion))
            choice = result.choices[0] if result.choices else None
            return CommandOutput(
                data={
                    "id": result.id,
                    "model": result.model,
                    "content": choice.message.content if choice else None,
                    "finishReason": choice.finish_reason if choice else None,
                }
            )

        echo = ctx.output != "json"
        parts: list[str] = []
        chunks = 0
        finish_reason: str | None = None
        for chunk in iterate_stream(
            lambda on_result, completion: client.chats.stream(query, on_result, completion)
        ):
            chunks += 1
            for choice in chunk.choices:
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
                if choice.delta.content:
                    parts.append(choice.delta.content)
                    if echo:
                        click.echo(choice.delta.content, nl=False)
        if echo:
            click.echo()
            return CommandOutput(streamed=True)
        return CommandOutput(
            data={
                "model": model,
                "content": "".join(parts),
                "chunks": chunks,
                "finishReason": finish_reason,
            }
        )

    run_command(ctx, command="chat", fn=fn)
