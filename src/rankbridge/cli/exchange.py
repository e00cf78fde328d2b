"""
CLI: ``rankbridge exchange``: talk to the exchange bus by hand.
"""

from __future__ import annotations

import asyncio

import typer
from redis.exceptions import RedisError

from rankbridge.bridge.wire import REQUEST_UPDATE, UPDATE_RANK, parse_command
from rankbridge.cli.utils import console, err_console, fail, open_bus
from rankbridge.core.errors import BusError
from rankbridge.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("send")
def send(
    words: list[str] = typer.Argument(..., help="Command words, e.g. request_update <uid>"),
) -> None:
    """Publish one raw command on the exchange channel."""
    settings = get_settings()
    message = " ".join(words)

    if settings.bus_backend == "memory":
        err_console.print("[yellow]bus_backend=memory: nobody outside this process will see it[/yellow]")

    async def run() -> None:
        async with open_bus(settings) as bus:
            await bus.publish(message)

    try:
        asyncio.run(run())
    except (OSError, RuntimeError, RedisError) as e:
        fail("publish failed", BusError(str(e), cause=e))
    console.print(f"[green]Published[/green] {message}")


@app.command("request-update")
def request_update(
    voice_identity: str = typer.Argument(..., help="TeamSpeak unique id"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for the update_rank reply"),
    timeout: float = typer.Option(35.0, "--timeout", "-t", help="Seconds to wait for the reply"),
) -> None:
    """Ask the bridge for a rank and print the reply."""
    settings = get_settings()

    async def run() -> str | None:
        async with open_bus(settings) as bus:
            reply: asyncio.Future[str] = asyncio.get_running_loop().create_future()

            async def on_message(message: str) -> None:
                command = parse_command(message)
                if (
                    command is not None
                    and command.verb == UPDATE_RANK
                    and command.voice_identity == voice_identity
                    and not reply.done()
                ):
                    reply.set_result(message)

            if wait:
                await bus.subscribe(on_message)
            await bus.publish(f"{REQUEST_UPDATE} {voice_identity}")
            if not wait:
                return None
            try:
                return await asyncio.wait_for(reply, timeout)
            except asyncio.TimeoutError:
                return None

    try:
        message = asyncio.run(run())
    except (OSError, RuntimeError, RedisError) as e:
        fail("request failed", BusError(str(e), cause=e))

    if not wait:
        console.print(f"[green]Requested[/green] update for {voice_identity}")
        return
    if message is None:
        fail(f"no reply for {voice_identity} within {timeout}s")
    console.print(message)
