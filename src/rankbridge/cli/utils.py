"""
CLI utility helpers: consoles, error output and resource helpers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import NoReturn

import typer
from rich.console import Console

from rankbridge.core.errors import RankBridgeError, is_retryable
from rankbridge.core.events import MessageBus, build_message_bus
from rankbridge.core.events.redis import RedisMessageBus
from rankbridge.core.settings import BridgeSettings
from rankbridge.core.store import SqliteIdentityStore

console = Console()
err_console = Console(stderr=True)


def fail(message: str, error: Exception | None = None) -> NoReturn:
    """Print an error in red to stderr and exit with code 1."""
    if isinstance(error, RankBridgeError):
        hint = " (retryable)" if is_retryable(error) else ""
        err_console.print(
            f"[bold red]Error[/bold red] ({error.category.value}): {message}: {error.message}{hint}"
        )
    elif error is not None:
        err_console.print(f"[bold red]Error:[/bold red] {message}: {error}")
    else:
        err_console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


def open_store(settings: BridgeSettings) -> SqliteIdentityStore:
    """Open the identity store configured by ``database_path``."""
    return SqliteIdentityStore(settings.database_path)


@asynccontextmanager
async def open_bus(settings: BridgeSettings) -> AsyncIterator[MessageBus]:
    """Build, connect and finally close the configured exchange bus."""
    bus = build_message_bus(settings)
    if isinstance(bus, RedisMessageBus):
        await bus.connect()
    try:
        yield bus
    finally:
        await bus.close()
