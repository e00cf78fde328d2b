"""
CLI: ``rankbridge identity``: onboarding.

A user hands over their voice identity and their community profile URL;
the profile is resolved to a global id and stored inactive. The mapping
becomes active once the user sends the bot a friend request.
"""

from __future__ import annotations

import asyncio
import json

import typer

from rankbridge.bridge.resolver import IdentityResolver, profile_url_for
from rankbridge.cli.utils import console, fail, open_store
from rankbridge.core.errors import IdentityResolutionError, PersistenceError
from rankbridge.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


def _resolve(profile_url: str) -> int | None:
    settings = get_settings()
    resolver = IdentityResolver(timeout=settings.profile_fetch_timeout)
    try:
        return asyncio.run(resolver.resolve(profile_url))
    except IdentityResolutionError as e:
        fail(f"could not resolve {profile_url}", e)


@app.command("resolve")
def resolve(
    profile_url: str = typer.Argument(..., help="Community profile URL"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Resolve a profile URL to its 64-bit id."""
    global_id = _resolve(profile_url)

    if json_out:
        console.print_json(json.dumps({"profile_url": profile_url, "global_id": global_id}))
        return
    if global_id is None:
        fail(f"no profile found at {profile_url}")
    console.print(f"[green]{global_id}[/green]")


@app.command("register")
def register(
    voice_identity: str = typer.Argument(..., help="TeamSpeak unique id"),
    profile_url: str = typer.Argument(..., help="Community profile URL"),
) -> None:
    """Resolve a profile and store the mapping.

    New mappings stay inactive until the user befriends the bot. Registering
    the same pair again keeps an active mapping active; pointing the profile
    at a different voice identity needs a fresh friend request.
    """
    global_id = _resolve(profile_url)
    if global_id is None:
        fail(f"no profile found at {profile_url}")

    settings = get_settings()
    store = open_store(settings)
    try:
        asyncio.run(store.register(global_id, voice_identity))
        active = asyncio.run(store.is_active(global_id))
    except PersistenceError as e:
        fail("could not store identity", e)
    finally:
        store.close()

    console.print(
        f"[green]Registered[/green] {voice_identity} -> "
        f"{profile_url_for(global_id, settings.community_base_url)}"
    )
    if active:
        console.print("Mapping is already active.")
    else:
        console.print("Send the bot account a friend request to activate rank sync.")


@app.command("show")
def show(
    voice_identity: str = typer.Argument(..., help="TeamSpeak unique id"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the stored mapping for a voice identity."""
    settings = get_settings()
    store = open_store(settings)

    async def lookup() -> tuple[int | None, bool]:
        global_id = await store.global_id_of(voice_identity)
        active = await store.is_active(global_id) if global_id is not None else False
        return global_id, active

    try:
        global_id, active = asyncio.run(lookup())
    except PersistenceError as e:
        fail("could not read identity", e)
    finally:
        store.close()

    if json_out:
        console.print_json(json.dumps({
            "voice_identity": voice_identity,
            "global_id": global_id,
            "active": active,
        }))
        return
    if global_id is None:
        fail(f"{voice_identity} is not registered")

    console.print(f"[bold]Voice identity:[/bold] {voice_identity}")
    console.print(f"[bold]Global id:[/bold]      {global_id}")
    console.print(f"[bold]Active:[/bold]         {active}")
