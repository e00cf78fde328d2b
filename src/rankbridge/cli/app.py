"""
Root Typer application for the rankbridge CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="rankbridge",
    help="rankbridge: Steam / TeamSpeak rank synchronisation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from rankbridge import __version__

        typer.echo(f"rankbridge {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """rankbridge CLI: onboarding, exchange bus and configuration."""
    from rankbridge.core.logging import configure_logging
    from rankbridge.core.settings import get_settings

    settings = get_settings()
    configure_logging(level=settings.effective_log_level, json_format=settings.json_logs)


# ── Sub-command registration ─────────────────────────────────────────────

from rankbridge.cli.config import app as config_app  # noqa: E402
from rankbridge.cli.exchange import app as exchange_app  # noqa: E402
from rankbridge.cli.identity import app as identity_app  # noqa: E402

app.add_typer(identity_app, name="identity", help="Onboarding: resolve and register identities.")
app.add_typer(exchange_app, name="exchange", help="Exchange bus commands.")
app.add_typer(config_app, name="config", help="Configuration inspection.")


if __name__ == "__main__":
    app()
