"""
CLI: ``rankbridge config``: configuration inspection.
"""

from __future__ import annotations

import typer
from rich.table import Table

from rankbridge.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    json_out: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Show the effective configuration."""
    from rankbridge.core.settings import get_settings

    settings = get_settings()

    if json_out:
        console.print_json(settings.model_dump_json())
        return

    table = Table(title="rankbridge settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(f"RANKBRIDGE_{key.upper()}", str(value))
    console.print(table)
