"""
CLI: ``pacer config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from pacer.cli.utils import console, output_json

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the effective settings (defaults + PACER_* env + .env)."""
    from pacer.core.settings import get_settings

    settings = get_settings()

    if format == "json":
        output_json(settings.model_dump())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"PACER_{key.upper()}={'' if value is None else value}")
        return

    if format != "table":
        console.print(f"[red]Error: unknown format {format!r}[/red]")
        raise typer.Exit(1)

    from rich.table import Table

    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)
