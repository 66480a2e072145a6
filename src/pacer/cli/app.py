"""
Root Typer application for the pacer CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="pacer",
    help="pacer — bounded-concurrency task scheduling for asyncio.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from pacer import __version__

        typer.echo(f"pacer {__version__}")
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
    """pacer CLI — run and inspect task schedulers."""


# ── Sub-command registration ─────────────────────────────────────────────

from pacer.cli.config import app as config_app  # noqa: E402
from pacer.cli.simulate import simulate  # noqa: E402

app.command("simulate")(simulate)
app.add_typer(config_app, name="config", help="Configuration inspection.")
