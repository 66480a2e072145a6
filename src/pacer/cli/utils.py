"""
CLI utility helpers — output formatting.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a model / pydantic settings / dict to a plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_json(payload: Any) -> None:
    """Print *payload* as pretty JSON."""
    console.print_json(json.dumps(payload, default=str))


def output_dict(data: Any, *, title: str = "") -> None:
    """Render a single object as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in _to_dict(data).items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def output_table(items: list, *, title: str = "") -> None:
    """Render a list of models/dicts as a Rich table."""
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    rows = [_to_dict(item) for item in items]
    columns: list[str] = []
    for row in rows:
        columns.extend(key for key in row if key not in columns)

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(row.get(col, "")) for col in columns))
    console.print(table)
