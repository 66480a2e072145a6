"""
CLI layer for pacer.

Provides a Typer application whose commands drive a ``TaskScheduler``.
All scheduling logic lives in ``pacer.execution`` — this package handles
only terminal transport: argument parsing, coloured output, and tables.

Entry point::

    pacer --help
"""

from pacer.cli.app import app

__all__ = ["app"]
