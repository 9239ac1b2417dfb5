"""Console status output for forgesite.

All status lines go through click so colours are stripped automatically when
output is not a terminal. Errors are written to stderr.
"""

from __future__ import annotations

import click


def info(message: str) -> None:
    click.echo(message)


def success(message: str) -> None:
    click.echo(click.style("✓ ", fg="green", bold=True) + message)


def warning(message: str) -> None:
    click.echo(click.style("⚠ Warning: ", fg="yellow") + message, err=True)


def error(message: str) -> None:
    click.echo(click.style("✗ Error: ", fg="red", bold=True) + message, err=True)


def heading(message: str) -> None:
    click.echo()
    click.echo(click.style(message, fg="cyan", bold=True))
