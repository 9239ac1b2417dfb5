"""Command-line interface for forgesite.

This module defines the CLI commands using Click framework.
It provides commands for running the development server, exporting the
static site, and previewing an exported build.

Commands:
- dev: Discover content and run the dev server with live reload.
- build: Export the static site into the output directory.
- serve: Serve a previously exported output directory.
"""

from __future__ import annotations

from pathlib import Path

import click

from . import __version__
from .errors import ForgeError


def _fatal(exc: Exception) -> None:
    click.echo(click.style("Fatal error: ", fg="red", bold=True) + str(exc), err=True)
    raise SystemExit(1) from None


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name="forge")
@click.pass_context
def cli(ctx: click.Context):
    """Forge - A minimal static site generator."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides forge.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides forge.yaml ws_port)",
)
def dev(port: int | None, ws_port: int | None):
    """Start the development server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start()
    except (ForgeError, OSError) as exc:
        _fatal(exc)


@cli.command()
def build():
    """Build the static site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root)
    except (ForgeError, OSError) as exc:
        _fatal(exc)
    if not result.ok:
        click.echo(
            click.style(f"{len(result.errors)} page(s) failed to build", fg="yellow"),
            err=True,
        )


@cli.command()
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to serve the exported site on",
)
def serve(port: int | None):
    """Serve the built site from the output directory."""
    project_root = Path.cwd()
    from .preview import PreviewServer

    try:
        server = PreviewServer(project_root, port=port)
        server.start()
    except (ForgeError, OSError) as exc:
        _fatal(exc)


def main():
    """Entry point for the CLI application."""
    cli()
