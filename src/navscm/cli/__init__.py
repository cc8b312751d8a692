"""
navscm CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys
from pathlib import Path

import typer

from navscm import __version__
from navscm.cli import cache, objects, sync
from navscm.core.config import load_layered_env

PANEL_SYNC = "Keep the Working Copy in Sync"
PANEL_OBJECTS = "Work with Single Objects"

app = typer.Typer(
    name="navscm",
    help="Sync Dynamics NAV objects between a database and a working copy",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"navscm {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        "-C",
        help="Project directory holding .navscm.json (defaults to cwd)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    navscm - source control for Dynamics NAV objects.

    Exports objects from a NAV database into a tree of text files and keeps
    that tree in line with the database.

    Quick Start:
        1. Put devenv/source settings into .navscm.json
        2. navscm cache refresh      # Snapshot the object table
        3. navscm status             # Compare database and working copy
        4. navscm sync               # Export changed objects
    """
    setup_logging(debug)

    # Precedence: OS env > project .env > user .env
    load_layered_env(project_dir=project)

    ctx.obj = {"debug": debug, "project_dir": project}


app.add_typer(cache.app, name="cache", rich_help_panel=PANEL_SYNC)
app.command(name="status", rich_help_panel=PANEL_SYNC)(sync.status)
app.command(name="sync", rich_help_panel=PANEL_SYNC)(sync.sync)

app.command(name="export", rich_help_panel=PANEL_OBJECTS)(objects.export)
app.command(name="import", rich_help_panel=PANEL_OBJECTS)(objects.import_)
app.command(name="compile", rich_help_panel=PANEL_OBJECTS)(objects.compile_)


def cli_main() -> None:
    """Entry point for the navscm console script."""
    app()


__all__ = ["app", "cli_main", "setup_logging"]
