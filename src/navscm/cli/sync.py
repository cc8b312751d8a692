"""
navscm CLI - Status and sync commands.

Compares the database with the working copy and exports changed objects.
"""

from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from navscm.cli.context import build_service
from navscm.cli.errors import ExitCode, fail
from navscm.core.exceptions import NavScmError
from navscm.core.sync import DriftStatus

console = Console()

STATUS_STYLES = {
    DriftStatus.IN_SYNC: ("✓", "green"),
    DriftStatus.DATABASE_ONLY: ("+", "yellow"),
    DriftStatus.FILE_ONLY: ("?", "blue"),
    DriftStatus.DATABASE_NEWER: ("↓", "yellow"),
    DriftStatus.FILE_NEWER: ("↑", "cyan"),
    DriftStatus.DIVERGED: ("⚠", "red"),
    DriftStatus.UNREADABLE: ("✗", "red"),
}


def _format(value: datetime | None) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def status(
    ctx: typer.Context,
    show_all: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Also list objects that are in sync",
    ),
) -> None:
    """
    Show how the database and the working copy differ.

    Examples:
        navscm status           # Objects that differ
        navscm status --all     # Every object
    """
    try:
        service = build_service(ctx)
        report = service.status()
    except NavScmError as e:
        raise fail(e)

    entries = report.entries
    if not show_all:
        entries = [entry for entry in entries if entry.status != DriftStatus.IN_SYNC]

    if entries:
        table = Table(title="Object status")
        table.add_column("", no_wrap=True)
        table.add_column("Object")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Database")
        table.add_column("File")

        for entry in entries:
            icon, color = STATUS_STYLES[entry.status]
            table.add_row(
                f"[{color}]{icon}[/{color}]",
                entry.label,
                entry.name,
                entry.status.value,
                _format(entry.database_modified),
                _format(entry.file_modified),
            )
        console.print(table)

    for issue in report.issues:
        console.print(f"[yellow]⚠[/yellow]  Skipped {issue}")

    in_sync = len(report.with_status(DriftStatus.IN_SYNC))
    console.print(f"\n{in_sync} of {len(report.entries)} objects in sync")


def sync(
    ctx: typer.Context,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="List objects that would be exported without exporting them",
    ),
) -> None:
    """
    Export objects changed since the last cache refresh.

    The cache is refreshed after all exports succeeded. Objects that failed
    to export stay pending for the next run.

    Examples:
        navscm sync             # Export changed objects
        navscm sync --dry-run   # Only list them
    """
    try:
        if dry_run:
            service = build_service(ctx)
            pending = service.pending_exports()
            if not pending:
                console.print("[blue]No objects to export[/blue]")
                return
            for obj in pending:
                console.print(f"{obj.key}: {obj.name} -> {service.working_copy.path_for(obj)}")
            return

        service = build_service(ctx, require_devenv=True)
        result = service.export_changed()
    except NavScmError as e:
        raise fail(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync interrupted, cache not refreshed[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)

    for cache_key in result.exported:
        console.print(f"[green]✓[/green] Exported {cache_key}")
    for path in result.removed:
        console.print(f"[dim]Removed {path}[/dim]")
    for failure in result.failures:
        console.print(f"[red]✗[/red] {failure.cache_key}: {failure.message}")

    if not result.success:
        console.print(f"[red]{result.summary()}[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]{result.summary()}[/green]")
