"""
navscm CLI - Object cache commands.
"""

import typer
from rich.console import Console
from rich.table import Table

from navscm.cli.context import build_service
from navscm.cli.errors import ExitCode, fail, print_error, print_no_cache_error
from navscm.core.exceptions import NavScmError
from navscm.core.objects import DatabaseObject, ObjectKey

console = Console()
app = typer.Typer(
    name="cache",
    help="Snapshot and inspect the object table",
    no_args_is_help=True,
)


def _objects_table(objects: list[DatabaseObject], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Object")
    table.add_column("Name")
    table.add_column("Modified")
    table.add_column("Version List", style="dim")

    for obj in objects:
        table.add_row(
            obj.cache_key,
            str(obj.key),
            obj.name,
            obj.modified.strftime("%Y-%m-%d %H:%M:%S"),
            obj.version_list,
        )
    return table


@app.command()
def refresh(ctx: typer.Context) -> None:
    """
    Read every object from the database and rewrite the cache.

    Examples:
        navscm cache refresh
    """
    try:
        service = build_service(ctx)
        store = service.refresh_cache()
    except NavScmError as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Cached {len(store)} objects in {service.cache_path}")


@app.command()
def show(
    ctx: typer.Context,
    key: str | None = typer.Argument(
        None,
        help="Cache key of a single object, e.g. 5.99997",
    ),
) -> None:
    """
    Show cached objects.

    Examples:
        navscm cache show            # List every cached object
        navscm cache show 5.99997    # Show Codeunit 99997
    """
    object_key = None
    if key is not None:
        try:
            object_key = ObjectKey.parse(key)
        except ValueError as e:
            print_error(str(e), solution="keys have the form <type>.<id>, e.g. 5.99997")
            raise typer.Exit(ExitCode.USER_ERROR)

    try:
        service = build_service(ctx)
        store = service.load_cache()
    except NavScmError as e:
        raise fail(e)

    if store is None:
        print_no_cache_error()
        raise typer.Exit(ExitCode.USER_ERROR)

    if object_key is None:
        created = store.created_at.strftime("%Y-%m-%d %H:%M:%S")
        console.print(_objects_table(store.objects(), f"Object cache ({created})"))
        return

    if object_key.cache_key not in store:
        print_error(f"{object_key} is not in the cache", solution="navscm cache refresh")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(_objects_table([store[object_key]], str(object_key)))
