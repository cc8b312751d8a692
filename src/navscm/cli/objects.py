"""
navscm CLI - Single-object commands run through the development environment.
"""

from pathlib import Path

import typer
from rich.console import Console

from navscm.cli.context import build_service, parse_object_key
from navscm.cli.errors import ExitCode, fail, print_error
from navscm.core.exceptions import NavScmError
from navscm.core.objects import DatabaseObject

console = Console()


def _print_object(verb: str, obj: DatabaseObject) -> None:
    console.print(f"[green]✓[/green] {verb} {obj.key}: {obj.name}")
    console.print(
        f"[dim]Modified {obj.modified.strftime('%Y-%m-%d %H:%M:%S')}, "
        f"Version List {obj.version_list or '-'}[/dim]"
    )


def export(
    ctx: typer.Context,
    object_type: str = typer.Argument(..., help="Object type, e.g. Codeunit or 5"),
    object_id: int = typer.Argument(..., help="Object ID"),
    to: Path | None = typer.Option(
        None,
        "--to",
        help="Target .txt file (defaults to the working copy location)",
    ),
) -> None:
    """
    Export one object to a text file.

    Examples:
        navscm export Codeunit 99997
        navscm export 5 99997 --to /tmp/test.txt
    """
    key = parse_object_key(object_type, object_id)

    try:
        service = build_service(ctx, require_devenv=True)
        obj = service.source.get_object(key)
        if obj is None:
            print_error(f"{key} does not exist in the database")
            raise typer.Exit(ExitCode.USER_ERROR)

        destination = to or service.working_copy.path_for(obj)
        assert service.devenv is not None
        service.devenv.export_object(obj, destination)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except NavScmError as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Exported {key} to {destination}")


def import_(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Object file to import"),
) -> None:
    """
    Import an object file into the database, overwriting the object.

    Schema changes are synchronized with force.

    Examples:
        navscm import "objects/Codeunit/99997 - TN_Test.txt"
    """
    if not path.is_file():
        print_error(f"File not found: {path}")
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        service = build_service(ctx, require_devenv=True)
        assert service.devenv is not None
        obj = service.devenv.import_file(path)
    except NavScmError as e:
        raise fail(e)

    _print_object("Imported", obj)


def compile_(
    ctx: typer.Context,
    object_type: str = typer.Argument(..., help="Object type, e.g. Codeunit or 5"),
    object_id: int = typer.Argument(..., help="Object ID"),
) -> None:
    """
    Compile one object, synchronizing schema changes with force.

    Examples:
        navscm compile Table 18
    """
    key = parse_object_key(object_type, object_id)

    try:
        service = build_service(ctx, require_devenv=True)
        assert service.devenv is not None
        obj = service.devenv.compile_object(key)
    except NavScmError as e:
        raise fail(e)

    _print_object("Compiled", obj)
