"""
Shared helpers for CLI commands: service construction and argument parsing.
"""

from pathlib import Path

import typer
from pydantic import ValidationError

from navscm.core.config import load_config
from navscm.core.exceptions import ConfigurationError
from navscm.core.objects import NavObjectType, ObjectKey
from navscm.core.sync import SyncService


def project_dir(ctx: typer.Context) -> Path:
    """Project directory selected on the main command (defaults to cwd)."""
    obj = ctx.find_root().obj or {}
    return obj.get("project_dir") or Path.cwd()


def build_service(ctx: typer.Context, *, require_devenv: bool = False) -> SyncService:
    """
    Load configuration for the selected project and build a SyncService.

    Raises:
        ConfigurationError: If the configuration is incomplete or invalid
    """
    directory = project_dir(ctx)
    try:
        config = load_config(directory, use_cache=False)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    return SyncService.from_config(config, directory, require_devenv=require_devenv)


def parse_object_type(value: str) -> NavObjectType:
    """
    Accept a type label ("Codeunit") or ordinal ("5").

    Raises:
        typer.BadParameter: If the type is unknown or unsupported
    """
    try:
        if value.isdigit():
            object_type = NavObjectType(int(value))
        else:
            object_type = NavObjectType.from_label(value)
    except ValueError:
        raise typer.BadParameter(f"Unknown object type '{value}'") from None
    if not object_type.is_supported:
        raise typer.BadParameter(f"Object type {object_type.label} is not supported")
    return object_type


def parse_object_key(object_type: str, object_id: int) -> ObjectKey:
    try:
        return ObjectKey(parse_object_type(object_type), object_id)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None
