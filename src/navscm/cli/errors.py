"""
Standardized error handling and exit codes for the navscm CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

import typer
from rich.console import Console

from navscm.core.exceptions import (
    CacheNotFoundError,
    ConfigurationError,
    DevEnvError,
    DevEnvNotFoundError,
    InvalidCacheError,
    NavScmError,
)

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for navscm CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, or the development environment reported a failure."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No object cache found",
        ...     solution="navscm cache refresh",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_no_cache_error() -> None:
    """Print error when no object cache has been written yet."""
    print_error(
        "No object cache found",
        reason="The cache is created by the first refresh",
        solution="navscm cache refresh",
    )


def fail(error: NavScmError) -> typer.Exit:
    """
    Report a navscm error and build the matching exit.

    Usage:
        except NavScmError as e:
            raise fail(e)
    """
    if isinstance(error, CacheNotFoundError):
        print_no_cache_error()
        return typer.Exit(ExitCode.USER_ERROR)

    if isinstance(error, DevEnvNotFoundError):
        print_error(
            str(error),
            reason="finsql.exe ships with the NAV development environment",
            solution="set devenv.path in .navscm.json or NAVSCM_DEVENV_PATH",
        )
        return typer.Exit(ExitCode.USER_ERROR)

    if isinstance(error, ConfigurationError):
        print_error(str(error), solution="check .navscm.json and NAVSCM_* variables")
        return typer.Exit(ExitCode.USER_ERROR)

    if isinstance(error, InvalidCacheError):
        print_error(str(error), solution="navscm cache refresh")
        return typer.Exit(ExitCode.GENERAL_ERROR)

    if isinstance(error, DevEnvError) and error.output:
        print_error(str(error), reason=error.output)
        return typer.Exit(ExitCode.GENERAL_ERROR)

    print_error(str(error))
    return typer.Exit(ExitCode.GENERAL_ERROR)
