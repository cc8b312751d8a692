"""
Data models for development environment invocations.
"""

from __future__ import annotations

from pydantic import BaseModel


class DevEnvResult(BaseModel):
    """Structured result of one finsql invocation."""

    success: bool
    """True if the tool did not create its error log."""

    exit_code: int | None
    """Process exit code. Recorded only; finsql does not signal errors through it."""

    command: str
    """Full command passed to the tool, including the appended connection parameters."""

    output: str = ""
    """Captured command output (result artifact, stdout and stderr)."""

    error_message: str | None = None
    """Content of the error log, if the tool wrote one."""

    duration_ms: int = 0
    """Execution duration in milliseconds."""
