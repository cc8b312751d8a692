"""
Data models for the sync service.

Defines Pydantic models for drift between database and working copy and for
the results of sync runs.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class DriftStatus(str, Enum):
    """State of an object in the database relative to the working copy."""

    IN_SYNC = "in_sync"
    DATABASE_ONLY = "database_only"
    FILE_ONLY = "file_only"
    DATABASE_NEWER = "database_newer"
    FILE_NEWER = "file_newer"
    DIVERGED = "diverged"
    UNREADABLE = "unreadable"


class DriftEntry(BaseModel):
    """
    Comparison of one object between database and working copy.

    Example:
        >>> entry = DriftEntry(
        ...     cache_key="5.99997",
        ...     label="Codeunit 99997",
        ...     name="TN_Test",
        ...     status=DriftStatus.DATABASE_NEWER,
        ... )
    """

    cache_key: str = Field(description="Object key ('type.id')")

    label: str = Field(description="Human readable identity, e.g. 'Codeunit 99997'")

    name: str = Field(default="", description="Object name (database side if present)")

    status: DriftStatus = Field(description="Drift classification")

    database_modified: datetime | None = Field(
        default=None,
        description="Modification instant recorded in the database",
    )

    file_modified: datetime | None = Field(
        default=None,
        description="Modification instant recorded in the exported file",
    )

    file_path: Path | None = Field(
        default=None,
        description="Working-copy file of the object, if any",
    )

    message: str = Field(default="", description="Details, e.g. parse errors")


class StatusReport(BaseModel):
    """Drift of all objects plus working-copy files that could not be indexed."""

    entries: list[DriftEntry] = Field(default_factory=list)

    issues: list[str] = Field(
        default_factory=list,
        description="Working-copy files skipped while scanning",
    )

    def with_status(self, *statuses: DriftStatus) -> list[DriftEntry]:
        """Entries having one of the given statuses."""
        return [entry for entry in self.entries if entry.status in statuses]


class ExportFailure(BaseModel):
    """An object that could not be exported."""

    cache_key: str = Field(description="Object key ('type.id')")
    message: str = Field(description="Error reported by the development environment")


class SyncResult(BaseModel):
    """
    Result of a sync run.

    Provides detailed feedback about what happened during the sync.
    """

    success: bool = Field(description="Whether every step succeeded")

    operation: str = Field(description="Type of operation (export, refresh)")

    exported: list[str] = Field(
        default_factory=list,
        description="Keys of objects written to the working copy",
    )

    failures: list[ExportFailure] = Field(
        default_factory=list,
        description="Objects the development environment failed to export",
    )

    removed: list[Path] = Field(
        default_factory=list,
        description="Stale working-copy files replaced under a new name",
    )

    cache_refreshed: bool = Field(
        default=False,
        description="Whether the object cache was rewritten",
    )

    message: str = Field(default="", description="Human-readable result message")

    # Timing
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def duration_seconds(self) -> float | None:
        """Calculate operation duration in seconds."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if not self.success:
            parts = [f"{self.operation} failed"]
            if self.failures:
                parts.append(f"{len(self.failures)} objects failed")
            if self.message:
                parts.append(self.message)
            return ", ".join(parts)

        parts = [f"{self.operation} succeeded"]

        if self.exported:
            parts.append(f"{len(self.exported)} objects exported")

        if self.removed:
            parts.append(f"{len(self.removed)} stale files removed")

        if self.cache_refreshed:
            parts.append("cache refreshed")

        if self.message:
            parts.append(self.message)

        return ", ".join(parts)
