"""
Synchronization between the NAV database and the working copy.

Example:
    >>> from navscm.core.sync import SyncService
    >>> service = SyncService.from_config(load_config(), require_devenv=True)
    >>> for entry in service.status().entries:
    ...     print(entry.label, entry.status.value)
"""

from navscm.core.sync.models import (
    DriftEntry,
    DriftStatus,
    ExportFailure,
    StatusReport,
    SyncResult,
)
from navscm.core.sync.service import SyncService, classify

__all__ = [
    "DriftEntry",
    "DriftStatus",
    "ExportFailure",
    "StatusReport",
    "SyncResult",
    "SyncService",
    "classify",
]
