"""
NAV object identity, views and reconciliation.

Three representations of the same object exist: the row in the database
object table (DatabaseObject), the exported text file in the working copy
(FileObject), and the cached snapshot of a database row (also a
DatabaseObject). All of them share identity, ordering and derived paths via
the ObjectIdentity trait.

Example:
    >>> from navscm.core.objects import WorkingCopy, collect_objects
    >>> index = WorkingCopy(Path("objects")).scan()
    >>> for nav_object in collect_objects(source, index):
    ...     print(nav_object.key, nav_object.in_database, nav_object.in_working_copy)
"""

from navscm.core.objects.models import (
    OBJECT_FILE_SUFFIX,
    SUPPORTED_TYPES,
    DatabaseObject,
    FileObject,
    NavObjectType,
    ObjectIdentity,
    ObjectKey,
    ObjectRow,
    sanitize_name,
)
from navscm.core.objects.parser import DEFAULT_CODE_PAGE, parse_object_file, read_object_key
from navscm.core.objects.reconcile import (
    NavObject,
    ScanIssue,
    WorkingCopy,
    WorkingCopyIndex,
    collect_objects,
)
from navscm.core.objects.source import ObjectSource, SqlObjectSource, open_sqlite_source

__all__ = [
    "DEFAULT_CODE_PAGE",
    "OBJECT_FILE_SUFFIX",
    "SUPPORTED_TYPES",
    "DatabaseObject",
    "FileObject",
    "NavObject",
    "NavObjectType",
    "ObjectIdentity",
    "ObjectKey",
    "ObjectRow",
    "ObjectSource",
    "ScanIssue",
    "SqlObjectSource",
    "WorkingCopy",
    "WorkingCopyIndex",
    "collect_objects",
    "open_sqlite_source",
    "parse_object_file",
    "read_object_key",
    "sanitize_name",
]
