"""
Consolidation of database and working-copy views of NAV objects.

A NavObject pairs the database row and the exported file of one object. Either
side may be missing, for example while an object only exists in the working
copy or after it was deleted from the database. Both sides are loaded on first
access and kept for the lifetime of the NavObject.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from navscm.core.exceptions import ObjectFileError
from navscm.core.objects.models import (
    OBJECT_FILE_SUFFIX,
    DatabaseObject,
    FileObject,
    ObjectIdentity,
    ObjectKey,
)
from navscm.core.objects.parser import DEFAULT_CODE_PAGE, parse_object_file, read_object_key
from navscm.core.objects.source import ObjectSource


@dataclass
class ScanIssue:
    """A working-copy file that could not be indexed."""

    path: Path
    message: str


@dataclass
class WorkingCopyIndex:
    """Result of scanning a working copy: object key to file path."""

    files: dict[ObjectKey, Path] = field(default_factory=dict)
    issues: list[ScanIssue] = field(default_factory=list)


class WorkingCopy:
    """
    File system tree of exported objects.

    Objects are stored as `<root>/<Type>/<ID> - <Name>.txt`.

    Example:
        >>> wc = WorkingCopy(Path("objects"))
        >>> index = wc.scan()
        >>> for issue in index.issues:
        ...     print(issue.path, issue.message)
    """

    def __init__(
        self,
        root: Path,
        encoding: str = DEFAULT_CODE_PAGE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.root = root
        self.encoding = encoding
        self.logger = logger or logging.getLogger(__name__)

    def path_for(self, obj: ObjectIdentity) -> Path:
        """Absolute location of an object's export inside this working copy."""
        return self.root / obj.relative_path

    def scan(self) -> WorkingCopyIndex:
        """
        Index all object files below the root.

        Only the heading line of each file is read. A file with a bad heading,
        or a second file for an already indexed object, is reported as an
        issue; the scan continues with the next file.
        """
        index = WorkingCopyIndex()
        if not self.root.exists():
            self.logger.debug("Working copy %s does not exist yet", self.root)
            return index

        for path in sorted(self.root.rglob(f"*{OBJECT_FILE_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                key = read_object_key(path, encoding=self.encoding)
            except (ObjectFileError, OSError, UnicodeDecodeError) as e:
                self.logger.warning("Skipping %s: %s", path, e)
                index.issues.append(ScanIssue(path, str(e)))
                continue

            existing = index.files.get(key)
            if existing is not None:
                message = f"object {key} is already exported to {existing}"
                self.logger.warning("Skipping %s: %s", path, message)
                index.issues.append(ScanIssue(path, message))
                continue
            index.files[key] = path

        self.logger.debug(
            "Indexed %d object files in %s (%d issues)",
            len(index.files),
            self.root,
            len(index.issues),
        )
        return index


_UNSET = object()


class NavObject:
    """
    One NAV object as seen from the database and from the working copy.

    The database object is queried from the source on first access, the file
    object is parsed on first access from the path recorded in the working-copy
    index. Both results, including "not present", are kept; later accesses do
    not query or parse again.

    Whether an object needs to be exported or imported is left to the caller,
    which compares `database_object.modified` and `file_object.modified`.
    """

    def __init__(
        self,
        key: ObjectKey,
        source: ObjectSource,
        file_index: Mapping[ObjectKey, Path],
        encoding: str = DEFAULT_CODE_PAGE,
        logger: logging.Logger | None = None,
        database_object: DatabaseObject | None = None,
        database_loaded: bool = False,
    ) -> None:
        """
        Args:
            key: Identity of the object
            source: Source queried for the database side
            file_index: Working-copy index used to locate the file side
            encoding: Code page of the working-copy file
            logger: Logger to use instead of the module logger
            database_object: Already loaded database side; skips the query
            database_loaded: The database side is final even if None, because
                it comes from a full scan of the source
        """
        self.key = key
        self.source = source
        self.file_index = file_index
        self.encoding = encoding
        self.logger = logger or logging.getLogger(__name__)
        if database_object is None and not database_loaded:
            self._database_object: object = _UNSET
        else:
            self._database_object = database_object
        self._file_object: object = _UNSET

    @property
    def database_object(self) -> DatabaseObject | None:
        if self._database_object is _UNSET:
            self.logger.debug("Loading database object %s", self.key)
            self._database_object = self.source.get_object(self.key)
        return self._database_object  # type: ignore[return-value]

    @property
    def file_object(self) -> FileObject | None:
        """
        Parsed working-copy file of this object.

        Raises:
            ObjectFileError: If the indexed file cannot be parsed
        """
        if self._file_object is _UNSET:
            path = self.file_index.get(self.key)
            if path is None:
                self._file_object = None
            else:
                self.logger.debug("Parsing file object %s from %s", self.key, path)
                self._file_object = parse_object_file(
                    path, encoding=self.encoding, logger=self.logger
                )
        return self._file_object  # type: ignore[return-value]

    @property
    def in_database(self) -> bool:
        return self.database_object is not None

    @property
    def in_working_copy(self) -> bool:
        return self.key in self.file_index

    def __repr__(self) -> str:
        return f"NavObject({self.key.cache_key})"


def collect_objects(
    source: ObjectSource,
    index: WorkingCopyIndex,
    database_objects: Iterable[DatabaseObject] | None = None,
    *,
    encoding: str = DEFAULT_CODE_PAGE,
    logger: logging.Logger | None = None,
) -> list[NavObject]:
    """
    Build NavObjects for every key in the database or the working copy.

    Args:
        source: Source used for lazy database lookups
        index: Scanned working copy
        database_objects: Complete result of `source.all_objects()`, if the
            caller already has it. Keys missing from it are known to be absent
            from the database, so the source is not queried again per object.
        encoding: Code page of the working-copy files
        logger: Logger handed to each NavObject

    Returns:
        NavObjects ordered by key
    """
    if database_objects is None:
        database_objects = source.all_objects()

    known = {obj.key: obj for obj in database_objects}
    keys = sorted(set(known) | set(index.files))

    result = []
    for key in keys:
        result.append(
            NavObject(
                key,
                source,
                index.files,
                encoding=encoding,
                logger=logger,
                database_object=known.get(key),
                database_loaded=True,
            )
        )
    return result
