"""
Database to working-copy synchronization service.

Ties the object source, the working copy, the object cache and the
development environment together:

- `refresh_cache` snapshots the object table into the cache file
- `status` compares every object in the database with its exported file
- `export_changed` exports objects changed since the last snapshot and
  refreshes the snapshot afterwards
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from navscm.core.cache import CacheStore
from navscm.core.config import NavScmConfig
from navscm.core.devenv import DevEnvInterface
from navscm.core.exceptions import ConfigurationError, DevEnvError, ObjectFileError
from navscm.core.objects import (
    DatabaseObject,
    NavObject,
    ObjectSource,
    WorkingCopy,
    collect_objects,
    open_sqlite_source,
)
from navscm.core.sync.models import (
    DriftEntry,
    DriftStatus,
    ExportFailure,
    StatusReport,
    SyncResult,
)


def classify(nav_object: NavObject) -> DriftEntry:
    """
    Compare the database and file side of one object.

    Objects present on both sides are compared by modification instant first.
    With equal instants, a differing name or version list means the two sides
    were changed independently.
    """
    key = nav_object.key
    database_object = nav_object.database_object
    file_path = nav_object.file_index.get(key)

    entry = DriftEntry(
        cache_key=key.cache_key,
        label=str(key),
        name=database_object.name if database_object else "",
        status=DriftStatus.IN_SYNC,
        database_modified=database_object.modified if database_object else None,
        file_path=file_path,
    )

    try:
        file_object = nav_object.file_object
    except (ObjectFileError, OSError, UnicodeDecodeError) as e:
        entry.status = DriftStatus.UNREADABLE
        entry.message = e.message if isinstance(e, ObjectFileError) else str(e)
        return entry

    if file_object is not None:
        entry.file_modified = file_object.modified
        if not entry.name:
            entry.name = file_object.name

    if database_object is None:
        entry.status = DriftStatus.FILE_ONLY
    elif file_object is None:
        entry.status = DriftStatus.DATABASE_ONLY
    elif database_object.modified > file_object.modified:
        entry.status = DriftStatus.DATABASE_NEWER
    elif database_object.modified < file_object.modified:
        entry.status = DriftStatus.FILE_NEWER
    elif (database_object.name, database_object.version_list) != (
        file_object.name,
        file_object.version_list,
    ):
        entry.status = DriftStatus.DIVERGED
        entry.message = "same modification time but different name or version list"

    return entry


class SyncService:
    """
    Keeps a working copy of exported objects in line with the database.

    Example:
        >>> service = SyncService(source, WorkingCopy(Path("objects")),
        ...                       Path(".navscm/cache.json"), devenv=devenv)
        >>> result = service.export_changed()
        >>> print(result.summary())
    """

    def __init__(
        self,
        source: ObjectSource,
        working_copy: WorkingCopy,
        cache_path: Path,
        devenv: DevEnvInterface | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the sync service.

        Args:
            source: Source of database objects
            working_copy: Tree the objects are exported to
            cache_path: Location of the object cache file
            devenv: Development environment; required for exports only
            logger: Logger to use instead of the module logger
        """
        self.source = source
        self.working_copy = working_copy
        self.cache_path = cache_path
        self.devenv = devenv
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config: NavScmConfig,
        project_dir: Path | None = None,
        *,
        require_devenv: bool = False,
        logger: logging.Logger | None = None,
    ) -> SyncService:
        """
        Build a service from loaded configuration.

        Relative paths in the configuration are resolved against
        `project_dir` (defaults to the current directory).

        Raises:
            ConfigurationError: If no object database is configured, or if
                `require_devenv` is set and the development environment
                settings are incomplete
            DevEnvNotFoundError: If the configured finsql.exe does not exist
        """
        base = (project_dir or Path.cwd()).resolve()

        if not config.source.sqlite_path:
            raise ConfigurationError(
                "No object database configured (source.sqlite_path or NAVSCM_SQLITE_PATH)"
            )
        sqlite_path = base / config.source.sqlite_path
        try:
            source = open_sqlite_source(sqlite_path, table=config.source.table, logger=logger)
        except FileNotFoundError as e:
            raise ConfigurationError(str(e), path=str(sqlite_path)) from e

        code_page = config.devenv.code_page
        working_copy = WorkingCopy(
            base / config.working_copy.path, encoding=code_page, logger=logger
        )

        devenv = None
        if config.devenv.path or require_devenv:
            if not config.devenv.path:
                raise ConfigurationError(
                    "No development environment configured (devenv.path or NAVSCM_DEVENV_PATH)"
                )
            devenv = DevEnvInterface(
                Path(config.devenv.path),
                server=config.devenv.server or "",
                database=config.devenv.database or "",
                source=source,
                code_page=code_page,
                temp_root=Path(config.devenv.temp_root) if config.devenv.temp_root else None,
                logger=logger,
            )

        return cls(
            source,
            working_copy,
            base / config.cache.path,
            devenv=devenv,
            logger=logger,
        )

    def refresh_cache(self) -> CacheStore:
        """Snapshot every supported object and persist the snapshot."""
        store = CacheStore.snapshot(self.source.all_objects(), logger=self.logger)
        store.persist(self.cache_path)
        return store

    def load_cache(self) -> CacheStore | None:
        """
        Load the last snapshot.

        Returns:
            The store, or None if no snapshot has been taken yet

        Raises:
            InvalidCacheError: If the cache file is corrupt
        """
        store = CacheStore.load_if_exists(self.cache_path, logger=self.logger)
        if store is None:
            self.logger.info("No object cache at %s yet", self.cache_path)
        return store

    def status(self) -> StatusReport:
        """Classify every object found in the database or the working copy."""
        index = self.working_copy.scan()
        nav_objects = collect_objects(
            self.source,
            index,
            encoding=self.working_copy.encoding,
            logger=self.logger,
        )

        report = StatusReport(issues=[f"{issue.path}: {issue.message}" for issue in index.issues])
        for nav_object in nav_objects:
            report.entries.append(classify(nav_object))

        self.logger.debug(
            "Status of %d objects computed (%d scan issues)",
            len(report.entries),
            len(report.issues),
        )
        return report

    def pending_exports(self, cache: CacheStore | None = None) -> list[DatabaseObject]:
        """
        Objects flagged as modified that changed since the last snapshot.

        Without a snapshot every modified object is pending.
        """
        if cache is None:
            cache = self.load_cache()

        modified = list(self.source.modified_objects())
        if cache is None:
            return sorted(modified)
        return sorted(cache.changed_objects(modified))

    def export_changed(self) -> SyncResult:
        """
        Export pending objects to the working copy.

        Objects are exported one by one; a failed export is recorded and the
        run continues with the next object. The cache is refreshed only when
        every export succeeded, so failed objects stay pending.

        When an object was renamed, its previous file is removed after the
        export under the new name succeeded.

        Raises:
            ConfigurationError: If no development environment is configured
            InvalidCacheError: If the cache file is corrupt
            ScratchDirectoryError: If finsql could not be given a scratch
                directory; the run is aborted
        """
        if self.devenv is None:
            raise ConfigurationError("A development environment is required to export objects")

        started_at = datetime.now(timezone.utc)
        pending = self.pending_exports()
        index = self.working_copy.scan()

        result = SyncResult(success=True, operation="export", started_at=started_at)
        self.logger.info("%d objects pending export", len(pending))

        for obj in pending:
            destination = self.working_copy.path_for(obj)
            try:
                self.devenv.export_object(obj, destination)
            except DevEnvError as e:
                self.logger.error("%s", e)
                result.failures.append(ExportFailure(cache_key=obj.cache_key, message=e.message))
                continue

            result.exported.append(obj.cache_key)
            previous = index.files.get(obj.key)
            if previous is not None and previous.resolve() != destination.resolve():
                self.logger.info("Removing stale file %s of renamed %s", previous, obj.key)
                previous.unlink()
                result.removed.append(previous)

        if result.failures:
            result.success = False
            result.message = "cache not refreshed"
        else:
            self.refresh_cache()
            result.cache_refreshed = True

        result.completed_at = datetime.now(timezone.utc)
        self.logger.info(result.summary())
        return result
