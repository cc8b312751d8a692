"""
Persistent snapshot of database objects.

The store is built from a query result, written as a unit and read back as a
unit. There is no incremental update: a refresh replaces the whole artifact.
Writes go to a temporary file next to the destination which is then renamed
into place, so a crash never leaves a half-written cache behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from navscm.core.cache.models import CACHE_SCHEMA_VERSION, CacheFile
from navscm.core.exceptions import CacheNotFoundError, DuplicateObjectError, InvalidCacheError
from navscm.core.objects.models import DatabaseObject, ObjectKey


class CacheStore(Mapping[str, DatabaseObject]):
    """
    Read-only mapping from cache key to database object.

    Lookups accept either a cache key string ("5.99997") or an ObjectKey.

    Example:
        >>> store = CacheStore.snapshot(source.all_objects())
        >>> store.persist(Path(".navscm/cache.json"))
        >>> reloaded = CacheStore.load(Path(".navscm/cache.json"))
        >>> reloaded["5.99997"].name
        'TN_Test'
    """

    def __init__(
        self,
        objects: Mapping[str, DatabaseObject],
        created_at: datetime | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._objects = dict(objects)
        self.created_at = created_at or datetime.now(timezone.utc)
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def snapshot(
        cls,
        objects: Iterable[DatabaseObject],
        logger: logging.Logger | None = None,
    ) -> CacheStore:
        """
        Build a store from database objects.

        Raises:
            DuplicateObjectError: If two objects share a key; the data source
                is expected to return each object once.
        """
        log = logger or logging.getLogger(__name__)
        collected: dict[str, DatabaseObject] = {}
        for obj in objects:
            if obj.cache_key in collected:
                raise DuplicateObjectError(obj.cache_key, "returned twice by the data source")
            log.debug("Caching %s", obj)
            collected[obj.cache_key] = obj

        log.info("Snapshot holds %d objects", len(collected))
        return cls(collected, logger=logger)

    def __getitem__(self, key: str | ObjectKey) -> DatabaseObject:
        if isinstance(key, ObjectKey):
            key = key.cache_key
        return self._objects[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def objects(self) -> list[DatabaseObject]:
        """All cached objects ordered by key."""
        return sorted(self._objects.values())

    def changed_objects(self, objects: Iterable[DatabaseObject]) -> list[DatabaseObject]:
        """
        Filter objects down to those changed since this snapshot.

        An object counts as changed if it is not in the snapshot, or if its
        modification instant or version list differs from the cached one.
        """
        changed = []
        for obj in objects:
            cached = self._objects.get(obj.cache_key)
            if (
                cached is None
                or cached.modified != obj.modified
                or cached.version_list != obj.version_list
            ):
                changed.append(obj)
        return changed

    def persist(self, path: Path) -> None:
        """
        Write the store to `path`, replacing any previous cache atomically.

        Raises:
            OSError: If the file cannot be written. The previous cache, if
                any, is left untouched.
        """
        document = CacheFile(created_at=self.created_at, objects=self._objects)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".cache_",
            suffix=".json.tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document.model_dump_json(indent=2))
                f.write("\n")

            os.replace(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        self.logger.info("Wrote %d objects to %s", len(self._objects), path)

    @classmethod
    def load(cls, path: Path, logger: logging.Logger | None = None) -> CacheStore:
        """
        Read a store written by `persist`.

        Raises:
            CacheNotFoundError: If there is no cache at `path`
            InvalidCacheError: If the file exists but is not a valid cache
        """
        log = logger or logging.getLogger(__name__)
        if not path.exists():
            raise CacheNotFoundError(path)

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidCacheError(path, f"cannot be read: {e}") from e

        try:
            document = CacheFile.model_validate_json(content)
        except (ValidationError, json.JSONDecodeError, ValueError) as e:
            raise InvalidCacheError(path, f"does not match the cache schema: {e}") from e

        if document.schema_version != CACHE_SCHEMA_VERSION:
            raise InvalidCacheError(
                path,
                f"has schema version {document.schema_version}, "
                f"expected {CACHE_SCHEMA_VERSION}",
            )

        for key, obj in document.objects.items():
            if key != obj.cache_key:
                raise InvalidCacheError(path, f"entry '{key}' holds object {obj.cache_key}")

        log.debug("Loaded %d objects from %s", len(document.objects), path)
        return cls(document.objects, created_at=document.created_at, logger=logger)

    @classmethod
    def load_if_exists(
        cls, path: Path, logger: logging.Logger | None = None
    ) -> CacheStore | None:
        """Like `load`, but return None when no cache has been written yet."""
        try:
            return cls.load(path, logger=logger)
        except CacheNotFoundError:
            return None
