"""
Data models for the object cache artifact.

The cache is a single JSON document written as a whole on every refresh.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from navscm.core.objects.models import DatabaseObject

CACHE_SCHEMA_VERSION = 1


class CacheFile(BaseModel):
    """
    On-disk layout of the object cache.

    Example:
        >>> cache = CacheFile(objects={obj.cache_key: obj})
        >>> cache.model_dump_json(indent=2)
    """

    schema_version: int = Field(
        default=CACHE_SCHEMA_VERSION,
        description="Layout version of the cache file",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the snapshot was taken",
    )

    objects: dict[str, DatabaseObject] = Field(
        default_factory=dict,
        description="Database objects by cache key ('type.id')",
    )
