"""
Object cache.

A persisted snapshot of database objects, used to avoid re-reading the object
table on every run and to find objects changed since the last run.
"""

from navscm.core.cache.models import CACHE_SCHEMA_VERSION, CacheFile
from navscm.core.cache.store import CacheStore

__all__ = ["CACHE_SCHEMA_VERSION", "CacheFile", "CacheStore"]
