"""
Tests for the persisted object cache.
"""

import json
from datetime import date, datetime, time

import pytest

from navscm.core.cache import CACHE_SCHEMA_VERSION, CacheStore
from navscm.core.exceptions import (
    CacheNotFoundError,
    DuplicateObjectError,
    InvalidCacheError,
)
from navscm.core.objects import DatabaseObject, NavObjectType, ObjectKey


def make_object(
    object_type,
    object_id,
    name,
    modified=datetime(2015, 9, 28, 12, 0),
    version_list="CMNM6.03",
):
    return DatabaseObject(
        type=object_type,
        id=object_id,
        name=name,
        modified_date=modified.date(),
        modified_time=modified.time(),
        version_list=version_list,
    )


@pytest.fixture
def objects():
    return [
        make_object(NavObjectType.PAGE, 21, "Customer Card"),
        make_object(NavObjectType.CODEUNIT, 99997, "TN_Test"),
        make_object(NavObjectType.REPORT, 206, "Sales: Invoice/Copy?"),
        make_object(NavObjectType.TABLE, 18, "Customer"),
    ]


class TestSnapshot:
    """Test building a store."""

    def test_snapshot(self, objects):
        """Test that objects are keyed by cache key."""
        store = CacheStore.snapshot(objects)
        assert len(store) == 4
        assert store["5.99997"].name == "TN_Test"
        assert store[ObjectKey(NavObjectType.TABLE, 18)].name == "Customer"
        assert "8.21" in store
        assert "9.1" not in store

    def test_objects_sorted(self, objects):
        """Test that objects() is ordered by key."""
        store = CacheStore.snapshot(objects)
        assert [o.cache_key for o in store.objects()] == ["1.18", "3.206", "5.99997", "8.21"]

    def test_duplicate_key(self, objects):
        """Test that the same object twice is an error."""
        with pytest.raises(DuplicateObjectError) as exc_info:
            CacheStore.snapshot(objects + [make_object(NavObjectType.TABLE, 18, "Again")])
        assert exc_info.value.cache_key == "1.18"

    def test_missing_key(self, objects):
        """Test that unknown keys raise KeyError."""
        with pytest.raises(KeyError):
            CacheStore.snapshot(objects)["1.1"]


class TestPersistence:
    """Test writing and reading the cache file."""

    def test_round_trip(self, tmp_path, objects):
        """Test that a persisted store reads back unchanged."""
        path = tmp_path / ".navscm" / "cache.json"
        store = CacheStore.snapshot(objects)
        store.persist(path)

        loaded = CacheStore.load(path)

        assert list(loaded) == list(store)
        for key in store:
            original, restored = store[key], loaded[key]
            assert restored.type is original.type
            assert restored.name == original.name
            assert restored.modified == original.modified
            assert restored.version_list == original.version_list
        assert loaded["3.206"].relative_path == store["3.206"].relative_path
        assert loaded.created_at == store.created_at

    def test_canonical_example(self, tmp_path):
        """Test the TN_Test codeunit survives a round trip."""
        path = tmp_path / "cache.json"
        obj = DatabaseObject(
            type=NavObjectType.CODEUNIT,
            id=99997,
            name="TN_Test",
            modified_date=date(2015, 9, 28),
            modified_time=time(12, 0),
            version_list="CMNM6.03",
        )
        CacheStore.snapshot([obj]).persist(path)
        assert CacheStore.load(path)["5.99997"].name == "TN_Test"

    def test_persist_replaces_previous(self, tmp_path, objects):
        """Test that a refresh replaces the whole artifact."""
        path = tmp_path / "cache.json"
        CacheStore.snapshot(objects).persist(path)
        CacheStore.snapshot(objects[:1]).persist(path)

        assert list(CacheStore.load(path)) == ["8.21"]
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    def test_file_layout(self, tmp_path, objects):
        """Test the JSON document written to disk."""
        path = tmp_path / "cache.json"
        CacheStore.snapshot(objects).persist(path)

        data = json.loads(path.read_text())
        assert data["schema_version"] == CACHE_SCHEMA_VERSION
        assert data["objects"]["5.99997"]["type"] == 5
        assert data["objects"]["5.99997"]["modified_date"] == "2015-09-28"

    def test_failed_write_keeps_previous(self, tmp_path, objects, monkeypatch):
        """Test that an interrupted write leaves the old cache and no temp file."""
        path = tmp_path / "cache.json"
        CacheStore.snapshot(objects).persist(path)
        before = path.read_text()

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("navscm.core.cache.store.os.replace", broken_replace)
        with pytest.raises(OSError, match="disk full"):
            CacheStore.snapshot(objects[:1]).persist(path)

        assert path.read_text() == before
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]


class TestLoadErrors:
    """Test distinguishing a missing cache from a corrupt one."""

    def test_missing(self, tmp_path):
        """Test that a missing cache raises CacheNotFoundError."""
        with pytest.raises(CacheNotFoundError):
            CacheStore.load(tmp_path / "cache.json")

    def test_load_if_exists(self, tmp_path):
        """Test that load_if_exists returns None for a missing cache."""
        assert CacheStore.load_if_exists(tmp_path / "cache.json") is None

    def test_not_json(self, tmp_path):
        """Test that garbage is an invalid cache."""
        path = tmp_path / "cache.json"
        path.write_text("{ not json")
        with pytest.raises(InvalidCacheError):
            CacheStore.load(path)

    def test_corrupt_is_not_missing(self, tmp_path):
        """Test that load_if_exists still raises for a corrupt cache."""
        path = tmp_path / "cache.json"
        path.write_text("[]")
        with pytest.raises(InvalidCacheError):
            CacheStore.load_if_exists(path)

    def test_unsupported_object_type(self, tmp_path):
        """Test that cached objects are validated."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({
            "schema_version": CACHE_SCHEMA_VERSION,
            "created_at": "2024-01-01T00:00:00Z",
            "objects": {
                "2.21": {
                    "type": 2,
                    "id": 21,
                    "name": "Customer Card",
                    "modified_date": "2015-09-28",
                    "modified_time": "12:00:00",
                    "version_list": "",
                }
            },
        }))
        with pytest.raises(InvalidCacheError, match="schema"):
            CacheStore.load(path)

    def test_schema_version_mismatch(self, tmp_path):
        """Test that other layout versions are rejected."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"schema_version": 99, "objects": {}}))
        with pytest.raises(InvalidCacheError, match="schema version 99"):
            CacheStore.load(path)

    def test_key_mismatch(self, tmp_path):
        """Test that entries must be stored under their own key."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({
            "schema_version": CACHE_SCHEMA_VERSION,
            "objects": {
                "5.1": {
                    "type": 5,
                    "id": 2,
                    "name": "X",
                    "modified_date": "2015-09-28",
                    "modified_time": "12:00:00",
                }
            },
        }))
        with pytest.raises(InvalidCacheError, match="holds object 5.2"):
            CacheStore.load(path)


class TestChangedObjects:
    """Test finding objects changed since the snapshot."""

    def test_changed_objects(self, objects):
        """Test that new and re-modified objects are reported."""
        store = CacheStore.snapshot(objects)
        current = [
            make_object(NavObjectType.CODEUNIT, 99997, "TN_Test"),
            make_object(NavObjectType.PAGE, 21, "Customer Card", datetime(2020, 5, 4, 8, 15)),
            make_object(NavObjectType.QUERY, 1, "Top Customers"),
        ]
        changed = store.changed_objects(current)
        assert [o.cache_key for o in changed] == ["8.21", "9.1"]

    def test_version_list_change(self, objects):
        """Test that a new version list alone marks an object as changed."""
        store = CacheStore.snapshot(objects)
        current = [
            make_object(NavObjectType.TABLE, 18, "Customer", version_list="CMNM6.04"),
            make_object(NavObjectType.CODEUNIT, 99997, "TN_Test"),
        ]
        changed = store.changed_objects(current)
        assert [o.cache_key for o in changed] == ["1.18"]
