# =============================================================================
# tests/unit/test_local_storage.py
# Unit Tests for Local Persistence
# =============================================================================

import time

import pytest

from fleet_core.errors import PersistenceError
from fleet_core.offline.local_storage import (
    LocalKeyValueStore,
    LocalPersistence,
    MemoryKeyValueStore,
    SnapshotWriter,
)


class BrokenBackend:
    """Backend whose every call fails"""

    def get(self, key):
        raise PersistenceError("storage unavailable")

    def set(self, key, value):
        raise PersistenceError("storage unavailable")

    def remove(self, key):
        raise PersistenceError("storage unavailable")

    def keys(self, prefix=""):
        raise PersistenceError("storage unavailable")

    def clear(self):
        raise PersistenceError("storage unavailable")


class TestLocalPersistence:
    """Test JSON load/save behaviour"""

    def test_round_trip_nested_collection(self, persistence):
        orders = [
            {
                "id": "OT-2025-001",
                "assigned_machinery": [1, 2],
                "tasks": [{"id": "T-2025-001-001", "done": False, "hours": 2.5}],
                "meta": {"client": {"name": "Fundo El Roble", "rut": None}},
            }
        ]

        persistence.save("workOrders", orders)

        assert persistence.load("workOrders", []) == orders

    def test_keys_are_namespaced(self, persistence):
        persistence.save("machinery", [])
        assert persistence.backend.keys() == ["futamaq_machinery"]

    def test_missing_key_returns_default(self, persistence):
        assert persistence.load("clients", [{"id": 1}]) == [{"id": 1}]

    def test_corrupt_json_returns_default(self):
        backend = MemoryKeyValueStore({"futamaq_users": "{not json"})
        persistence = LocalPersistence(backend)

        assert persistence.load("users", []) == []

    def test_unavailable_storage_never_raises(self):
        persistence = LocalPersistence(BrokenBackend())

        persistence.save("users", [{"id": 1}])
        assert persistence.load("users", "default") == "default"
        assert persistence.clear_all() == 0

    def test_no_backend_is_noop(self):
        persistence = LocalPersistence(None)
        persistence.save("users", [1])
        assert persistence.load("users", None) is None

    def test_clear_all_only_removes_prefix(self):
        backend = MemoryKeyValueStore({"futamaq_a": "1", "futamaq_b": "2", "other_c": "3"})
        persistence = LocalPersistence(backend)

        assert persistence.clear_all() == 2
        assert backend.keys() == ["other_c"]


class TestLocalKeyValueStore:
    """Test the SQLite backend"""

    def test_set_get_remove(self, tmp_path):
        store = LocalKeyValueStore(tmp_path / "local.db")

        store.set("futamaq_x", "[1]")
        store.set("futamaq_x", "[2]")
        assert store.get("futamaq_x") == "[2]"

        store.remove("futamaq_x")
        assert store.get("futamaq_x") is None
        store.close()

    def test_keys_by_prefix(self, tmp_path):
        store = LocalKeyValueStore(tmp_path / "local.db")
        store.set("futamaq_a", "1")
        store.set("futamaq_b", "1")
        store.set("other", "1")

        assert store.keys("futamaq_") == ["futamaq_a", "futamaq_b"]
        store.clear()
        assert store.keys() == []
        store.close()

    def test_persistence_survives_reopen(self, tmp_path):
        path = tmp_path / "nested" / "local.db"
        first = LocalPersistence(LocalKeyValueStore(path))
        first.save("fuelLoads", [{"id": 1, "liters": 120.5}])
        first.backend.close()

        second = LocalPersistence(LocalKeyValueStore(path))
        assert second.load("fuelLoads", []) == [{"id": 1, "liters": 120.5}]
        second.backend.close()


class TestSnapshotWriter:
    """Test debounced snapshot writes"""

    def test_zero_delay_writes_immediately(self, persistence):
        writer = SnapshotWriter(persistence, delay=0)
        writer.schedule("clients", lambda: [{"id": 1}])

        assert persistence.load("clients", None) == [{"id": 1}]

    def test_changes_are_coalesced_until_flush(self, persistence):
        writer = SnapshotWriter(persistence, delay=60)
        calls = []

        def provider():
            calls.append(1)
            return [{"id": len(calls)}]

        writer.schedule("clients", provider)
        writer.schedule("clients", provider)
        assert persistence.load("clients", None) is None
        assert writer.pending == ["clients"]

        assert writer.flush() == 1
        assert calls == [1]
        assert persistence.load("clients", None) == [{"id": 1}]
        writer.close()

    def test_timer_writes_after_delay(self, persistence):
        writer = SnapshotWriter(persistence, delay=0.05)
        writer.schedule("users", lambda: ["u"])

        deadline = time.time() + 2
        while persistence.load("users", None) is None and time.time() < deadline:
            time.sleep(0.01)

        assert persistence.load("users", None) == ["u"]
        writer.close()

    def test_discard_with_close_stops_writes(self, persistence):
        writer = SnapshotWriter(persistence, delay=60)
        writer.schedule("users", lambda: ["stale"])

        writer.discard(close=True)
        writer.schedule("users", lambda: ["later"])
        writer.flush()

        assert persistence.load("users", None) is None

    def test_close_flushes_pending(self, persistence):
        writer = SnapshotWriter(persistence, delay=60)
        writer.schedule("users", lambda: ["u"])
        writer.close()

        assert persistence.load("users", None) == ["u"]
