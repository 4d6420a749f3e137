# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import itertools
import time
from collections import defaultdict
from datetime import date
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from fleet_core.config import AppConfig
from fleet_core.errors import GatewayError, GatewayErrorKind
from fleet_core.notifications import Notifier
from fleet_core.offline.gateway import RemoteGateway, Subscription
from fleet_core.offline.local_storage import LocalPersistence, MemoryKeyValueStore
from fleet_core.state.entity_store import EntityStore


# =============================================================================
# FAKE REMOTE STORE
# =============================================================================

class FakeSubscription(Subscription):
    def __init__(self, gateway: "FakeGateway", table: str):
        self.gateway = gateway
        self.table = table
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.gateway.subscribers.pop(self.table, None)


class FakeGateway(RemoteGateway):
    """
    In-memory remote store.

    ``fail(operation, error, table=None)`` makes every later call of that
    operation raise ``error`` (optionally only for one table); ``heal()``
    removes all injected failures.
    """

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(r) for r in rows]
        self.failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self.rpc_results: Dict[str, Any] = {}
        self.subscribers: Dict[str, Callable] = {}
        self.uploads: Dict[str, tuple] = {}
        self.select_delay = 0.0
        self.closed = False
        self._ids = itertools.count(1000)

    # -- failure injection ----------------------------------------------------

    def fail(self, operation: str, error: Optional[Exception] = None, table: Optional[str] = None):
        self.failures[(operation, table)] = error or GatewayError(
            "Network unreachable", kind=GatewayErrorKind.NETWORK, table=table, operation=operation
        )

    def heal(self):
        self.failures.clear()

    def _check(self, operation: str, table: Optional[str]):
        self.calls.append((operation, table))
        error = self.failures.get((operation, table)) or self.failures.get((operation, None))
        if error is not None:
            raise error

    def calls_to(self, operation: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == operation]

    # -- table operations -----------------------------------------------------

    def select(self, table, filters=None, order_by=None, descending=False, limit=None, bulk=False):
        if self.select_delay:
            time.sleep(self.select_delay)
        self._check("select", table)
        rows = [dict(r) for r in self.tables[table]]
        for col, val in (filters or {}).items():
            rows = [r for r in rows if r.get(col) == val]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by) or ""), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table, row):
        self._check("insert", table)
        stored = dict(row)
        if stored.get("id") is None:
            stored["id"] = next(self._ids)
        stored.setdefault("created_at", "2025-06-01T12:00:00+00:00")
        self.tables[table].append(stored)
        return dict(stored)

    def update(self, table, record_id, fields, id_field="id"):
        self._check("update", table)
        for row in self.tables[table]:
            if row.get(id_field) == record_id:
                row.update(fields)
                return dict(row)
        return None

    def delete(self, table, record_id, id_field="id"):
        self._check("delete", table)
        self.tables[table] = [r for r in self.tables[table] if r.get(id_field) != record_id]

    def rpc(self, function, params=None):
        self._check("rpc", function)
        if function not in self.rpc_results:
            raise GatewayError(f"Unknown function {function}", kind=GatewayErrorKind.REJECTED)
        return self.rpc_results[function]

    # -- storage and realtime -------------------------------------------------

    def upload(self, path, content, content_type, upsert=True):
        self._check("upload", None)
        self.uploads[path] = (content, content_type)

    def public_url(self, path):
        return f"https://storage.test/images/{path}"

    def subscribe(self, table, event, callback):
        self._check("subscribe", table)
        self.subscribers[table] = callback
        return FakeSubscription(self, table)

    def push(self, table: str, row: Dict[str, Any]):
        """Deliver a realtime INSERT as another client would."""
        self.tables[table].append(dict(row))
        return self.subscribers[table](dict(row))

    def close(self):
        self.closed = True


# =============================================================================
# CORE FIXTURES
# =============================================================================

@pytest.fixture
def gateway():
    """Reachable in-memory remote store"""
    return FakeGateway()


@pytest.fixture
def make_gateway():
    """Factory for a fake remote store pre-filled with ``{table: rows}``"""
    return FakeGateway


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def persistence():
    """Local persistence over a dict backend"""
    return LocalPersistence(MemoryKeyValueStore(), prefix="futamaq")


@pytest.fixture
def fixed_today():
    return lambda: date(2025, 6, 1)


@pytest.fixture
def make_store():
    def factory(name="workOrders", table="work_orders", rows=None):
        return EntityStore(name, table, rows=rows)
    return factory


@pytest.fixture
def test_config():
    """Remote-enabled config with synchronous snapshots and a short id lookup timeout"""
    return AppConfig(
        supabase_url="https://test.supabase.co",
        supabase_key="test-key",
        local_db_path=":memory:",
        persist_debounce=0,
        id_lookup_timeout=0.2,
    )


@pytest.fixture
def app_state(test_config, gateway):
    """AppState wired to the fake gateway and an in-memory local store"""
    from fleet_core.app_state import AppState

    state = AppState.create(test_config, gateway=gateway, storage=MemoryKeyValueStore())
    yield state
    state.close()


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_supabase():
    """Mock Supabase client"""
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value = MagicMock()
    return mock_client


