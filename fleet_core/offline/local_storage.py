# =============================================================================
# fleet_core/offline/local_storage.py
# Local Key-Value Storage and JSON Snapshot Persistence
# =============================================================================
"""
Local persistence for entity collections.

Layers:
- LocalKeyValueStore: SQLite-backed string store (one row per key)
- MemoryKeyValueStore: dict-backed store for tests and read-only contexts
- LocalPersistence: JSON load/save with a namespaced key prefix; never raises
- SnapshotWriter: debounced writes of whole collections after changes

Snapshots seed the next session; during a session the in-memory stores are
authoritative.
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Union
import logging

from fleet_core.errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self, prefix: str = "") -> List[str]: ...
    def clear(self) -> None: ...


class LocalKeyValueStore:
    """
    SQLite key-value store that plays the role of browser local storage.

    Each thread gets its own connection; writes are last-write-wins.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS local_storage (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._initialized = False
        self._init_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._local.connection = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,
                )
            except (sqlite3.Error, OSError) as e:
                raise PersistenceError(f"Local storage unavailable: {e}", key=str(self.db_path))
        return self._local.connection

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if not self._initialized:
                conn.execute(self.SCHEMA)
                conn.commit()
                self._initialized = True
                logger.info(f"Local storage initialized at: {self.db_path}")

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            self._ensure_schema(conn)
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Local storage error: {e}")

    def get(self, key: str) -> Optional[str]:
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO local_storage (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                (key, value, datetime.now().isoformat()),
            )

    def remove(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))

    def keys(self, prefix: str = "") -> List[str]:
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT key FROM local_storage WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r[0] for r in rows]

    def clear(self) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM local_storage")

    def close(self) -> None:
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None


class MemoryKeyValueStore:
    """Dict-backed key-value store with the same interface."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class LocalPersistence:
    """
    JSON persistence of named collections under ``<prefix>_<key>``.

    Callers never observe persistence errors: load falls back to the default
    and save logs and gives up.
    """

    def __init__(self, backend: Optional[KeyValueBackend], prefix: str = "futamaq"):
        self.backend = backend
        self.prefix = prefix

    def namespaced(self, key: str) -> str:
        return f"{self.prefix}_{key}"

    def load(self, key: str, default: Any) -> Any:
        if self.backend is None:
            return default
        try:
            stored = self.backend.get(self.namespaced(key))
            if stored is not None:
                return json.loads(stored)
        except (PersistenceError, ValueError, TypeError) as e:
            logger.error(f"Error loading {key} from local storage: {e}")
        return default

    def save(self, key: str, value: Any) -> None:
        if self.backend is None:
            return
        try:
            self.backend.set(self.namespaced(key), json.dumps(value, default=str))
        except (PersistenceError, ValueError, TypeError) as e:
            logger.error(f"Error saving {key} to local storage: {e}")

    def clear_all(self) -> int:
        """Remove every key under this prefix. Returns how many were removed."""
        if self.backend is None:
            return 0
        try:
            keys = self.backend.keys(f"{self.prefix}_")
            for key in keys:
                self.backend.remove(key)
            return len(keys)
        except PersistenceError as e:
            logger.error(f"Error clearing local storage: {e}")
            return 0


class SnapshotWriter:
    """
    Debounced snapshot writes.

    ``schedule(name, provider)`` records that collection ``name`` changed;
    after ``delay`` seconds without further changes every pending provider is
    called and its result saved. A delay of 0 writes synchronously.
    """

    def __init__(self, persistence: LocalPersistence, delay: float = 0.5):
        self.persistence = persistence
        self.delay = delay
        self._pending: Dict[str, Callable[[], Any]] = {}
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> List[str]:
        with self._lock:
            return sorted(self._pending)

    def schedule(self, name: str, provider: Callable[[], Any]) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending[name] = provider
            if self.delay <= 0:
                immediate = True
            else:
                immediate = False
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = threading.Timer(self.delay, self.flush)
                self._timer.daemon = True
                self._timer.start()
        if immediate:
            self.flush()

    def flush(self) -> int:
        """Write every pending snapshot now. Returns the number written."""
        with self._lock:
            pending = self._pending
            self._pending = {}
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        for name, provider in pending.items():
            self.persistence.save(name, provider())
        if pending:
            logger.debug(f"Saved snapshots: {sorted(pending)}")
        return len(pending)

    def discard(self, close: bool = False) -> None:
        """Drop pending snapshots without writing them; ``close`` stops later writes too."""
        with self._lock:
            self._pending = {}
            self._closed = self._closed or close
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def close(self) -> None:
        self.flush()
        with self._lock:
            self._closed = True
