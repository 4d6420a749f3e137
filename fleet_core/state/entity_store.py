# =============================================================================
# fleet_core/state/entity_store.py
# In-memory Entity Collections
# =============================================================================

from __future__ import annotations
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

import pandas as pd

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

# Per-record origin tag: authoritative copy from the remote store, or a
# locally originated record the remote store has not confirmed
SYNC_STATUS_FIELD = "sync_status"
SYNCED = "synced"
LOCAL = "local"

LOCAL_ONLY_FIELDS = (SYNC_STATUS_FIELD,)


def strip_local_fields(record: Record) -> Record:
    """Copy of ``record`` without fields that never go to the remote store."""
    return {k: v for k, v in record.items() if k not in LOCAL_ONLY_FIELDS}


def tag(record: Record, status: str) -> Record:
    return {**record, SYNC_STATUS_FIELD: status}


class EntityStore:
    """
    Ordered collection of one entity type.

    Every mutation swaps in a new list, so a snapshot handed out by ``items``
    never changes underneath a reader. Listeners run after each change.
    """

    def __init__(
        self,
        name: str,
        table: str,
        id_field: str = "id",
        rows: Optional[Iterable[Record]] = None,
    ):
        self.name = name
        self.table = table
        self.id_field = id_field
        self._items: List[Record] = [dict(r) for r in rows or []]
        self._lock = threading.RLock()
        self._listeners: List[Callable[[EntityStore], None]] = []

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"EntityStore({self.name!r}, {len(self)} records)"

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def items(self) -> Tuple[Record, ...]:
        return tuple(self._items)

    @property
    def ids(self) -> List[Any]:
        return [r.get(self.id_field) for r in self._items]

    def get(self, record_id: Any) -> Optional[Record]:
        for record in self._items:
            if record.get(self.id_field) == record_id:
                return record
        return None

    def contains(self, record_id: Any) -> bool:
        return self.get(record_id) is not None

    def next_int_id(self) -> int:
        """``max(existing integer ids) + 1``, or 1 for an empty collection."""
        numeric = []
        for value in self.ids:
            try:
                numeric.append(int(value))
            except (TypeError, ValueError):
                continue
        return max(numeric, default=0) + 1

    def to_dataframe(self, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        df = pd.DataFrame(list(self._items))
        if columns is not None:
            df = df.reindex(columns=list(columns))
        return df

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def replace_all(self, rows: Iterable[Record]) -> None:
        with self._lock:
            self._items = [dict(r) for r in rows]
        self._changed()

    def append(self, record: Record) -> Record:
        with self._lock:
            self._items = [*self._items, dict(record)]
        self._changed()
        return record

    def prepend(self, record: Record) -> Record:
        with self._lock:
            self._items = [dict(record), *self._items]
        self._changed()
        return record

    def put(self, record: Record, front: bool = False) -> Record:
        """Replace the record with the same id in place, or add it."""
        record_id = record.get(self.id_field)
        with self._lock:
            if self.contains(record_id):
                self._items = [
                    dict(record) if r.get(self.id_field) == record_id else r
                    for r in self._items
                ]
            elif front:
                self._items = [dict(record), *self._items]
            else:
                self._items = [*self._items, dict(record)]
        self._changed()
        return record

    def upsert_front(self, record: Record) -> bool:
        """
        Prepend ``record`` unless its id is already held, in which case the
        held record is shallow-merged in place. Returns True when added.
        """
        record_id = record.get(self.id_field)
        with self._lock:
            if self.contains(record_id):
                self._items = [
                    {**r, **record} if r.get(self.id_field) == record_id else r
                    for r in self._items
                ]
                added = False
            else:
                self._items = [dict(record), *self._items]
                added = True
        self._changed()
        return added

    def merge(self, record_id: Any, fields: Record) -> Optional[Record]:
        """Shallow-merge ``fields`` into the record; unknown ids are a no-op."""
        merged = None
        with self._lock:
            new_items = []
            for r in self._items:
                if r.get(self.id_field) == record_id:
                    merged = {**r, **fields}
                    new_items.append(merged)
                else:
                    new_items.append(r)
            if merged is None:
                return None
            self._items = new_items
        self._changed()
        return merged

    def remove(self, record_id: Any) -> Optional[Record]:
        """Remove by id and return the removed record; unknown ids are a no-op."""
        with self._lock:
            removed = self.get(record_id)
            if removed is None:
                return None
            self._items = [r for r in self._items if r.get(self.id_field) != record_id]
        self._changed()
        return removed

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def subscribe(self, listener: Callable[[EntityStore], None]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Error in {self.name} store listener: {e}")
