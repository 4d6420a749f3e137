# =============================================================================
# fleet_core/notifications/feed.py
# In-memory Notification Feed
# =============================================================================

from __future__ import annotations
import itertools
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from fleet_core.notifications.notifier import Notifier


NOTIFICATION_TYPES = (
    "incident",
    "maintenance",
    "fuel",
    "stock",
    "system",
    "work_order",
    "machinery",
)

_counter = itertools.count(1)


def _next_notification_id() -> str:
    # Epoch milliseconds plus a counter: two events in the same millisecond
    # must still get distinct ids
    return f"{int(time.time() * 1000)}-{next(_counter)}"


@dataclass(frozen=True)
class Notification:
    type: str
    title: str
    message: str
    id: str = field(default_factory=_next_notification_id)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    read: bool = False
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
            "link": self.link,
        }


def seed_notifications() -> List[Notification]:
    """Notifications every session starts with."""
    return [
        Notification(
            type="system",
            title="Bienvenido a FleetOps",
            message="Los cambios sin conexión se guardan en este equipo.",
        )
    ]


class NotificationFeed:
    """
    Newest-first list of notifications. Lives only for the session; nothing
    here is written to the remote store or to local snapshots.
    """

    def __init__(
        self,
        seed: Optional[List[Notification]] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._items: List[Notification] = list(seed) if seed is not None else seed_notifications()
        self._lock = threading.Lock()
        self.notifier = notifier

    @property
    def items(self) -> List[Notification]:
        with self._lock:
            return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.items if not n.read)

    def push(self, notification: Notification) -> Notification:
        with self._lock:
            self._items = [notification, *self._items]
        return notification

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            found = any(n.id == notification_id for n in self._items)
            self._items = [
                replace(n, read=True) if n.id == notification_id else n
                for n in self._items
            ]
        return found

    def mark_all_read(self) -> None:
        with self._lock:
            self._items = [replace(n, read=True) for n in self._items]
        if self.notifier is not None:
            self.notifier.success("Todas las notificaciones marcadas como leídas")

    def clear(self) -> None:
        with self._lock:
            self._items = []
