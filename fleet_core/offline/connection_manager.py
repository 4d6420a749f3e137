# =============================================================================
# fleet_core/offline/connection_manager.py
# Connection Status Tracking
# =============================================================================
"""
ConnectionMonitor - Tracks whether the remote store is answering.

There is no polling thread: every gateway call made by the sync controller
reports its outcome here, and the UI reads the resulting status for its
online/offline indicator.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[["ConnectionState"], None]


class ConnectionStatus(Enum):
    ONLINE = "online"           # last remote call succeeded
    OFFLINE = "offline"         # last remote call failed
    LOCAL_ONLY = "local_only"   # no remote store configured; never changes
    UNKNOWN = "unknown"         # no remote call yet


@dataclass(frozen=True)
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    checked_at: Optional[datetime] = None
    online_at: Optional[datetime] = None
    failures: int = 0
    last_error: Optional[str] = None


class ConnectionMonitor:
    """
    Usage:
        monitor = ConnectionMonitor(remote_enabled=True)
        unsubscribe = monitor.on_change(lambda s: print(s.status))
        monitor.record_success()
    """

    def __init__(self, remote_enabled: bool = True):
        self._state = ConnectionState(
            status=ConnectionStatus.UNKNOWN if remote_enabled else ConnectionStatus.LOCAL_ONLY,
        )
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_online(self) -> bool:
        return self.status is ConnectionStatus.ONLINE

    @property
    def is_offline(self) -> bool:
        return self.status in (ConnectionStatus.OFFLINE, ConnectionStatus.LOCAL_ONLY)

    def record_success(self) -> ConnectionState:
        now = datetime.now()
        return self._apply(lambda s: replace(
            s, status=ConnectionStatus.ONLINE, checked_at=now, online_at=now, failures=0, last_error=None,
        ))

    def record_failure(self, error: Optional[Exception] = None) -> ConnectionState:
        return self._apply(lambda s: replace(
            s,
            status=ConnectionStatus.OFFLINE,
            checked_at=datetime.now(),
            failures=s.failures + 1,
            last_error=str(error) if error else None,
        ))

    def _apply(self, change: Callable[[ConnectionState], ConnectionState]) -> ConnectionState:
        with self._lock:
            before = self._state
            if before.status is ConnectionStatus.LOCAL_ONLY:
                return before
            after = self._state = change(before)

        if after.status is not before.status:
            logger.info(f"Remote store {before.status.value} -> {after.status.value}")
            for listener in list(self._listeners):
                try:
                    listener(after)
                except Exception as e:
                    logger.error(f"Connection listener raised: {e}")
        return after

    def on_change(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` on every status transition. Returns the unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def describe(self) -> Dict[str, object]:
        """Plain values for the status panel."""
        s = self._state
        return {
            "status": s.status.value,
            "online": self.is_online,
            "checked_at": s.checked_at.isoformat() if s.checked_at else None,
            "online_at": s.online_at.isoformat() if s.online_at else None,
            "failures": s.failures,
            "error": s.last_error,
        }
