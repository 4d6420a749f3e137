# =============================================================================
# fleet_core/notifications/notifier.py
# Transient Operation Notices (toasts)
# =============================================================================

from __future__ import annotations
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List, Optional
import logging

logger = logging.getLogger(__name__)


class NoticeLevel(Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Notice:
    """One user-visible status message for a finished operation."""
    level: NoticeLevel
    message: str
    outcome: Optional[str] = None
    record_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


NoticeSink = Callable[[Notice], None]


class Notifier:
    """
    Fan-out of notices to registered sinks (Streamlit toasts, logs, tests).

    Keeps the most recent notices in ``history`` so a page rendered after the
    operation can still show them.
    """

    HISTORY_SIZE = 100

    def __init__(self, history_size: Optional[int] = None):
        self._sinks: List[NoticeSink] = []
        self._history: Deque[Notice] = deque(maxlen=history_size or self.HISTORY_SIZE)
        self._lock = threading.Lock()

    @property
    def history(self) -> List[Notice]:
        with self._lock:
            return list(self._history)

    def register_sink(self, sink: NoticeSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unregister_sink(self, sink: NoticeSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def drain(self) -> List[Notice]:
        """Return and forget every notice in history."""
        with self._lock:
            notices = list(self._history)
            self._history.clear()
        return notices

    def emit(self, notice: Notice) -> Notice:
        with self._lock:
            self._history.append(notice)
        for sink in list(self._sinks):
            try:
                sink(notice)
            except Exception as e:
                logger.error(f"Error in notice sink: {e}")
        return notice

    def success(self, message: str, **kwargs) -> Notice:
        return self.emit(Notice(NoticeLevel.SUCCESS, message, **kwargs))

    def error(self, message: str, **kwargs) -> Notice:
        return self.emit(Notice(NoticeLevel.ERROR, message, **kwargs))

    def warning(self, message: str, **kwargs) -> Notice:
        return self.emit(Notice(NoticeLevel.WARNING, message, **kwargs))

    def info(self, message: str, **kwargs) -> Notice:
        return self.emit(Notice(NoticeLevel.INFO, message, **kwargs))
