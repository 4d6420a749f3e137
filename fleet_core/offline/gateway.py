# =============================================================================
# fleet_core/offline/gateway.py
# Remote Data Gateway Contract
# =============================================================================
"""
RemoteGateway - the only surface the core uses to reach the hosted store.

Implementations must raise GatewayError (with a GatewayErrorKind) for every
failed request, and SessionCorruptedError only for the signatures that mean
the client session is unusable. Callers never inspect error text.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

Row = Dict[str, Any]
RowCallback = Callable[[Row], None]


class Subscription(ABC):
    """Handle for one realtime change stream."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering events. Idempotent."""


class RemoteGateway(ABC):
    """Request/response and subscription contract of the remote store."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        bulk: bool = False,
    ) -> List[Row]:
        """
        Fetch rows.

        Args:
            table: Remote table name
            filters: Equality filters (column -> value)
            order_by: Column to order by
            descending: Sort direction
            limit: Maximum number of rows
            bulk: True for the session's initial full fetch; enables the
                  malformed-request classification for that path
        """

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return the stored (authoritative) row."""

    @abstractmethod
    def update(
        self,
        table: str,
        record_id: Any,
        fields: Row,
        id_field: str = "id",
    ) -> Optional[Row]:
        """Apply a partial update; returns the updated row, or None if no row matched."""

    @abstractmethod
    def delete(self, table: str, record_id: Any, id_field: str = "id") -> None:
        """Delete by id. Deleting a missing row is not an error."""

    @abstractmethod
    def subscribe(self, table: str, event: str, callback: RowCallback) -> Subscription:
        """Deliver every row affected by ``event`` ("INSERT", ...) on ``table``."""

    @abstractmethod
    def upload(
        self,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        """Store a binary object at ``path`` in the configured bucket."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Public HTTPS URL of an uploaded object."""

    def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a database function. Optional; gateways without it raise NotImplementedError."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support rpc")

    def close(self) -> None:
        """Release network resources."""
