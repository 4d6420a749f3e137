# =============================================================================
# fleet_core/offline/realtime.py
# Realtime Insert Listener (incidents, fuel loads)
# =============================================================================

from __future__ import annotations
import threading
from typing import Any, Dict, List, Optional
import logging

from fleet_core.errors import GatewayError
from fleet_core.notifications import Notification, NotificationFeed
from fleet_core.offline.gateway import RemoteGateway, Row, Subscription
from fleet_core.state.entity_store import SYNCED, EntityStore, tag

logger = logging.getLogger(__name__)

INSERT = "INSERT"


def incident_notification(row: Row) -> Notification:
    incident_type = str(row.get("type") or "")
    type_label = incident_type[:1].upper() + incident_type[1:]
    return Notification(
        type="incident",
        title=f"Nueva Incidencia: {type_label}",
        message=f"{row.get('title')} - Reportado por {row.get('reporter_id')}",
        link=f"/incidencias?id={row.get('id')}",
    )


def fuel_load_notification(row: Row, machinery_code: Optional[str] = None) -> Notification:
    code = row.get("machinery_code") or machinery_code or "Maquinaria"
    return Notification(
        type="fuel",
        title="Nueva Carga de Combustible",
        message=f"{row.get('liters')} Lts para {code}",
        link="/combustible",
    )


class RealtimeListener:
    """
    Merges rows inserted by other clients into the local stores.

    Rows are deduplicated by id: a row already held (from the bulk fetch or a
    local write) is merged in place and produces no notification; a new row
    is prepended and announced in the notification feed.

    Callbacks run on the gateway's realtime thread; the stores are lock-guarded.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        incidents: EntityStore,
        fuel_loads: EntityStore,
        feed: NotificationFeed,
        machinery: Optional[EntityStore] = None,
    ):
        self.gateway = gateway
        self.incidents = incidents
        self.fuel_loads = fuel_loads
        self.feed = feed
        self.machinery = machinery
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> int:
        """Subscribe to both streams. Returns the number of active subscriptions."""
        with self._lock:
            if self._subscriptions:
                return len(self._subscriptions)
            handlers = {
                self.incidents.table: self.on_incident,
                self.fuel_loads.table: self.on_fuel_load,
            }
            for table, handler in handlers.items():
                try:
                    self._subscriptions.append(self.gateway.subscribe(table, INSERT, handler))
                except GatewayError as e:
                    logger.warning(f"Realtime subscription to {table} failed: {e}")
            return len(self._subscriptions)

    def stop(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.close()
        if subscriptions:
            logger.info("Realtime listener stopped")

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def on_incident(self, row: Row) -> Optional[Notification]:
        if not self._merge(self.incidents, row):
            return None
        return self.feed.push(incident_notification(row))

    def on_fuel_load(self, row: Row) -> Optional[Notification]:
        if not self._merge(self.fuel_loads, row):
            return None
        return self.feed.push(fuel_load_notification(row, self._machinery_code(row.get("machinery_id"))))

    def _merge(self, store: EntityStore, row: Dict[str, Any]) -> bool:
        added = store.upsert_front(tag(row, SYNCED))
        if not added:
            logger.debug(f"Realtime {store.table} row {row.get(store.id_field)} already held, merged")
        return added

    def _machinery_code(self, machinery_id: Any) -> Optional[str]:
        if self.machinery is None or machinery_id is None:
            return None
        machine = self.machinery.get(machinery_id)
        return machine.get("code") if machine else None
