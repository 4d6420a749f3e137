# =============================================================================
# fleet_core/app_state.py
# Per-session Application State
# =============================================================================
"""
AppState - Everything one user session needs, built once.

Order of construction:
1. Local persistence (SQLite file, or memory when configured with ":memory:")
2. Entity stores seeded from the previous session's snapshots
3. Snapshot writer subscribed to every store
4. Gateway (Supabase when configured), connection monitor, session recovery
5. SyncController, work order id allocator and the entity services
6. Realtime listener (started explicitly)

``fetch_all()`` then replaces each store with the remote rows. Nothing here
is a module-level singleton; the Streamlit layer keeps one AppState per
browser session in ``st.session_state``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fleet_core.config import AppConfig
from fleet_core.errors import GatewayError, SessionCorruptedError, safe_execute
from fleet_core.logging import get_logger
from fleet_core.notifications import NotificationFeed, Notifier
from fleet_core.offline.connection_manager import ConnectionMonitor
from fleet_core.offline.gateway import RemoteGateway
from fleet_core.offline.local_storage import (
    KeyValueBackend,
    LocalKeyValueStore,
    LocalPersistence,
    MemoryKeyValueStore,
    SnapshotWriter,
)
from fleet_core.offline.realtime import RealtimeListener
from fleet_core.services import (
    ClientService,
    FuelService,
    IncidentService,
    MachineryService,
    MaintenanceService,
    PartMovementService,
    ServiceResult,
    SessionRecovery,
    SparePartService,
    SyncController,
    SyncOutcome,
    UserService,
    WorkOrderIdAllocator,
    WorkOrderService,
)
from fleet_core.state.entity_store import SYNCED, EntityStore, tag

logger = get_logger(__name__)


@dataclass(frozen=True)
class Collection:
    """One entity collection: snapshot key, remote table and bulk fetch order."""
    name: str
    table: str
    order_by: Optional[str] = None
    descending: bool = False


COLLECTIONS: List[Collection] = [
    Collection("users", "users"),
    Collection("machinery", "machinery"),
    Collection("workOrders", "work_orders", "created_at", descending=True),
    Collection("maintenances", "maintenances", "created_at", descending=True),
    Collection("incidents", "incidents", "created_at", descending=True),
    Collection("fuelLoads", "fuel_loads", "date", descending=True),
    Collection("spareParts", "spare_parts", "description"),
    Collection("partMovements", "part_movements", "date", descending=True),
    Collection("clients", "clients", "name"),
]


def default_users() -> List[Dict[str, Any]]:
    """Users a session starts with when nothing was saved before."""
    now = datetime.now().isoformat()
    return [
        {
            "id": "1",
            "email": "admin@futamaq.cl",
            "full_name": "Administrador FUTAMAQ",
            "role": "administrador",
            "is_active": True,
            "created_at": "2024-01-01T00:00:00Z",
            "last_login": now,
        },
        {
            "id": "2",
            "email": "operador@futamaq.cl",
            "full_name": "Operador de Campo",
            "role": "operador",
            "is_active": True,
            "created_at": "2024-01-01T00:00:00Z",
            "last_login": now,
        },
        {
            "id": "3",
            "email": "cliente@futamaq.cl",
            "full_name": "Cliente Demo",
            "role": "cliente",
            "is_active": True,
            "created_at": "2024-01-01T00:00:00Z",
            "last_login": now,
        },
    ]


def build_backend(config: AppConfig) -> KeyValueBackend:
    if config.local_db_path == ":memory:":
        return MemoryKeyValueStore()
    return LocalKeyValueStore(config.local_db_path)


@dataclass
class FetchReport:
    """Result of one bulk fetch."""
    loaded: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    recovered: bool = False

    @property
    def complete(self) -> bool:
        return not self.failed and not self.recovered


class AppState:
    """
    Usage:
        state = AppState.create(load_config(), reload_hook=rerun)
        state.fetch_all(session_user)
        state.start_realtime()
        ...
        state.close()
    """

    def __init__(
        self,
        config: AppConfig,
        gateway: Optional[RemoteGateway],
        persistence: LocalPersistence,
        reload_hook: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.persistence = persistence

        self.stores: Dict[str, EntityStore] = {}
        for collection in COLLECTIONS:
            seed = default_users() if collection.name == "users" else []
            rows = persistence.load(collection.name, seed)
            if not isinstance(rows, list):
                logger.warning(f"Ignoring malformed {collection.name} snapshot")
                rows = seed
            self.stores[collection.name] = EntityStore(collection.name, collection.table, rows=rows)

        self.writer = SnapshotWriter(persistence, delay=config.persist_debounce)
        for store in self.stores.values():
            store.subscribe(self._schedule_snapshot)

        self.notifier = Notifier()
        self.feed = NotificationFeed(notifier=self.notifier)
        self.monitor = ConnectionMonitor(remote_enabled=gateway is not None)
        self.recovery = SessionRecovery(persistence, writer=self.writer, reload_hook=reload_hook)
        self.controller = SyncController(gateway, self.notifier, self.monitor, self.recovery)

        self.allocator = WorkOrderIdAllocator(
            self.stores["workOrders"],
            gateway,
            timeout=config.id_lookup_timeout,
            sequence_rpc=config.work_order_sequence_rpc,
        )

        self.machinery = MachineryService(self.stores["machinery"], self.controller)
        self.work_orders = WorkOrderService(self.stores["workOrders"], self.controller, self.allocator)
        self.maintenances = MaintenanceService(
            self.stores["maintenances"], self.controller, machinery=self.stores["machinery"]
        )
        self.fuel_loads = FuelService(self.stores["fuelLoads"], self.controller)
        self.spare_parts = SparePartService(self.stores["spareParts"], self.controller)
        self.part_movements = PartMovementService(
            self.stores["partMovements"], self.controller, self.spare_parts
        )
        self.incidents = IncidentService(self.stores["incidents"], self.controller)
        self.users = UserService(self.stores["users"], self.controller)
        self.clients = ClientService(self.stores["clients"], self.controller)

        self.realtime: Optional[RealtimeListener] = None
        if gateway is not None and config.realtime_enabled:
            self.realtime = RealtimeListener(
                gateway,
                self.stores["incidents"],
                self.stores["fuelLoads"],
                self.feed,
                machinery=self.stores["machinery"],
            )

    @classmethod
    def create(
        cls,
        config: AppConfig,
        gateway: Optional[RemoteGateway] = None,
        storage: Optional[KeyValueBackend] = None,
        reload_hook: Optional[Callable[[], None]] = None,
    ) -> AppState:
        """
        Build the state for one session.

        A Supabase gateway is created from ``config`` when none is given and a
        URL/key are configured; construction errors leave the session in
        local-only mode.
        """
        if gateway is None and config.remote_enabled:
            gateway = cls._connect(config)
        persistence = LocalPersistence(
            storage if storage is not None else build_backend(config),
            prefix=config.storage_prefix,
        )
        state = cls(config, gateway, persistence, reload_hook=reload_hook)
        mode = "remote" if gateway is not None else "local-only"
        logger.info(f"Application state created ({mode} mode)")
        return state

    @staticmethod
    def _connect(config: AppConfig) -> Optional[RemoteGateway]:
        from fleet_core.offline.supabase_gateway import SupabaseGateway

        return safe_execute(
            SupabaseGateway.from_config, config,
            error_message="No se pudo conectar con Supabase, se trabajará sin conexión",
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def remote_enabled(self) -> bool:
        return self.gateway is not None

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    # =========================================================================
    # DATA LOADING
    # =========================================================================

    def fetch_all(self, session_user: Optional[Dict[str, Any]] = None) -> FetchReport:
        """
        Replace every store with the rows held by the remote store.

        A table that fails keeps its local seed. A corrupted session aborts
        the fetch and runs session recovery. With a session user, the users
        table is brought in line with it after the fetch.
        """
        report = FetchReport()
        if self.gateway is None:
            return report

        for collection in COLLECTIONS:
            store = self.stores[collection.name]
            try:
                rows = self.gateway.select(
                    collection.table,
                    order_by=collection.order_by,
                    descending=collection.descending,
                    bulk=True,
                )
            except SessionCorruptedError as e:
                self.monitor.record_failure(e)
                self.recovery.run(e)
                report.recovered = True
                return report
            except GatewayError as e:
                self.monitor.record_failure(e)
                logger.error(f"Error fetching {collection.table}: {e}")
                report.failed[collection.name] = e.message
                continue

            self.monitor.record_success()
            store.replace_all([tag(r, SYNCED) for r in rows])
            report.loaded[collection.name] = len(rows)

        logger.info(f"Bulk fetch finished: {report.loaded}")
        if session_user:
            self.sync_session_user(session_user)
        return report

    def sync_session_user(self, session_user: Optional[Dict[str, Any]]) -> ServiceResult:
        result = self.users.sync_session_user(session_user)
        if result.outcome is SyncOutcome.NOOP:
            logger.debug("Session user already in sync")
        return result

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start_realtime(self) -> int:
        if self.realtime is None:
            return 0
        return self.realtime.start()

    def close(self) -> None:
        if self.realtime is not None:
            self.realtime.stop()
        self.writer.close()
        if self.gateway is not None:
            self.gateway.close()
        logger.info("Application state closed")

    def _schedule_snapshot(self, store: EntityStore) -> None:
        self.writer.schedule(store.name, lambda: [dict(r) for r in store.items])
