# =============================================================================
# fleet_core/offline/__init__.py
# Remote Store Access with Local Fallback
# =============================================================================
"""
Offline support for FleetOps.

Architecture:
------------
┌──────────────────────────────────────────────────────────────┐
│                     Entity services                           │
│                 (fleet_core.services)                         │
└──────────────────────────────────────────────────────────────┘
          │ SyncController                 ▲ RealtimeListener
          ▼                                │
┌──────────────────┐   fallback   ┌──────────────────┐
│  RemoteGateway   │ ───────────► │   EntityStores   │
│ (SupabaseGateway)│              │   (in memory)    │
└──────────────────┘              └──────────────────┘
                                           │ SnapshotWriter
                                           ▼
                                  ┌──────────────────┐
                                  │ LocalPersistence │
                                  │     (SQLite)     │
                                  └──────────────────┘

Usage:
------
from fleet_core.offline import LocalKeyValueStore, LocalPersistence

persistence = LocalPersistence(LocalKeyValueStore("local_data/fleetops.db"))
orders = persistence.load("workOrders", [])
"""

from fleet_core.offline.connection_manager import (
    ConnectionMonitor,
    ConnectionState,
    ConnectionStatus,
)

from fleet_core.offline.gateway import (
    RemoteGateway,
    Row,
    Subscription,
)

from fleet_core.offline.local_storage import (
    LocalKeyValueStore,
    LocalPersistence,
    MemoryKeyValueStore,
    SnapshotWriter,
)

from fleet_core.offline.attachments import (
    is_data_uri,
    parse_data_uri,
    process_attachments,
    storage_path,
)

from fleet_core.offline.realtime import RealtimeListener

__all__ = [
    "ConnectionMonitor",
    "ConnectionState",
    "ConnectionStatus",
    "RemoteGateway",
    "Row",
    "Subscription",
    "LocalKeyValueStore",
    "LocalPersistence",
    "MemoryKeyValueStore",
    "SnapshotWriter",
    "is_data_uri",
    "parse_data_uri",
    "process_attachments",
    "storage_path",
    "RealtimeListener",
]
