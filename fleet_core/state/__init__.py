# =============================================================================
# fleet_core/state/__init__.py
# In-memory entity collections
# =============================================================================

from .entity_store import (
    EntityStore,
    Record,
    SYNC_STATUS_FIELD,
    SYNCED,
    LOCAL,
    strip_local_fields,
    tag,
)

__all__ = [
    "EntityStore",
    "Record",
    "SYNC_STATUS_FIELD",
    "SYNCED",
    "LOCAL",
    "strip_local_fields",
    "tag",
]
