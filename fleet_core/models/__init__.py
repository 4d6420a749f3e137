# =============================================================================
# fleet_core/models/__init__.py
# Entity vocabularies
# =============================================================================

from .entities import (
    Priority,
    WorkOrderStatus,
    MachineryStatus,
    MachineryType,
    MaintenanceType,
    MaintenanceStatus,
    MaintenanceItemStatus,
    MovementType,
    FuelSource,
    IncidentType,
    UserRole,
    FUEL_LOAD_COLUMNS,
    parse_enum,
    enum_values,
    whitelist,
    to_number,
)

__all__ = [
    "Priority",
    "WorkOrderStatus",
    "MachineryStatus",
    "MachineryType",
    "MaintenanceType",
    "MaintenanceStatus",
    "MaintenanceItemStatus",
    "MovementType",
    "FuelSource",
    "IncidentType",
    "UserRole",
    "FUEL_LOAD_COLUMNS",
    "parse_enum",
    "enum_values",
    "whitelist",
    "to_number",
]
