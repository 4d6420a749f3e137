# =============================================================================
# fleet_core/services/__init__.py
# Service Layer for FleetOps
# Every mutating operation goes through the SyncController
# =============================================================================
"""
Service Layer for FleetOps

One service per entity type. Services validate and complete the candidate
record, then hand it to the SyncController, which tries the remote store and
falls back to a local write when the remote store fails.

Usage Example:
-------------
    from fleet_core.app_state import AppState

    state = AppState.create(load_config())
    result = state.work_orders.add({
        "client_name": "Agrícola Los Robles",
        "task_type": "cosecha",
        "priority": "alta",
        "status": "planificada",
    })
    if result.outcome is SyncOutcome.LOCAL:
        print(f"Saved offline as {result.data['id']}")

    movement = state.part_movements.add({
        "part_id": 3,
        "movement_type": "salida",
        "quantity": 2,
    })
    if movement.outcome is SyncOutcome.REJECTED:
        print(movement.error)   # "No hay suficiente stock para esta salida"
"""

from .base_service import BaseService, ServiceResult, SyncOutcome
from .sync_controller import EntityMessages, SessionRecovery, SyncController
from .entity_service import EntityService
from .work_order_ids import (
    WorkOrderIdAllocator,
    format_work_order_id,
    is_valid_work_order_id,
    parse_sequence,
)
from .work_order_service import WorkOrderService
from .machinery_service import MachineryService
from .maintenance_service import MaintenanceService, ItemSummary, summarize_items
from .fuel_service import FuelService
from .inventory_service import SparePartService, PartMovementService
from .user_service import UserService
from .incident_service import IncidentService, ClientService
from .kpi_service import KPIService, FleetKPIs, calculate_fleet_kpis
from .export_service import ExportService, ExportColumn, format_clp, format_date, format_number

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    "SyncOutcome",
    # Sync
    "EntityMessages",
    "SessionRecovery",
    "SyncController",
    "EntityService",
    # Work order ids
    "WorkOrderIdAllocator",
    "format_work_order_id",
    "is_valid_work_order_id",
    "parse_sequence",
    # Entity services
    "WorkOrderService",
    "MachineryService",
    "MaintenanceService",
    "ItemSummary",
    "summarize_items",
    "FuelService",
    "SparePartService",
    "PartMovementService",
    "UserService",
    "IncidentService",
    "ClientService",
    # Dashboard and reports
    "KPIService",
    "FleetKPIs",
    "calculate_fleet_kpis",
    "ExportService",
    "ExportColumn",
    "format_clp",
    "format_date",
    "format_number",
]
