"""
KPI Service - Calculate FleetOps dashboard KPIs.

Aggregates the in-memory collections (work orders, maintenances, spare
parts, machinery, fuel loads) into the figures shown on the dashboard.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

import pandas as pd

from fleet_core.models import MachineryStatus, MaintenanceStatus, WorkOrderStatus, to_number
from fleet_core.services.base_service import BaseService, ServiceResult
from fleet_core.state.entity_store import LOCAL, SYNC_STATUS_FIELD, EntityStore

# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class FleetKPIs:
    """Container for the dashboard KPIs."""

    # Work order KPIs
    work_orders_total: int = 0
    work_orders_in_progress: int = 0     # status en_ejecucion
    work_orders_delayed: int = 0         # status retrasada
    work_orders_completed: int = 0
    average_progress: float = 0.0

    # Maintenance KPIs
    maintenances_pending: int = 0        # status != completada
    maintenance_cost_total: float = 0.0

    # Inventory KPIs
    low_stock_parts: int = 0             # current_stock <= minimum_stock
    low_stock_items: List[Dict] = field(default_factory=list)

    # Machinery KPIs
    machinery_total: int = 0
    machinery_available: int = 0
    availability_pct: float = 0.0

    # Fuel KPIs
    fuel_liters_total: float = 0.0
    fuel_cost_total: float = 0.0
    fuel_by_month: List[Dict] = field(default_factory=list)

    # Records saved locally and not confirmed by the remote store
    unsynced_records: int = 0

    status_breakdown: Dict[str, int] = field(default_factory=dict)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _extract_work_order_kpis(kpis: FleetKPIs, orders: pd.DataFrame) -> None:
    """Counts by status and average progress."""
    if orders.empty:
        return
    kpis.work_orders_total = len(orders)
    if "status" in orders.columns:
        counts = orders["status"].value_counts()
        kpis.status_breakdown = {str(k): int(v) for k, v in counts.items()}
        kpis.work_orders_in_progress = int(counts.get(WorkOrderStatus.EN_EJECUCION.value, 0))
        kpis.work_orders_delayed = int(counts.get(WorkOrderStatus.RETRASADA.value, 0))
        kpis.work_orders_completed = int(counts.get(WorkOrderStatus.COMPLETADA.value, 0))
    if "progress_percentage" in orders.columns:
        progress = pd.to_numeric(orders["progress_percentage"], errors="coerce").dropna()
        kpis.average_progress = round(float(progress.mean()), 1) if len(progress) else 0.0


def _extract_maintenance_kpis(kpis: FleetKPIs, maintenances: pd.DataFrame) -> None:
    if maintenances.empty:
        return
    if "status" in maintenances.columns:
        kpis.maintenances_pending = int((maintenances["status"] != MaintenanceStatus.COMPLETADA.value).sum())
    else:
        kpis.maintenances_pending = len(maintenances)
    if "cost" in maintenances.columns:
        kpis.maintenance_cost_total = float(pd.to_numeric(maintenances["cost"], errors="coerce").fillna(0).sum())


def _extract_inventory_kpis(kpis: FleetKPIs, parts: EntityStore) -> None:
    low = [
        p for p in parts.items
        if to_number(p.get("current_stock")) <= to_number(p.get("minimum_stock"))
    ]
    kpis.low_stock_parts = len(low)
    kpis.low_stock_items = [
        {
            "id": p.get("id"),
            "description": p.get("description"),
            "current_stock": p.get("current_stock"),
            "minimum_stock": p.get("minimum_stock"),
        }
        for p in low
    ]


def _extract_machinery_kpis(kpis: FleetKPIs, machinery: EntityStore) -> None:
    kpis.machinery_total = len(machinery)
    kpis.machinery_available = sum(
        1 for m in machinery.items if m.get("status") == MachineryStatus.DISPONIBLE.value
    )
    if kpis.machinery_total:
        kpis.availability_pct = round(100.0 * kpis.machinery_available / kpis.machinery_total, 1)


def _extract_fuel_kpis(kpis: FleetKPIs, fuel: pd.DataFrame) -> None:
    if fuel.empty:
        return
    fuel = fuel.reindex(columns=sorted(set(fuel.columns) | {"liters", "total_cost"}))
    liters = pd.to_numeric(fuel["liters"], errors="coerce").fillna(0)
    cost = pd.to_numeric(fuel["total_cost"], errors="coerce").fillna(0)
    kpis.fuel_liters_total = float(liters.sum())
    kpis.fuel_cost_total = float(cost.sum())

    if "date" in fuel.columns:
        dates = pd.to_datetime(fuel["date"], errors="coerce", format="ISO8601", utc=True).dt.tz_localize(None)
        monthly = (
            pd.DataFrame({"month": dates.dt.to_period("M").astype(str), "liters": liters, "total_cost": cost})
            .query("month != 'NaT'")
            .groupby("month", as_index=False)[["liters", "total_cost"]]
            .sum()
            .sort_values("month")
        )
        kpis.fuel_by_month = [
            {"month": row.month, "liters": float(row.liters), "total_cost": float(row.total_cost)}
            for row in monthly.itertuples(index=False)
        ]


def calculate_fleet_kpis(stores: Mapping[str, EntityStore]) -> FleetKPIs:
    """
    Calculate all dashboard KPIs from the session's entity stores.

    Args:
        stores: Collection name -> store (``workOrders``, ``maintenances``, ...)
    """
    kpis = FleetKPIs()

    if "workOrders" in stores:
        _extract_work_order_kpis(kpis, stores["workOrders"].to_dataframe())
    if "maintenances" in stores:
        _extract_maintenance_kpis(kpis, stores["maintenances"].to_dataframe())
    if "spareParts" in stores:
        _extract_inventory_kpis(kpis, stores["spareParts"])
    if "machinery" in stores:
        _extract_machinery_kpis(kpis, stores["machinery"])
    if "fuelLoads" in stores:
        _extract_fuel_kpis(kpis, stores["fuelLoads"].to_dataframe())

    kpis.unsynced_records = sum(
        1 for store in stores.values() for r in store.items if r.get(SYNC_STATUS_FIELD) == LOCAL
    )
    return kpis


class KPIService(BaseService):
    """Usage: ``KPIService().compute(state).data.work_orders_delayed``"""

    def compute(self, state) -> ServiceResult:
        return self.safe_execute("Computing fleet KPIs", calculate_fleet_kpis, state.stores)
