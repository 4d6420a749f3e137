# =============================================================================
# fleet_core/services/maintenance_service.py
# Maintenance Events and their Items
# =============================================================================
"""
A maintenance's ``cost`` is the sum of its items' costs. The store never
recomputes it; the item operations here rebuild the item list, recompute the
cost and send both in one update.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fleet_core.models import MaintenanceStatus, to_number
from fleet_core.services.base_service import ServiceResult, SyncOutcome
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages, SyncController
from fleet_core.state.entity_store import EntityStore, Record


@dataclass(frozen=True)
class ItemSummary:
    total_cost: float
    estimated_hours: float
    actual_hours: float
    item_count: int
    completed_count: int


def items_cost(items: Optional[List[Dict[str, Any]]]) -> float:
    return sum(to_number(item.get("cost")) for item in items or [])


def summarize_items(items: Optional[List[Dict[str, Any]]]) -> ItemSummary:
    items = items or []
    return ItemSummary(
        total_cost=items_cost(items),
        estimated_hours=sum(to_number(i.get("estimated_hours")) for i in items),
        actual_hours=sum(to_number(i.get("actual_hours")) for i in items),
        item_count=len(items),
        completed_count=sum(1 for i in items if i.get("status") == "completado"),
    )


class MaintenanceService(EntityService):
    messages = EntityMessages(
        created="Mantenimiento programado",
        updated="Mantenimiento actualizado",
        deleted="Mantenimiento eliminado",
        noun="el mantenimiento",
    )

    def __init__(
        self,
        store: EntityStore,
        controller: SyncController,
        machinery: Optional[EntityStore] = None,
    ):
        super().__init__(store, controller)
        self.machinery = machinery

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        fields["items"] = list(fields.get("items") or [])
        fields.setdefault("parts_used", [])
        fields.setdefault("status", MaintenanceStatus.PROGRAMADA.value)
        fields.setdefault("completion_date", None)
        if "cost" not in fields:
            fields["cost"] = items_cost(fields["items"])
        if not fields.get("machinery_code") and fields.get("machinery_id") is not None:
            fields["machinery_code"] = self._machinery_code(fields["machinery_id"])
        return fields

    def pending(self) -> List[Record]:
        return [m for m in self.store.items if m.get("status") != MaintenanceStatus.COMPLETADA.value]

    # =========================================================================
    # ITEMS
    # =========================================================================

    def add_item(self, maintenance_id: Any, item: Dict[str, Any]) -> ServiceResult:
        maintenance = self.get(maintenance_id)
        if maintenance is None:
            return ServiceResult.with_outcome(SyncOutcome.NOOP)
        new_item = {"status": "pendiente", **item, "id": item.get("id") or str(uuid.uuid4())}
        return self._save_items(maintenance_id, [*maintenance.get("items", []), new_item])

    def update_item(self, maintenance_id: Any, item_id: str, fields: Dict[str, Any]) -> ServiceResult:
        maintenance = self.get(maintenance_id)
        if maintenance is None or not any(i.get("id") == item_id for i in maintenance.get("items", [])):
            return ServiceResult.with_outcome(SyncOutcome.NOOP)
        items = [
            {**i, **fields, "id": item_id} if i.get("id") == item_id else i
            for i in maintenance.get("items", [])
        ]
        return self._save_items(maintenance_id, items)

    def remove_item(self, maintenance_id: Any, item_id: str) -> ServiceResult:
        maintenance = self.get(maintenance_id)
        if maintenance is None or not any(i.get("id") == item_id for i in maintenance.get("items", [])):
            return ServiceResult.with_outcome(SyncOutcome.NOOP)
        items = [i for i in maintenance.get("items", []) if i.get("id") != item_id]
        return self._save_items(maintenance_id, items)

    def _save_items(self, maintenance_id: Any, items: List[Dict[str, Any]]) -> ServiceResult:
        return self.update(maintenance_id, {"items": items, "cost": items_cost(items)})

    def _machinery_code(self, machinery_id: Any) -> str:
        if self.machinery is None:
            return ""
        machine = self.machinery.get(machinery_id)
        return machine.get("code", "") if machine else ""
