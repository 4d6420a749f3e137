# =============================================================================
# fleet_core/services/work_order_service.py
# Work Orders
# =============================================================================

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from fleet_core.errors import ValidationRejectedError
from fleet_core.models import Priority, WorkOrderStatus, parse_enum, to_number
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages, SyncController
from fleet_core.services.work_order_ids import WorkOrderIdAllocator
from fleet_core.state.entity_store import EntityStore, Record

# Fields the operator does not set when creating an order
CREATION_DEFAULTS = {
    "progress_percentage": 0,
    "actual_hectares": 0,
    "actual_hours": 0,
    "actual_start_date": None,
    "actual_end_date": None,
}

LIST_COLUMNS = [
    "id",
    "client_name",
    "field_name",
    "task_type",
    "priority",
    "status",
    "planned_start_date",
    "planned_end_date",
    "progress_percentage",
]


class WorkOrderService(EntityService):
    """
    Work orders get their id from the allocator before the write, so the
    remote and the local copy of a new order always share one identifier.
    New orders go to the front of the list.
    """

    messages = EntityMessages(
        created="Orden de trabajo creada",
        updated="Orden de trabajo actualizada",
        deleted="Orden de trabajo eliminada",
        noun="la orden de trabajo",
    )
    prepend = True

    def __init__(
        self,
        store: EntityStore,
        controller: SyncController,
        allocator: Optional[WorkOrderIdAllocator] = None,
    ):
        super().__init__(store, controller)
        self.allocator = allocator or WorkOrderIdAllocator(store, controller.gateway)

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        self._validate(fields)
        now = datetime.now().isoformat()
        record = {
            **fields,
            **CREATION_DEFAULTS,
            "assigned_machinery": list(fields.get("assigned_machinery") or []),
            "assigned_operator": fields.get("assigned_operator") or None,
            "created_at": now,
            "updated_at": now,
        }
        record["id"] = self.allocator.allocate()
        return record

    def prepare_update(self, record_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._validate(fields)
        fields.pop("id", None)
        fields["updated_at"] = datetime.now().isoformat()
        return fields

    def _validate(self, fields: Dict[str, Any]) -> None:
        if "priority" in fields and parse_enum(Priority, fields["priority"]) is None:
            raise ValidationRejectedError(
                f"Prioridad no válida: {fields['priority']}",
                field="priority",
                value=fields["priority"],
            )
        if "status" in fields and parse_enum(WorkOrderStatus, fields["status"]) is None:
            raise ValidationRejectedError(
                f"Estado no válido: {fields['status']}",
                field="status",
                value=fields["status"],
            )
        progress = fields.get("progress_percentage")
        if progress is not None and not 0 <= to_number(progress, default=-1) <= 100:
            raise ValidationRejectedError(
                "El avance debe estar entre 0 y 100",
                field="progress_percentage",
                value=progress,
            )

    # =========================================================================
    # VIEWS
    # =========================================================================

    def by_status(self, status: WorkOrderStatus) -> List[Record]:
        return [wo for wo in self.store.items if wo.get("status") == status.value]

    def by_priority(self, minimum: Priority = Priority.BAJA) -> List[Record]:
        """Orders at or above ``minimum``, highest priority first."""
        ranked = []
        for wo in self.store.items:
            priority = parse_enum(Priority, wo.get("priority"))
            if priority is not None and minimum <= priority:
                ranked.append((priority, wo))
        ranked.sort(key=lambda pair: pair[0].rank, reverse=True)
        return [wo for _, wo in ranked]

    def table(self) -> pd.DataFrame:
        return self.dataframe(LIST_COLUMNS)
