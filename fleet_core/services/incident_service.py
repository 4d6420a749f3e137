# =============================================================================
# fleet_core/services/incident_service.py
# Incidents and Clients
# =============================================================================

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List

from fleet_core.errors import ValidationRejectedError
from fleet_core.models import IncidentType, parse_enum
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages
from fleet_core.state.entity_store import Record


class IncidentService(EntityService):
    """Incidents are reported from the field app; here they are listed, resolved and deleted."""

    messages = EntityMessages(
        created="Incidencia registrada",
        updated="Incidencia actualizada",
        deleted="Incidencia eliminada",
        noun="la incidencia",
    )
    prepend = True

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        incident_type = fields.get("type", IncidentType.OTRA.value)
        if parse_enum(IncidentType, incident_type) is None:
            raise ValidationRejectedError(
                f"Tipo de incidencia no válido: {incident_type}",
                field="type",
                value=incident_type,
            )
        fields["type"] = incident_type
        fields.setdefault("status", "abierta")
        return fields

    def open(self) -> List[Record]:
        return [i for i in self.store.items if i.get("status") != "resuelta"]

    def resolve(self, incident_id: Any):
        return self.update(incident_id, {"status": "resuelta", "resolved_at": datetime.now().isoformat()})


class ClientService(EntityService):
    messages = EntityMessages(
        created="Cliente agregado",
        updated="Cliente actualizado",
        deleted="Cliente eliminado",
        noun="el cliente",
    )

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        if not fields.get("name"):
            raise ValidationRejectedError("El nombre del cliente es obligatorio", field="name")
        now = datetime.now().isoformat()
        fields.setdefault("created_at", now)
        fields["updated_at"] = now
        return fields

    def prepare_update(self, record_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields["updated_at"] = datetime.now().isoformat()
        return fields

    def sorted_by_name(self) -> List[Record]:
        return sorted(self.store.items, key=lambda c: str(c.get("name", "")).lower())
