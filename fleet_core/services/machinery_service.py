# =============================================================================
# fleet_core/services/machinery_service.py
# Machinery
# =============================================================================

from __future__ import annotations
import time
from typing import Any, Dict, List

from fleet_core.models import MachineryStatus
from fleet_core.offline.attachments import process_attachments
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages
from fleet_core.state.entity_store import Record

IMAGE_FOLDER = "machinery"


def default_machinery_code() -> str:
    return f"MQ-{str(int(time.time() * 1000))[-6:]}"


class MachineryService(EntityService):
    messages = EntityMessages(
        created="Maquinaria agregada",
        updated="Maquinaria actualizada",
        deleted="Maquinaria eliminada",
        noun="la maquinaria",
    )

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        fields["code"] = fields.get("code") or default_machinery_code()
        fields["images"] = self._upload_images(fields.get("images") or [])
        return fields

    def prepare_update(self, record_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        if fields.get("images"):
            fields["images"] = self._upload_images(fields["images"])
        return fields

    def _upload_images(self, images: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # Images whose upload fails are dropped
        return process_attachments(self.gateway, images, IMAGE_FOLDER, keep_failed=False)

    def available(self) -> List[Record]:
        return [m for m in self.store.items if m.get("status") == MachineryStatus.DISPONIBLE.value]

    def code_of(self, machinery_id: Any) -> str:
        machine = self.get(machinery_id)
        return machine.get("code", "") if machine else ""
