# =============================================================================
# fleet_core/services/entity_service.py
# Generic CRUD Service over one Entity Store
# =============================================================================

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from fleet_core.services.base_service import BaseService, ServiceResult, SyncOutcome
from fleet_core.services.sync_controller import EntityMessages, SyncController
from fleet_core.state.entity_store import EntityStore, Record


class EntityService(BaseService):
    """
    add/update/delete/get/list for one entity type.

    Subclasses set ``messages`` and override the ``prepare_*`` hooks to fill
    defaults, validate (raise ValidationRejectedError) or upload attachments.
    Writes go through the SyncController, so every call ends in exactly one
    notice and a ServiceResult carrying the outcome.
    """

    messages = EntityMessages(
        created="Registro agregado",
        updated="Registro actualizado",
        deleted="Registro eliminado",
        noun="registro",
    )
    prepend = False
    # Columns the remote table accepts; None sends every field
    remote_columns: Optional[Sequence[str]] = None

    def __init__(self, store: EntityStore, controller: SyncController):
        super().__init__()
        self.store = store
        self.controller = controller

    @property
    def gateway(self):
        return self.controller.gateway

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, record_id: Any) -> Optional[Record]:
        return self.store.get(record_id)

    def list(self) -> List[Record]:
        return list(self.store.items)

    def dataframe(self, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        return self.store.to_dataframe(columns)

    # =========================================================================
    # WRITES
    # =========================================================================

    def add(self, fields: Dict[str, Any]) -> ServiceResult:
        def run() -> ServiceResult:
            record = self.prepare_insert(dict(fields))
            return self.controller.insert(
                self.store,
                record,
                self.messages,
                front=self.prepend,
                local_id=self.local_id(),
                remote_columns=self.remote_columns,
            )

        return self.controller.guard(self.messages, run)

    def update(self, record_id: Any, fields: Dict[str, Any]) -> ServiceResult:
        if not self.store.contains(record_id):
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        def run() -> ServiceResult:
            changes = self.prepare_update(record_id, dict(fields))
            return self.controller.update(
                self.store, record_id, changes, self.messages, remote_columns=self.remote_columns,
            )

        return self.controller.guard(self.messages, run)

    def delete(self, record_id: Any) -> ServiceResult:
        return self.controller.delete(self.store, record_id, self.messages)

    # =========================================================================
    # HOOKS
    # =========================================================================

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        return fields

    def prepare_update(self, record_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        return fields

    def local_id(self) -> Optional[Callable[[], Any]]:
        """Id factory for records created without the remote store (default: max+1)."""
        return None
