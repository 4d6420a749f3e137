# =============================================================================
# fleet_core/services/sync_controller.py
# Remote-first Writes with Local Fallback
# =============================================================================
"""
SyncController - Runs every mutating entity operation.

Flow for insert/update/delete:
1. Caller builds the full candidate record
2. No gateway configured -> apply locally
3. Gateway success -> merge the authoritative row (sync_status="synced")
4. GatewayError -> merge an equivalent local record (sync_status="local")
5. SessionCorruptedError -> SessionRecovery (clear storage, reload)
Exactly one notice is emitted per call. There is no retry and no replay
queue: a record saved locally stays local until the remote store gets it by
other means.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence
import logging

from fleet_core.errors import (
    GatewayError,
    SessionCorruptedError,
    ValidationRejectedError,
    handle_error,
)
from fleet_core.models import whitelist
from fleet_core.notifications import Notifier
from fleet_core.offline.connection_manager import ConnectionMonitor
from fleet_core.offline.gateway import RemoteGateway
from fleet_core.offline.local_storage import LocalPersistence, SnapshotWriter
from fleet_core.services.base_service import ServiceResult, SyncOutcome
from fleet_core.state.entity_store import (
    LOCAL,
    SYNCED,
    EntityStore,
    Record,
    strip_local_fields,
    tag,
)

logger = logging.getLogger(__name__)

LOCAL_LABEL = "(Local/Offline)"


def now_iso() -> str:
    return datetime.now().isoformat()


def remote_payload(record: Record, columns: Optional[Sequence[str]] = None) -> Record:
    """The part of ``record`` sent to the remote table; ``columns`` limits it further."""
    payload = strip_local_fields(record)
    return payload if columns is None else whitelist(payload, columns)


@dataclass(frozen=True)
class EntityMessages:
    """User-facing wording for one entity type."""
    created: str    # "Maquinaria agregada"
    updated: str    # "Maquinaria actualizada"
    deleted: str    # "Maquinaria eliminada"
    noun: str       # "maquinaria"


class SessionRecovery:
    """
    Last-resort recovery for a corrupted client session.

    Drops pending snapshots, clears every namespaced local key and hands over
    to the reload hook. Only SessionCorruptedError reaches this.
    """

    def __init__(
        self,
        persistence: LocalPersistence,
        writer: Optional[SnapshotWriter] = None,
        reload_hook: Optional[Callable[[], None]] = None,
    ):
        self.persistence = persistence
        self.writer = writer
        self.reload_hook = reload_hook
        self.triggered = 0

    def run(self, error: SessionCorruptedError) -> None:
        self.triggered += 1
        logger.critical(f"Session corrupted, clearing local state: {error}")
        if self.writer is not None:
            self.writer.discard(close=True)
        removed = self.persistence.clear_all()
        logger.warning(f"Removed {removed} local storage keys")
        if self.reload_hook is not None:
            self.reload_hook()


class SyncController:
    """
    Usage:
        controller = SyncController(gateway, notifier, monitor, recovery)
        result = controller.insert(store, record, messages)
        if result.outcome is SyncOutcome.LOCAL:
            ...
    """

    def __init__(
        self,
        gateway: Optional[RemoteGateway],
        notifier: Notifier,
        monitor: Optional[ConnectionMonitor] = None,
        recovery: Optional[SessionRecovery] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.monitor = monitor or ConnectionMonitor(remote_enabled=gateway is not None)
        self.recovery = recovery

    @property
    def remote_enabled(self) -> bool:
        return self.gateway is not None

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def insert(
        self,
        store: EntityStore,
        record: Record,
        messages: EntityMessages,
        front: bool = False,
        local_id: Optional[Callable[[], Any]] = None,
        remote_columns: Optional[Sequence[str]] = None,
    ) -> ServiceResult:
        """
        Insert ``record``. When it carries no id the remote store assigns one;
        the local fallback then uses ``local_id()`` or ``store.next_int_id()``.
        Only ``remote_columns`` (when given) are sent; the stored copy keeps every field.
        """
        def apply_local(error: Optional[GatewayError]) -> ServiceResult:
            local = self._local_record(store, record, local_id)
            store.put(tag(local, LOCAL), front=front)
            return self._local_result(local, store.id_field, messages.created, error)

        if not self.remote_enabled:
            return self.guard(messages, lambda: apply_local(None))

        def attempt() -> ServiceResult:
            try:
                row = self.gateway.insert(store.table, remote_payload(record, remote_columns))
            except SessionCorruptedError:
                raise
            except GatewayError as e:
                self.monitor.record_failure(e)
                return apply_local(e)
            self.monitor.record_success()
            saved = tag({**record, **row}, SYNCED)
            store.put(saved, front=front)
            record_id = saved.get(store.id_field)
            self.notifier.success(
                f"{messages.created} exitosamente: {record_id}",
                outcome=SyncOutcome.REMOTE.value,
                record_id=str(record_id),
            )
            return ServiceResult.with_outcome(SyncOutcome.REMOTE, data=saved)

        return self.guard(messages, attempt)

    def update(
        self,
        store: EntityStore,
        record_id: Any,
        fields: Record,
        messages: EntityMessages,
        notify: bool = True,
        remote_columns: Optional[Sequence[str]] = None,
    ) -> ServiceResult:
        """
        Shallow-merge ``fields`` into the record. Unknown ids are a silent no-op.

        ``notify=False`` is for updates that are one step of a larger
        operation whose final step emits the notice.
        """
        if not store.contains(record_id):
            logger.debug(f"Update of unknown {store.name} id {record_id} ignored")
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        fields = strip_local_fields(fields)

        def apply_local(error: Optional[GatewayError]) -> ServiceResult:
            merged = store.merge(record_id, tag(fields, LOCAL))
            return self._local_result(merged, store.id_field, messages.updated, error, notify)

        if not self.remote_enabled:
            return self.guard(messages, lambda: apply_local(None))

        def attempt() -> ServiceResult:
            payload = remote_payload(fields, remote_columns)
            if not payload:
                # Nothing the remote table stores; sync status is unchanged
                merged = store.merge(record_id, fields)
                return self._local_result(merged, store.id_field, messages.updated, None, notify)
            try:
                row = self.gateway.update(store.table, record_id, payload, id_field=store.id_field)
            except SessionCorruptedError:
                raise
            except GatewayError as e:
                self.monitor.record_failure(e)
                return apply_local(e)
            self.monitor.record_success()
            if row is None:
                # Held locally but unknown to the remote store
                return apply_local(None)
            merged = store.merge(record_id, tag({**fields, **row}, SYNCED))
            if notify:
                self.notifier.success(
                    f"{messages.updated} exitosamente: {record_id}",
                    outcome=SyncOutcome.REMOTE.value,
                    record_id=str(record_id),
                )
            return ServiceResult.with_outcome(SyncOutcome.REMOTE, data=merged)

        return self.guard(messages, attempt)

    def delete(self, store: EntityStore, record_id: Any, messages: EntityMessages) -> ServiceResult:
        """Remove by id. Unknown ids are a silent no-op."""
        if not store.contains(record_id):
            logger.debug(f"Delete of unknown {store.name} id {record_id} ignored")
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        def apply_local(error: Optional[GatewayError]) -> ServiceResult:
            removed = store.remove(record_id)
            return self._local_result(removed, store.id_field, messages.deleted, error)

        if not self.remote_enabled:
            return self.guard(messages, lambda: apply_local(None))

        def attempt() -> ServiceResult:
            try:
                self.gateway.delete(store.table, record_id, id_field=store.id_field)
            except SessionCorruptedError:
                raise
            except GatewayError as e:
                self.monitor.record_failure(e)
                return apply_local(e)
            self.monitor.record_success()
            removed = store.remove(record_id)
            self.notifier.success(
                f"{messages.deleted} exitosamente: {record_id}",
                outcome=SyncOutcome.REMOTE.value,
                record_id=str(record_id),
            )
            return ServiceResult.with_outcome(SyncOutcome.REMOTE, data=removed)

        return self.guard(messages, attempt)

    def reject(self, error: ValidationRejectedError) -> ServiceResult:
        """Report a validation failure raised before any write."""
        logger.info(f"Rejected: {error}")
        self.notifier.error(error.message, outcome=SyncOutcome.REJECTED.value)
        return ServiceResult.with_outcome(SyncOutcome.REJECTED, error=error)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def guard(self, messages: EntityMessages, operation: Callable[[], ServiceResult]) -> ServiceResult:
        """Turn every failure into exactly one notice and a failed result."""
        try:
            return operation()
        except ValidationRejectedError as e:
            return self.reject(e)
        except SessionCorruptedError as e:
            self.monitor.record_failure(e)
            if self.recovery is not None:
                self.recovery.run(e)
            handle_error(
                e,
                notifier=self.notifier,
                user_message="Sesión dañada: se limpiaron los datos locales y se recargará la aplicación",
            )
            return ServiceResult.with_outcome(SyncOutcome.FAILED, error=e)
        except Exception as e:
            handle_error(
                e,
                notifier=self.notifier,
                user_message=f"Error al guardar {messages.noun}: {e}",
            )
            return ServiceResult.with_outcome(SyncOutcome.FAILED, error=e)

    def _local_record(
        self,
        store: EntityStore,
        record: Record,
        local_id: Optional[Callable[[], Any]],
    ) -> Record:
        local = strip_local_fields(record)
        if local.get(store.id_field) is None:
            local[store.id_field] = local_id() if local_id is not None else store.next_int_id()
        timestamp = now_iso()
        local["created_at"] = timestamp
        if "updated_at" in local:
            local["updated_at"] = timestamp
        return local

    def _local_result(
        self,
        record: Optional[Record],
        id_field: str,
        message: str,
        error: Optional[GatewayError],
        notify: bool = True,
    ) -> ServiceResult:
        record_id = record.get(id_field) if record else None
        if error is not None:
            logger.warning(f"Falling back to local write ({error.kind.value}): {error}")
        if notify:
            self.notifier.success(
                f"{message} {LOCAL_LABEL}: {record_id}",
                outcome=SyncOutcome.LOCAL.value,
                record_id=str(record_id),
            )
        return ServiceResult.with_outcome(SyncOutcome.LOCAL, data=record)
