# =============================================================================
# fleet_core/services/user_service.py
# Users and Session User Sync
# =============================================================================

from __future__ import annotations
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fleet_core.errors import ValidationRejectedError
from fleet_core.models import UserRole, parse_enum
from fleet_core.services.base_service import ServiceResult, SyncOutcome
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages
from fleet_core.state.entity_store import Record


def epoch_ms_id() -> str:
    return str(int(time.time() * 1000))


class UserService(EntityService):
    messages = EntityMessages(
        created="Usuario creado",
        updated="Usuario actualizado",
        deleted="Usuario eliminado",
        noun="el usuario",
    )

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        if not fields.get("email"):
            raise ValidationRejectedError("El correo es obligatorio", field="email")
        role = fields.get("role", UserRole.OPERADOR.value)
        if parse_enum(UserRole, role) is None:
            raise ValidationRejectedError(f"Rol no válido: {role}", field="role", value=role)
        fields["role"] = role
        fields.setdefault("is_active", True)
        return fields

    def local_id(self) -> Optional[Callable[[], Any]]:
        return epoch_ms_id

    def by_email(self, email: str) -> Optional[Record]:
        for user in self.store.items:
            if user.get("email") == email:
                return user
        return None

    def sync_session_user(self, session_user: Optional[Dict[str, Any]]) -> ServiceResult:
        """
        Mirror an authenticated session user into the users table.

        Inserts a row when none matches the session email; otherwise refreshes
        ``full_name``, ``avatar_url`` and ``last_login`` when the session
        metadata differs. Returns NOOP when nothing needs to change.
        """
        if not session_user or not session_user.get("email"):
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        metadata = session_user.get("user_metadata") or {}
        now = datetime.now().isoformat()
        existing = self.by_email(session_user["email"])

        if existing is None:
            self.logger.info(f"Syncing session user {session_user['email']} to users table")
            return self.add({
                "id": session_user.get("id"),
                "email": session_user["email"],
                "full_name": metadata.get("full_name") or "Nuevo Usuario",
                "role": metadata.get("role") or UserRole.OPERADOR.value,
                "avatar_url": metadata.get("avatar_url"),
                "is_active": True,
                "created_at": now,
                "last_login": now,
            })

        if (
            existing.get("full_name") == metadata.get("full_name")
            and existing.get("avatar_url") == metadata.get("avatar_url")
        ):
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        self.logger.info(f"Refreshing session user {session_user['email']}")
        return self.update(existing["id"], {
            "full_name": metadata.get("full_name") or existing.get("full_name"),
            "avatar_url": metadata.get("avatar_url") or existing.get("avatar_url"),
            "last_login": now,
        })
