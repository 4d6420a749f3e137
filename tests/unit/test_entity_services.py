# =============================================================================
# tests/unit/test_entity_services.py
# Unit Tests for Work Order, Machinery, User, Incident and Client Services
# =============================================================================

import base64
import re

import pytest

from fleet_core.models import Priority, WorkOrderStatus
from fleet_core.notifications import Notifier
from fleet_core.services.base_service import SyncOutcome
from fleet_core.services.incident_service import ClientService, IncidentService
from fleet_core.services.machinery_service import MachineryService
from fleet_core.services.sync_controller import SyncController
from fleet_core.services.user_service import UserService
from fleet_core.services.work_order_ids import WorkOrderIdAllocator
from fleet_core.services.work_order_service import WorkOrderService
from fleet_core.state.entity_store import EntityStore

IMAGE = "data:image/png;base64," + base64.b64encode(b"png").decode()

ORDER = {
    "client_name": "Agrícola Los Robles",
    "field_name": "Potrero Norte",
    "task_type": "cosecha",
    "priority": "alta",
    "status": "planificada",
    "planned_hectares": 40,
}


@pytest.fixture
def controller(gateway, notifier):
    return SyncController(gateway, notifier)


# =============================================================================
# WORK ORDERS
# =============================================================================

@pytest.fixture
def work_orders(controller, gateway, fixed_today):
    store = EntityStore("workOrders", "work_orders")
    allocator = WorkOrderIdAllocator(store, gateway, timeout=0.5, today=fixed_today)
    return WorkOrderService(store, controller, allocator)


class TestWorkOrderService:
    def test_create_fills_defaults_and_id(self, work_orders, gateway):
        result = work_orders.add({**ORDER, "progress_percentage": 80})

        record = result.data
        assert result.outcome is SyncOutcome.REMOTE
        assert record["id"] == "OT-2025-001"
        assert record["progress_percentage"] == 0
        assert record["assigned_machinery"] == []
        assert record["assigned_operator"] is None
        assert gateway.tables["work_orders"][0]["id"] == "OT-2025-001"

    def test_new_orders_go_first(self, work_orders):
        work_orders.add(ORDER)
        work_orders.add(ORDER)

        assert work_orders.store.ids == ["OT-2025-002", "OT-2025-001"]

    def test_offline_create_keeps_allocated_id(self, work_orders, gateway, notifier):
        gateway.fail("insert")
        result = work_orders.add(ORDER)

        assert result.outcome is SyncOutcome.LOCAL
        assert result.data["id"] == "OT-2025-001"
        assert work_orders.get("OT-2025-001")["sync_status"] == "local"
        assert "(Local/Offline)" in notifier.history[-1].message

    @pytest.mark.parametrize("fields", [
        {"priority": "urgente"},
        {"status": "pausada"},
        {"progress_percentage": 150},
    ])
    def test_invalid_fields_rejected(self, work_orders, gateway, fields):
        result = work_orders.add({**ORDER, **fields})

        assert result.outcome is SyncOutcome.REJECTED
        assert gateway.calls_to("insert") == []

    def test_update_progress(self, work_orders):
        order_id = work_orders.add(ORDER).data["id"]
        work_orders.update(order_id, {"progress_percentage": 55, "id": "OT-9999-999"})

        record = work_orders.get(order_id)
        assert record["progress_percentage"] == 55
        assert record["id"] == order_id

    def test_by_priority(self, work_orders):
        work_orders.add({**ORDER, "priority": "baja"})
        work_orders.add({**ORDER, "priority": "critica"})
        work_orders.add({**ORDER, "priority": "media"})

        ranked = work_orders.by_priority(Priority.MEDIA)
        assert [wo["priority"] for wo in ranked] == ["critica", "media"]

    def test_by_status(self, work_orders):
        first = work_orders.add(ORDER).data["id"]
        work_orders.add(ORDER)
        work_orders.update(first, {"status": "en_ejecucion"})

        assert [wo["id"] for wo in work_orders.by_status(WorkOrderStatus.EN_EJECUCION)] == [first]

    def test_table_columns(self, work_orders):
        work_orders.add(ORDER)
        assert list(work_orders.table().columns)[:2] == ["id", "client_name"]


# =============================================================================
# MACHINERY
# =============================================================================

class TestMachineryService:
    def test_default_code(self, controller):
        service = MachineryService(EntityStore("machinery", "machinery"), controller)
        record = service.add({"name": "Tractor John Deere", "status": "disponible"}).data

        assert re.fullmatch(r"MQ-\d{6}", record["code"])
        assert record["images"] == []
        assert service.available() == [record]

    def test_images_uploaded(self, controller, gateway):
        service = MachineryService(EntityStore("machinery", "machinery"), controller)
        record = service.add({"code": "MQ-000001", "images": [{"id": "f1", "url": IMAGE}]}).data

        assert record["images"][0]["url"].startswith("https://storage.test/images/machinery/")
        assert service.code_of(record["id"]) == "MQ-000001"

    def test_failed_image_dropped(self, controller, gateway):
        gateway.fail("upload")
        service = MachineryService(EntityStore("machinery", "machinery"), controller)

        assert service.add({"images": [{"id": "f1", "url": IMAGE}]}).data["images"] == []


# =============================================================================
# USERS
# =============================================================================

SESSION_USER = {
    "id": "auth-uuid-1",
    "email": "jefe@futamaq.cl",
    "user_metadata": {"full_name": "Jefe de Taller", "role": "administrador"},
}


class TestUserService:
    def test_offline_user_gets_epoch_id(self):
        service = UserService(EntityStore("users", "users"), SyncController(None, Notifier()))
        result = service.add({"email": "nuevo@futamaq.cl"})

        assert result.outcome is SyncOutcome.LOCAL
        assert result.data["id"].isdigit()
        assert result.data["role"] == "operador"

    def test_email_required(self, controller):
        service = UserService(EntityStore("users", "users"), controller)
        assert service.add({"full_name": "Sin correo"}).outcome is SyncOutcome.REJECTED

    def test_invalid_role(self, controller):
        service = UserService(EntityStore("users", "users"), controller)
        assert service.add({"email": "a@b.cl", "role": "dueño"}).outcome is SyncOutcome.REJECTED

    def test_sync_inserts_missing_session_user(self, controller):
        service = UserService(EntityStore("users", "users"), controller)
        result = service.sync_session_user(SESSION_USER)

        assert result.outcome is SyncOutcome.REMOTE
        assert service.by_email("jefe@futamaq.cl")["role"] == "administrador"

    def test_sync_unchanged_user_is_noop(self, controller):
        store = EntityStore("users", "users", rows=[
            {"id": "auth-uuid-1", "email": "jefe@futamaq.cl", "full_name": "Jefe de Taller", "avatar_url": None},
        ])
        service = UserService(store, controller)

        assert service.sync_session_user(SESSION_USER).outcome is SyncOutcome.NOOP

    def test_sync_refreshes_changed_name(self, controller, gateway):
        row = {"id": "auth-uuid-1", "email": "jefe@futamaq.cl", "full_name": "Antiguo"}
        gateway.tables["users"].append(dict(row))
        service = UserService(EntityStore("users", "users", rows=[row]), controller)

        service.sync_session_user(SESSION_USER)

        user = service.get("auth-uuid-1")
        assert user["full_name"] == "Jefe de Taller"
        assert user["last_login"]

    def test_sync_without_session(self, controller):
        service = UserService(EntityStore("users", "users"), controller)
        assert service.sync_session_user(None).outcome is SyncOutcome.NOOP


# =============================================================================
# INCIDENTS AND CLIENTS
# =============================================================================

class TestIncidentService:
    def test_defaults_and_resolve(self, controller):
        service = IncidentService(EntityStore("incidents", "incidents"), controller)
        first = service.add({"title": "Neumático pinchado", "type": "mecanica"}).data
        service.add({"title": "Lluvia", "type": "climatica"})

        assert first["status"] == "abierta"
        service.resolve(first["id"])

        assert len(service.open()) == 1
        assert service.get(first["id"])["resolved_at"]

    def test_invalid_type(self, controller):
        service = IncidentService(EntityStore("incidents", "incidents"), controller)
        assert service.add({"title": "x", "type": "sismo"}).outcome is SyncOutcome.REJECTED


class TestClientService:
    def test_name_required(self, controller, notifier):
        service = ClientService(EntityStore("clients", "clients"), controller)
        result = service.add({"rut": "76.123.456-7"})

        assert result.outcome is SyncOutcome.REJECTED
        assert notifier.history[-1].message == "El nombre del cliente es obligatorio"

    def test_sorted_by_name(self, controller):
        service = ClientService(EntityStore("clients", "clients"), controller)
        for name in ("viña Sur", "Agrícola Norte", "forestal Centro"):
            service.add({"name": name})

        assert [c["name"] for c in service.sorted_by_name()] == [
            "Agrícola Norte", "forestal Centro", "viña Sur",
        ]
