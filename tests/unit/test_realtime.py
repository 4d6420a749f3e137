# =============================================================================
# tests/unit/test_realtime.py
# Unit Tests for the Realtime Insert Listener
# =============================================================================

import pytest

from fleet_core.errors import GatewayError
from fleet_core.notifications import NotificationFeed
from fleet_core.offline.realtime import (
    RealtimeListener,
    fuel_load_notification,
    incident_notification,
)
from fleet_core.state.entity_store import EntityStore

INCIDENT = {"id": 41, "type": "mecanica", "title": "Pérdida de aceite", "reporter_id": "2"}
FUEL_LOAD = {"id": 77, "machinery_id": 3, "liters": 150}


@pytest.fixture
def listener(gateway):
    incidents = EntityStore("incidents", "incidents", rows=[{"id": 40, "title": "Anterior"}])
    fuel_loads = EntityStore("fuelLoads", "fuel_loads")
    machinery = EntityStore("machinery", "machinery", rows=[{"id": 3, "code": "MQ-123456"}])
    feed = NotificationFeed(seed=[])
    listener = RealtimeListener(gateway, incidents, fuel_loads, feed, machinery=machinery)
    yield listener
    listener.stop()


class TestNotificationText:
    def test_incident(self):
        notification = incident_notification(INCIDENT)

        assert notification.type == "incident"
        assert notification.title == "Nueva Incidencia: Mecanica"
        assert notification.message == "Pérdida de aceite - Reportado por 2"
        assert notification.link == "/incidencias?id=41"

    def test_fuel_load_with_code(self):
        notification = fuel_load_notification(FUEL_LOAD, "MQ-123456")

        assert notification.title == "Nueva Carga de Combustible"
        assert notification.message == "150 Lts para MQ-123456"
        assert notification.link == "/combustible"

    def test_fuel_load_without_code(self):
        assert fuel_load_notification(FUEL_LOAD).message == "150 Lts para Maquinaria"


class TestRealtimeListener:
    def test_start_subscribes_both_tables(self, listener, gateway):
        assert listener.start() == 2
        assert set(gateway.subscribers) == {"incidents", "fuel_loads"}
        assert listener.running

    def test_start_twice_does_not_resubscribe(self, listener, gateway):
        listener.start()
        listener.start()
        assert len(gateway.calls_to("subscribe")) == 2

    def test_failed_subscription_is_skipped(self, listener, gateway):
        gateway.fail("subscribe", GatewayError("denied"), table="incidents")
        assert listener.start() == 1

    def test_new_incident_prepended_and_announced(self, listener, gateway):
        listener.start()
        gateway.push("incidents", INCIDENT)

        assert listener.incidents.ids == [41, 40]
        assert listener.incidents.get(41)["sync_status"] == "synced"
        assert listener.feed.items[0].title == "Nueva Incidencia: Mecanica"

    def test_known_row_merged_without_notification(self, listener, gateway):
        listener.start()
        gateway.push("incidents", {"id": 40, "title": "Actualizada"})

        assert len(listener.incidents) == 1
        assert listener.incidents.get(40)["title"] == "Actualizada"
        assert listener.feed.items == []

    def test_fuel_load_uses_machinery_code(self, listener, gateway):
        listener.start()
        gateway.push("fuel_loads", FUEL_LOAD)

        assert listener.fuel_loads.ids == [77]
        assert listener.feed.items[0].message == "150 Lts para MQ-123456"

    def test_stop_closes_subscriptions(self, listener, gateway):
        listener.start()
        listener.stop()

        assert not listener.running
        assert gateway.subscribers == {}
