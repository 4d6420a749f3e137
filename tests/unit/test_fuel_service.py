# =============================================================================
# tests/unit/test_fuel_service.py
# Unit Tests for FuelService
# =============================================================================

import base64

import pytest

from fleet_core.services.base_service import SyncOutcome
from fleet_core.services.fuel_service import FuelService, cost_drift, expected_total_cost
from fleet_core.services.sync_controller import SyncController
from fleet_core.state.entity_store import EntityStore

PHOTO = "data:image/jpeg;base64," + base64.b64encode(b"receipt").decode()

LOAD = {
    "machinery_id": 3,
    "operator_id": "2",
    "operator": "Operador de Campo",
    "date": "2025-05-10",
    "liters": 120,
    "cost_per_liter": 1000,
    "total_cost": 120000,
    "source": "estacion",
    "location": "Copec Temuco",
}


@pytest.fixture
def fuel(gateway, notifier):
    return FuelService(EntityStore("fuelLoads", "fuel_loads"), SyncController(gateway, notifier))


class TestFuelPayload:
    def test_only_whitelisted_columns_reach_remote(self, fuel, gateway):
        fuel.add({**LOAD, "machinery_code": "MQ-1", "ui_state": "open"})

        sent = gateway.tables["fuel_loads"][0]
        assert "machinery_code" not in sent
        assert "ui_state" not in sent
        assert sent["liters"] == 120

    def test_remote_save_keeps_extra_fields_locally(self, fuel, gateway):
        result = fuel.add({**LOAD, "machinery_code": "MQ-1"})

        assert result.outcome is SyncOutcome.REMOTE
        assert fuel.get(result.data["id"])["machinery_code"] == "MQ-1"

    def test_local_only_keeps_every_field(self, notifier):
        service = FuelService(EntityStore("fuelLoads", "fuel_loads"), SyncController(None, notifier))
        result = service.add({**LOAD, "machinery_code": "MQ-1", "receipt_image": "https://x/r.pdf"})

        stored = service.get(result.data["id"])
        assert result.outcome is SyncOutcome.LOCAL
        assert stored["machinery_code"] == "MQ-1"
        assert stored["receipt_image"] == "https://x/r.pdf"

    def test_failed_insert_keeps_every_field(self, fuel, gateway):
        gateway.fail("insert")
        result = fuel.add({**LOAD, "machinery_code": "MQ-1", "fuel_load_image": PHOTO, "receipt_image": PHOTO})

        stored = fuel.get(result.data["id"])
        assert result.outcome is SyncOutcome.LOCAL
        assert stored["machinery_code"] == "MQ-1"
        assert stored["fuel_load_image"] == PHOTO
        assert stored["receipt_image"] == PHOTO

    def test_update_of_local_only_fields_skips_remote(self, fuel, gateway):
        load_id = fuel.add(LOAD).data["id"]
        fuel.update(load_id, {"receipt_image": "https://x/r.pdf"})

        assert gateway.calls_to("update") == []
        assert fuel.get(load_id)["receipt_image"] == "https://x/r.pdf"
        assert fuel.get(load_id)["sync_status"] == "synced"

    def test_photos_uploaded_as_jpg(self, fuel, gateway):
        result = fuel.add({**LOAD, "photos": [{"id": "p1", "url": PHOTO}]})

        url = result.data["photos"][0]["url"]
        assert url.startswith("https://storage.test/images/fuel/")
        assert url.endswith(".jpg")

    def test_failed_upload_kept_on_create(self, fuel, gateway):
        gateway.fail("upload")
        result = fuel.add({**LOAD, "photos": [{"id": "p1", "url": PHOTO}]})

        assert result.data["photos"][0]["url"] == PHOTO

    def test_failed_upload_dropped_on_update(self, fuel, gateway):
        load_id = fuel.add(LOAD).data["id"]
        gateway.fail("upload")

        fuel.update(load_id, {"photos": [{"id": "p1", "url": PHOTO}]})

        assert fuel.get(load_id)["photos"] == []

    def test_invalid_source_rejected(self, fuel):
        assert fuel.add({**LOAD, "source": "camion"}).outcome is SyncOutcome.REJECTED

    def test_negative_liters_rejected(self, fuel):
        assert fuel.add({**LOAD, "liters": -5}).outcome is SyncOutcome.REJECTED


class TestFuelCosts:
    """total_cost is stored as entered and may drift"""

    def test_expected_total(self):
        assert expected_total_cost(LOAD) == 120000
        assert cost_drift(LOAD) == 0

    def test_drift_detected(self, fuel):
        fuel.add({**LOAD, "total_cost": 130000})
        fuel.add(LOAD)

        inconsistent = fuel.inconsistent()
        assert len(inconsistent) == 1
        assert cost_drift(inconsistent[0]) == 10000

    def test_monthly_totals(self, fuel):
        fuel.add(LOAD)
        fuel.add({**LOAD, "date": "2025-05-28T10:00:00+00:00", "liters": 30, "total_cost": 30000})
        fuel.add({**LOAD, "date": "2025-06-02", "liters": 10, "total_cost": 10000})

        totals = fuel.monthly_totals()

        assert list(totals["month"]) == ["2025-05", "2025-06"]
        assert list(totals["liters"]) == [150, 10]

    def test_monthly_totals_empty(self, fuel):
        assert fuel.monthly_totals().empty
