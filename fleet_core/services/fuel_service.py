# =============================================================================
# fleet_core/services/fuel_service.py
# Fuel Loads
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

import pandas as pd

from fleet_core.errors import ValidationRejectedError
from fleet_core.models import FUEL_LOAD_COLUMNS, FuelSource, parse_enum, to_number
from fleet_core.offline.attachments import process_attachments
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages
from fleet_core.state.entity_store import Record

FILE_FOLDER = "fuel"


def expected_total_cost(load: Dict[str, Any]) -> float:
    """``liters * cost_per_liter``; ``total_cost`` is stored as entered."""
    return to_number(load.get("liters")) * to_number(load.get("cost_per_liter"))


def cost_drift(load: Dict[str, Any]) -> float:
    """Stored ``total_cost`` minus the expected value (0 when consistent)."""
    return to_number(load.get("total_cost")) - expected_total_cost(load)


class FuelService(EntityService):
    """
    Only FUEL_LOAD_COLUMNS reach the remote table; the stored record keeps every
    field (machinery_code, fuel_load_image, receipt_image...). Photo uploads
    that fail are kept as entered on create and dropped on update.
    """

    messages = EntityMessages(
        created="Carga de combustible registrada",
        updated="Carga de combustible actualizada",
        deleted="Carga de combustible eliminada",
        noun="la carga de combustible",
    )
    remote_columns = FUEL_LOAD_COLUMNS

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        self._validate(fields)
        photos = process_attachments(self.gateway, fields.get("photos") or [], FILE_FOLDER, keep_failed=True)
        return {**fields, "photos": photos}

    def prepare_update(self, record_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._validate(fields)
        if fields.get("photos"):
            fields["photos"] = process_attachments(self.gateway, fields["photos"], FILE_FOLDER, keep_failed=False)
        return fields

    def _validate(self, fields: Dict[str, Any]) -> None:
        source = fields.get("source")
        if source and parse_enum(FuelSource, source) is None:
            raise ValidationRejectedError(
                f"Origen de combustible no válido: {source}",
                field="source",
                value=source,
            )
        if "liters" in fields and to_number(fields["liters"], default=-1) < 0:
            raise ValidationRejectedError(
                "Los litros no pueden ser negativos",
                field="liters",
                value=fields["liters"],
            )

    # =========================================================================
    # VIEWS
    # =========================================================================

    def inconsistent(self, tolerance: float = 1.0) -> List[Record]:
        """Loads whose ``total_cost`` drifts from liters x price by more than ``tolerance``."""
        return [f for f in self.store.items if abs(cost_drift(f)) > tolerance]

    def monthly_totals(self, machinery_id: Optional[Any] = None) -> pd.DataFrame:
        """Liters and cost per month (``YYYY-MM``), oldest first."""
        df = self.dataframe()
        if df.empty or "date" not in df.columns:
            return pd.DataFrame(columns=["month", "liters", "total_cost"])
        if machinery_id is not None and "machinery_id" in df.columns:
            df = df[df["machinery_id"] == machinery_id]
        df = df.reindex(columns=sorted(set(df.columns) | {"liters", "total_cost"}))
        dates = pd.to_datetime(df["date"], errors="coerce", format="ISO8601", utc=True).dt.tz_localize(None)
        df = df.assign(
            month=dates.dt.to_period("M").astype(str),
            liters=pd.to_numeric(df["liters"], errors="coerce").fillna(0),
            total_cost=pd.to_numeric(df["total_cost"], errors="coerce").fillna(0),
        )
        df = df[df["month"] != "NaT"]
        return (
            df.groupby("month", as_index=False)[["liters", "total_cost"]]
            .sum()
            .sort_values("month")
            .reset_index(drop=True)
        )
