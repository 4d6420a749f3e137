# =============================================================================
# fleet_core/services/inventory_service.py
# Spare Parts and Part Movements (stock ledger)
# =============================================================================
"""
Stock changes only through part movements:
- entrada adds ``quantity`` to the part's ``current_stock``
- salida subtracts it, and is rejected before any write when the result
  would be negative
- deleting a movement applies the opposite delta, so add + delete leaves the
  stock where it started
- when the movement write itself fails after the stock write, the stock is
  put back (except on session corruption, where local state is discarded)

Direct edits of ``current_stock`` through SparePartService.update are not
checked; negative stock is prevented at movement time only.
"""

from __future__ import annotations
import logging
import time
from typing import Any, Dict, List

from fleet_core.errors import InsufficientStockError, SessionCorruptedError, ValidationRejectedError
from fleet_core.models import MovementType, parse_enum, to_number
from fleet_core.services.base_service import ServiceResult, SyncOutcome
from fleet_core.services.entity_service import EntityService
from fleet_core.services.sync_controller import EntityMessages, SyncController
from fleet_core.state.entity_store import EntityStore, Record

logger = logging.getLogger(__name__)

STOCK_FIELDS = ("current_stock", "minimum_stock")


def default_part_code() -> str:
    return f"REP-{str(int(time.time() * 1000))[-6:]}"


def _as_stock(value: Any, field: str) -> int:
    number = to_number(value, default=-1)
    if number < 0 or number != int(number):
        raise ValidationRejectedError(
            f"El stock debe ser un entero mayor o igual a 0: {value}",
            field=field,
            value=value,
        )
    return int(number)


class SparePartService(EntityService):
    messages = EntityMessages(
        created="Repuesto agregado",
        updated="Repuesto actualizado",
        deleted="Repuesto eliminado",
        noun="el repuesto",
    )

    def prepare_insert(self, fields: Dict[str, Any]) -> Record:
        fields["code"] = fields.get("code") or default_part_code()
        for field in STOCK_FIELDS:
            fields[field] = _as_stock(fields.get(field, 0), field)
        return fields

    def stock_of(self, part_id: Any) -> int:
        part = self.get(part_id)
        return int(to_number(part.get("current_stock"))) if part else 0

    def low_stock(self) -> List[Record]:
        """Parts at or below their minimum stock."""
        return [
            p for p in self.store.items
            if to_number(p.get("current_stock")) <= to_number(p.get("minimum_stock"))
        ]


class PartMovementService(EntityService):
    messages = EntityMessages(
        created="Movimiento registrado",
        updated="Movimiento actualizado",
        deleted="Movimiento eliminado",
        noun="el movimiento",
    )
    prepend = True

    def __init__(self, store: EntityStore, controller: SyncController, parts: SparePartService):
        super().__init__(store, controller)
        self.parts = parts

    def add(self, fields: Dict[str, Any]) -> ServiceResult:
        def run() -> ServiceResult:
            movement_type, quantity = self._validate(fields)
            record = {**fields, "movement_type": movement_type.value, "quantity": quantity}

            part = self.parts.get(fields.get("part_id"))
            if part is not None:
                current = int(to_number(part.get("current_stock")))
                new_stock = current + movement_type.stock_delta(quantity)
                if new_stock < 0:
                    raise InsufficientStockError(
                        "No hay suficiente stock para esta salida",
                        part_id=fields.get("part_id"),
                        current_stock=current,
                        requested=quantity,
                    )
                record.setdefault("part_description", part.get("description"))
                stock = self._set_stock(fields["part_id"], new_stock)
                if not stock.success:
                    return stock

            result = self.controller.insert(self.store, record, self.messages, front=True)
            if part is not None:
                self._undo_stock_on_failure(result, fields["part_id"], current)
            return result

        return self.controller.guard(self.messages, run)

    def update(self, record_id: Any, fields: Dict[str, Any]) -> ServiceResult:
        # Ledger entries are immutable; correct them with delete + add
        return self.controller.reject(
            ValidationRejectedError("Los movimientos no se pueden editar", field="id", value=record_id)
        )

    def delete(self, record_id: Any) -> ServiceResult:
        movement = self.get(record_id)
        if movement is None:
            return ServiceResult.with_outcome(SyncOutcome.NOOP)

        def run() -> ServiceResult:
            movement_type = parse_enum(MovementType, movement.get("movement_type"))
            part = self.parts.get(movement.get("part_id"))
            if part is not None and movement_type is not None:
                quantity = int(to_number(movement.get("quantity")))
                current = int(to_number(part.get("current_stock")))
                stock = self._set_stock(movement["part_id"], current - movement_type.stock_delta(quantity))
                if not stock.success:
                    return stock
                result = self.controller.delete(self.store, record_id, self.messages)
                self._undo_stock_on_failure(result, movement["part_id"], current)
                return result
            return self.controller.delete(self.store, record_id, self.messages)

        return self.controller.guard(self.messages, run)

    def for_part(self, part_id: Any) -> List[Record]:
        return [m for m in self.store.items if m.get("part_id") == part_id]

    def _undo_stock_on_failure(self, result: ServiceResult, part_id: Any, previous: int) -> None:
        """Put the part's stock back when the ledger write failed after the stock write."""
        if result.outcome is not SyncOutcome.FAILED or result.error_code == SessionCorruptedError.code:
            return
        logger.warning(f"Movement write failed, restoring stock of part {part_id} to {previous}")
        self._set_stock(part_id, previous)

    def _set_stock(self, part_id: Any, stock: int) -> ServiceResult:
        return self.controller.update(
            self.parts.store,
            part_id,
            {"current_stock": stock},
            self.parts.messages,
            notify=False,
        )

    def _validate(self, fields: Dict[str, Any]):
        movement_type = parse_enum(MovementType, fields.get("movement_type"))
        if movement_type is None:
            raise ValidationRejectedError(
                f"Tipo de movimiento no válido: {fields.get('movement_type')}",
                field="movement_type",
                value=fields.get("movement_type"),
            )
        quantity = to_number(fields.get("quantity"), default=0)
        if quantity <= 0 or quantity != int(quantity):
            raise ValidationRejectedError(
                "La cantidad debe ser un entero positivo",
                field="quantity",
                value=fields.get("quantity"),
            )
        return movement_type, int(quantity)
