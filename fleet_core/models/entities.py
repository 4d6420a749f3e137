# =============================================================================
# fleet_core/models/entities.py
# Entity Vocabularies and Record Helpers
# =============================================================================
"""
Records travel as plain dicts (the remote store's row shape). This module
holds the enumerated vocabularies those rows use and a few pure helpers.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class Priority(Enum):
    """Ordered: BAJA < MEDIA < ALTA < CRITICA."""
    BAJA = "baja"
    MEDIA = "media"
    ALTA = "alta"
    CRITICA = "critica"

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER.index(self)

    def __lt__(self, other: Priority) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: Priority) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank <= other.rank


_PRIORITY_ORDER = [Priority.BAJA, Priority.MEDIA, Priority.ALTA, Priority.CRITICA]


class WorkOrderStatus(Enum):
    PLANIFICADA = "planificada"
    EN_EJECUCION = "en_ejecucion"
    DETENIDA = "detenida"
    COMPLETADA = "completada"
    RETRASADA = "retrasada"
    CANCELADA = "cancelada"


class MachineryStatus(Enum):
    DISPONIBLE = "disponible"
    EN_FAENA = "en_faena"
    EN_MANTENCION = "en_mantencion"
    FUERA_SERVICIO = "fuera_servicio"


class MachineryType(Enum):
    TRACTOR = "tractor"
    IMPLEMENTO = "implemento"
    CAMION = "camion"
    COSECHADORA = "cosechadora"
    PULVERIZADOR = "pulverizador"
    SEMBRADORA = "sembradora"


class MaintenanceType(Enum):
    PREVENTIVA = "preventiva"
    CORRECTIVA = "correctiva"


class MaintenanceStatus(Enum):
    PROGRAMADA = "programada"
    EN_EJECUCION = "en_ejecucion"
    COMPLETADA = "completada"


class MaintenanceItemStatus(Enum):
    PENDIENTE = "pendiente"
    EN_PROGRESO = "en_progreso"
    COMPLETADO = "completado"


class MovementType(Enum):
    ENTRADA = "entrada"     # stock increase
    SALIDA = "salida"       # stock decrease

    def stock_delta(self, quantity: int) -> int:
        return quantity if self is MovementType.ENTRADA else -quantity


class FuelSource(Enum):
    BODEGA = "bodega"
    ESTACION = "estacion"


class IncidentType(Enum):
    MECANICA = "mecanica"
    CLIMATICA = "climatica"
    OPERACIONAL = "operacional"
    OTRA = "otra"


class UserRole(Enum):
    ADMINISTRADOR = "administrador"
    OPERADOR = "operador"
    CLIENTE = "cliente"


# Fuel load columns accepted by the remote table
FUEL_LOAD_COLUMNS = (
    "machinery_id",
    "operator_id",
    "operator",
    "date",
    "liters",
    "total_cost",
    "cost_per_liter",
    "work_order_id",
    "source",
    "location",
    "photos",
)


def parse_enum(enum_cls, value: Any) -> Optional[Enum]:
    """Enum member for ``value`` (member or raw value), None when it is not one."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def enum_values(enum_cls) -> Iterable[str]:
    return [member.value for member in enum_cls]


def whitelist(record: Dict[str, Any], columns: Iterable[str]) -> Dict[str, Any]:
    """Keep only ``columns`` from ``record``."""
    allowed = set(columns)
    return {k: v for k, v in record.items() if k in allowed}


def to_number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
