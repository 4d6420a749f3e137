# =============================================================================
# fleet_core/services/work_order_ids.py
# Sequential Work Order Identifiers (OT-<year>-<seq>)
# =============================================================================
"""
WorkOrderIdAllocator - Produces the next ``OT-<year>-<NNN>`` identifier.

Strategies, in order:
1. Database sequence function (``work_order_sequence_rpc``), when configured
2. Last segment of the most recently created remote work order, plus one
3. Highest last segment among local work orders, plus one

The year is cosmetic: sequences keep growing across years. Remote lookups
are bounded by ``timeout`` seconds; every failure falls through to the next
strategy and ``allocate`` never raises. Uniqueness is checked against the
local collection only, so two offline writers can still collide.
"""

from __future__ import annotations
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date
from typing import Any, Callable, Optional
import logging

from fleet_core.offline.gateway import RemoteGateway
from fleet_core.state.entity_store import EntityStore

logger = logging.getLogger(__name__)

WORK_ORDER_PREFIX = "OT"
DEFAULT_TIMEOUT = 3.0

_VALID_ID = re.compile(r"^OT-[0-9]{4}-[0-9]{3,}$")
# Leading ASCII digits, surrounding text ignored ("12 " and "12b" give 12)
_SEQUENCE = re.compile(r"\s*([0-9]+)")


def format_work_order_id(year: int, sequence: int) -> str:
    return f"{WORK_ORDER_PREFIX}-{year}-{sequence:03d}"


def parse_sequence(identifier: Any) -> Optional[int]:
    """Integer last segment of an ``X-Y-<int>`` identifier, else None."""
    if not isinstance(identifier, str):
        return None
    parts = identifier.split("-")
    if len(parts) < 3:
        return None
    match = _SEQUENCE.match(parts[-1])
    return int(match.group(1)) if match else None


def is_valid_work_order_id(identifier: Any) -> bool:
    return isinstance(identifier, str) and bool(_VALID_ID.match(identifier))


class WorkOrderIdAllocator:
    """
    Usage:
        allocator = WorkOrderIdAllocator(state.stores["workOrders"], gateway)
        new_id = allocator.allocate()  # "OT-2025-015"
    """

    def __init__(
        self,
        store: EntityStore,
        gateway: Optional[RemoteGateway] = None,
        timeout: float = DEFAULT_TIMEOUT,
        sequence_rpc: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.timeout = timeout
        self.sequence_rpc = sequence_rpc
        self.today = today or date.today
        self._highest_issued = 0
        self._lock = threading.Lock()

    def allocate(self) -> str:
        with self._lock:
            sequence = self._rpc_sequence()
            if sequence is None:
                sequence = self._remote_sequence()
            if sequence is None:
                sequence = self._local_sequence()

            if not isinstance(sequence, int) or sequence < 1:
                sequence = 1
            sequence = max(sequence, self._highest_issued + 1)

            year = self.today().year
            taken = set(self.store.ids)
            while format_work_order_id(year, sequence) in taken:
                sequence += 1

            self._highest_issued = sequence
            identifier = format_work_order_id(year, sequence)
            logger.info(f"Allocated work order id {identifier}")
            return identifier

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _rpc_sequence(self) -> Optional[int]:
        if self.gateway is None or not self.sequence_rpc:
            return None
        value = self._bounded(lambda: self.gateway.rpc(self.sequence_rpc), "sequence rpc")
        if isinstance(value, list) and value:
            value = value[0]
        if isinstance(value, dict):
            value = next(iter(value.values()), None)
        try:
            sequence = int(value)
        except (TypeError, ValueError):
            return None
        return sequence if sequence > 0 else None

    def _remote_sequence(self) -> Optional[int]:
        if self.gateway is None:
            return None
        rows = self._bounded(
            lambda: self.gateway.select(
                self.store.table,
                order_by="created_at",
                descending=True,
                limit=1,
            ),
            "latest work order lookup",
        )
        if not rows or not isinstance(rows, list):
            return None
        latest = rows[0]
        identifier = latest.get(self.store.id_field) if isinstance(latest, dict) else None
        parsed = parse_sequence(identifier)
        if parsed is None:
            logger.warning(f"Latest remote work order not usable: {latest!r}")
            return None
        return parsed + 1

    def _local_sequence(self) -> int:
        sequences = [s for s in (parse_sequence(i) for i in self.store.ids) if s is not None]
        return max(sequences, default=0) + 1

    def _bounded(self, func: Callable[[], Any], description: str) -> Any:
        """Run ``func`` with the lookup timeout; None on timeout or any error."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="WorkOrderIdLookup")
        try:
            return executor.submit(func).result(timeout=self.timeout)
        except FutureTimeout:
            logger.warning(f"{description} timed out after {self.timeout}s, using local data")
        except Exception as e:
            logger.warning(f"{description} failed, using local data: {e}")
        finally:
            executor.shutdown(wait=False)
        return None
