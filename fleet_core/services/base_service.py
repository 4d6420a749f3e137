# =============================================================================
# fleet_core/services/base_service.py
# Service Result and Base Class
# =============================================================================

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from fleet_core.errors import FleetError
from fleet_core.logging import LogContext, get_logger


class SyncOutcome(Enum):
    """Terminal state of one mutating operation."""
    REMOTE = "remote"       # Saved by the remote store (authoritative)
    LOCAL = "local"         # Saved locally only (Local/Offline)
    REJECTED = "rejected"   # Validation failed before any write
    NOOP = "noop"           # Unknown id on update/delete
    FAILED = "failed"       # Unexpected error or session recovery


# Outcomes after which the in-memory state reflects the request
SUCCESSFUL_OUTCOMES = (SyncOutcome.REMOTE, SyncOutcome.LOCAL, SyncOutcome.NOOP)


@dataclass
class ServiceResult:
    """
    What a service call hands back to the page.

    ``data`` is the saved record (or the computed value for read services);
    writes also carry their ``SyncOutcome`` under ``metadata["outcome"]``.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    @property
    def outcome(self) -> Optional[SyncOutcome]:
        value = self.metadata.get("outcome")
        return SyncOutcome(value) if value else None

    @classmethod
    def ok(cls, data: Any = None) -> ServiceResult:
        return cls(success=True, data=data)

    @classmethod
    def from_exception(cls, e: Exception, **metadata: Any) -> ServiceResult:
        if isinstance(e, FleetError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                metadata={**e.details, **metadata},
            )
        return cls(success=False, error=str(e), error_code="EXCEPTION", metadata=metadata)

    @classmethod
    def with_outcome(
        cls,
        outcome: SyncOutcome,
        data: Any = None,
        error: Optional[Exception] = None,
    ) -> ServiceResult:
        if error is not None:
            return cls.from_exception(error, outcome=outcome.value)
        return cls(
            success=outcome in SUCCESSFUL_OUTCOMES,
            data=data,
            metadata={"outcome": outcome.value},
        )


class BaseService(ABC):
    """
    Gives every service a class-named logger and ``safe_execute`` for
    read-side work (KPIs, exports) that must not raise into a page.
    Writes go through the SyncController instead.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    def safe_execute(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> ServiceResult:
        """Run ``func`` inside a timed log context; any exception becomes a failed result."""
        try:
            with self.log_operation(operation):
                value = func(*args, **kwargs)
        except Exception as e:
            return ServiceResult.from_exception(e)
        return ServiceResult.ok(value)
