# =============================================================================
# fleet_core/errors/exceptions.py
# Custom Exception Hierarchy for FleetOps
# =============================================================================
"""
Each error class fixes its own ``code`` and ``recoverable`` flag. Keyword
context given to the constructor (field, table, key...) lands in ``details``;
``None`` values are left out.
"""

from enum import Enum
from typing import Any, Dict, Optional


def _context(details: Optional[Dict[str, Any]] = None, **values: Any) -> Dict[str, Any]:
    merged = dict(details or {})
    merged.update({k: v for k, v in values.items() if v is not None})
    return merged


class FleetError(Exception):
    """Root of every error raised inside fleet_core."""

    code = "FLEET_000"
    recoverable = True

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        return f"{text} | Details: {self.details}" if self.details else text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# INPUT
# =============================================================================

class ValidationRejectedError(FleetError):
    """Input refused before any write was attempted."""

    code = "VAL_001"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, details=None, **kwargs):
        super().__init__(message, details=_context(details, field=field, value=value), **kwargs)


class InsufficientStockError(ValidationRejectedError):
    """An outgoing movement larger than the part's stock."""

    code = "VAL_002"

    def __init__(
        self,
        message: str,
        part_id: Optional[int] = None,
        current_stock: Optional[int] = None,
        requested: Optional[int] = None,
        details=None,
    ):
        super().__init__(
            message,
            details=_context(details, part_id=part_id, current_stock=current_stock, requested=requested),
        )


# =============================================================================
# REMOTE STORE
# =============================================================================

class GatewayErrorKind(Enum):
    NETWORK = "network"                     # host unreachable, connection reset
    TIMEOUT = "timeout"                     # client deadline exceeded
    REJECTED = "rejected"                   # store answered with an error
    NOT_CONFIGURED = "not_configured"       # session has no remote store
    SESSION_CORRUPTED = "session_corrupted"  # 431 / malformed bulk 400


class GatewayError(FleetError):
    """A failed request to the remote store, classified by ``kind``."""

    code = "GW_001"

    def __init__(
        self,
        message: str,
        kind: GatewayErrorKind = GatewayErrorKind.REJECTED,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        status: Optional[str] = None,
        details=None,
        **kwargs,
    ):
        context = _context(details, kind=kind.value, table=table, operation=operation, status=status)
        super().__init__(message, details=context, **kwargs)
        self.kind = kind
        self.status = status


class SessionCorruptedError(GatewayError):
    """
    The client session itself is unusable and must be rebuilt. Only the
    gateway adapter decides this, from the request header too large (431)
    and malformed bulk fetch (400) signatures.
    """

    code = "GW_431"
    recoverable = False

    def __init__(self, message: str, table=None, operation=None, status=None, details=None):
        super().__init__(
            message,
            kind=GatewayErrorKind.SESSION_CORRUPTED,
            table=table,
            operation=operation,
            status=status,
            details=details,
        )


# =============================================================================
# LOCAL STORAGE AND CONFIGURATION
# =============================================================================

class PersistenceError(FleetError):
    """Local key-value backend failure. LocalPersistence logs it and carries on."""

    code = "LOCAL_001"

    def __init__(self, message: str, key: Optional[str] = None, details=None):
        super().__init__(message, details=_context(details, key=key))


class ConfigurationError(FleetError):
    code = "CONFIG_001"
    recoverable = False

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        details=None,
    ):
        super().__init__(message, details=_context(details, config_key=config_key, expected_type=expected_type))
