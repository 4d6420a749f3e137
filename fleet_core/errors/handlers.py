# =============================================================================
# fleet_core/errors/handlers.py
# Error Reporting for FleetOps
# =============================================================================
"""
Every failure that reaches the user goes through ``handle_error``: it is
logged once with its code and details and, when a notifier is given, turned
into exactly one error notice. The core never calls Streamlit; pages drain
the notifier.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar, TYPE_CHECKING

from fleet_core.logging import get_logger
from .exceptions import FleetError

if TYPE_CHECKING:
    from fleet_core.notifications import Notifier

logger = get_logger(__name__)

T = TypeVar("T")

CRITICAL_PREFIX = "Error crítico: "


@dataclass(frozen=True)
class ErrorReport:
    code: str
    message: str
    recoverable: bool = True
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def notice_text(self) -> str:
        return self.message if self.recoverable else f"{CRITICAL_PREFIX}{self.message}"


def describe_error(error: Exception, user_message: Optional[str] = None) -> ErrorReport:
    """Code, wording and recoverability of ``error``; ``user_message`` replaces the wording."""
    if isinstance(error, FleetError):
        return ErrorReport(
            code=error.code,
            message=user_message or error.message,
            recoverable=error.recoverable,
            details=dict(error.details),
        )
    return ErrorReport(
        code="UNKNOWN",
        message=user_message or str(error) or error.__class__.__name__,
        details={"type": error.__class__.__name__},
    )


def handle_error(
    error: Exception,
    notifier: Optional[Notifier] = None,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> ErrorReport:
    """
    Log ``error`` and emit one error notice on ``notifier``.

    Unrecoverable errors are announced with the "Error crítico" prefix.
    Exceptions outside the FleetError hierarchy are logged with traceback.
    """
    report = describe_error(error, user_message)

    if log_error:
        logger.error(
            f"[{report.code}] {report.message}",
            extra={"details": report.details},
            exc_info=not isinstance(error, FleetError),
        )

    if notifier is not None:
        notifier.error(report.notice_text)
    return report


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    **kwargs,
) -> Optional[T]:
    """
    Call ``func`` and return ``default`` if it raises, after reporting the error.

    Usage:
        gateway = safe_execute(
            SupabaseGateway.from_config, config,
            error_message="No se pudo conectar con Supabase",
        )
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, notifier=notifier, user_message=error_message)
        return default
