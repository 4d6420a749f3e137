# =============================================================================
# fleet_core/errors/__init__.py
# Centralized Error Handling for FleetOps
# =============================================================================

from .exceptions import (
    FleetError,
    ValidationRejectedError,
    InsufficientStockError,
    GatewayError,
    GatewayErrorKind,
    SessionCorruptedError,
    PersistenceError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    safe_execute,
    describe_error,
    ErrorReport,
)

__all__ = [
    # Exceptions
    "FleetError",
    "ValidationRejectedError",
    "InsufficientStockError",
    "GatewayError",
    "GatewayErrorKind",
    "SessionCorruptedError",
    "PersistenceError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "safe_execute",
    "describe_error",
    "ErrorReport",
]
