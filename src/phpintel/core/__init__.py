"""Core module exports."""

from phpintel.core.errors import (
    CircularDependencyError,
    ConfigError,
    ErrorCode,
    IndexingFailedError,
    InternalError,
    MissingContextError,
    ParseDiagnostic,
    PhpIntelError,
    ResolutionError,
    UnknownClasslikeError,
    UnknownConstantError,
    UnknownFunctionError,
    UnsupportedNodeError,
)
from phpintel.core.logging import (
    clear_request_id,
    configure_logging,
    get_request_id,
    request_scope,
    set_request_id,
)

__all__ = [
    # Errors
    "ErrorCode",
    "PhpIntelError",
    "ParseDiagnostic",
    "ConfigError",
    "IndexingFailedError",
    "ResolutionError",
    "UnknownClasslikeError",
    "UnknownFunctionError",
    "UnknownConstantError",
    "CircularDependencyError",
    "MissingContextError",
    "UnsupportedNodeError",
    "InternalError",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_request_id",
    "request_scope",
    "set_request_id",
]
