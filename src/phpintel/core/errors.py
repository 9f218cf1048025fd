"""phpintel error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
- 4xxx: Resolution
- 5xxx: Deduction
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    INDEXING_FAILED = 3001
    INDEXING_UNREADABLE = 3002

    # Resolution (4xxx)
    UNKNOWN_CLASSLIKE = 4001
    UNKNOWN_FUNCTION = 4002
    UNKNOWN_CONSTANT = 4003
    CIRCULAR_DEPENDENCY = 4004
    RESOLUTION_DEPTH_EXCEEDED = 4005

    # Deduction (5xxx)
    MISSING_CONTEXT = 5001
    UNSUPPORTED_NODE = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class PhpIntelError(Exception):
    """Base error with structured context for query responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'UNKNOWN_CLASSLIKE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


@dataclass(frozen=True, slots=True)
class ParseDiagnostic:
    """Recoverable syntax error collected while parsing.

    Not raised: the parser attaches these to its result and indexing
    continues with whatever the tree still contains.
    """

    message: str
    start_offset: int
    end_offset: int
    line: int
    column: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "start": self.start_offset,
            "end": self.end_offset,
            "line": self.line,
            "column": self.column,
        }


class ConfigError(PhpIntelError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class IndexingFailedError(PhpIntelError):
    """A file could not be indexed at all."""

    @classmethod
    def parse_failed(cls, path: str, reason: str) -> "IndexingFailedError":
        return cls(
            code=ErrorCode.INDEXING_FAILED,
            message=f"Failed to index {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "IndexingFailedError":
        return cls(
            code=ErrorCode.INDEXING_UNREADABLE,
            message=f"Could not read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ResolutionError(PhpIntelError):
    """A query target could not be resolved against the index."""


class UnknownClasslikeError(ResolutionError):
    @classmethod
    def for_fqcn(cls, fqcn: str) -> "UnknownClasslikeError":
        return cls(
            code=ErrorCode.UNKNOWN_CLASSLIKE,
            message=f"Classlike {fqcn} is not indexed",
            details={"fqcn": fqcn},
        )


class UnknownFunctionError(ResolutionError):
    @classmethod
    def for_fqsen(cls, fqsen: str) -> "UnknownFunctionError":
        return cls(
            code=ErrorCode.UNKNOWN_FUNCTION,
            message=f"Function {fqsen} is not indexed",
            details={"fqsen": fqsen},
        )


class UnknownConstantError(ResolutionError):
    @classmethod
    def for_fqsen(cls, fqsen: str) -> "UnknownConstantError":
        return cls(
            code=ErrorCode.UNKNOWN_CONSTANT,
            message=f"Constant {fqsen} is not indexed",
            details={"fqsen": fqsen},
        )


class CircularDependencyError(ResolutionError):
    """Inheritance or trait graph loops back onto a classlike being resolved."""

    @classmethod
    def for_chain(cls, chain: list[str]) -> "CircularDependencyError":
        return cls(
            code=ErrorCode.CIRCULAR_DEPENDENCY,
            message=f"Circular dependency detected: {' -> '.join(chain)}",
            details={"chain": chain},
        )

    @classmethod
    def depth_exceeded(cls, fqcn: str, depth: int) -> "CircularDependencyError":
        return cls(
            code=ErrorCode.RESOLUTION_DEPTH_EXCEEDED,
            message=f"Resolution of {fqcn} exceeded maximum depth {depth}",
            details={"fqcn": fqcn, "depth": depth},
        )


class MissingContextError(PhpIntelError):
    @classmethod
    def for_name(cls, name: str) -> "MissingContextError":
        return cls(
            code=ErrorCode.MISSING_CONTEXT,
            message=f"No namespace context attached while resolving '{name}'",
            details={"name": name},
        )


class UnsupportedNodeError(PhpIntelError):
    @classmethod
    def for_node(cls, node_type: str, expected: str) -> "UnsupportedNodeError":
        return cls(
            code=ErrorCode.UNSUPPORTED_NODE,
            message=f"Expected {expected}, got node of type '{node_type}'",
            details={"node_type": node_type, "expected": expected},
        )


class InternalError(PhpIntelError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
