"""
Exception hierarchy for expstore.

All expstore exceptions inherit from ExpStoreError, allowing callers to catch
every store-specific failure with a single except clause.

Exception Categories:
    - StoreDirectoryNotFoundError: init precondition failed (fatal)
    - PayloadValidationError: caller handed the store a malformed payload
    - RowLoadError: a stored row could not be mapped back to a record
    - ConfigError: configuration file could not be loaded

Errors raised by the SQLite driver itself (sqlite3.Error and subclasses)
are not part of this hierarchy. They reach the caller unchanged.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Precondition errors: 1xxx
ERROR_STORE_DIRECTORY_NOT_FOUND = 1001

# Payload errors: 2xxx
ERROR_PAYLOAD_INVALID = 2001
ERROR_METRIC_ENVELOPE_INVALID = 2002
ERROR_ROW_LOAD_FAILED = 2003

# Configuration errors: 3xxx
ERROR_CONFIG_INVALID = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ExpStoreError(Exception):
    """
    Base exception for all expstore errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Precondition Errors
# =============================================================================


@dataclass
class StoreDirectoryNotFoundError(ExpStoreError):
    """
    Raised by init when the target directory does not exist.

    The store never creates its containing directory. This error is raised
    synchronously, before any database file is touched.
    """

    directory: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Store directory does not exist: {self.directory}"
        if self.code == 0:
            self.code = ERROR_STORE_DIRECTORY_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Create the directory before initializing the store"
        self.context["directory"] = self.directory


# =============================================================================
# Payload Errors
# =============================================================================


@dataclass
class PayloadValidationError(ExpStoreError, ValueError):
    """
    Raised when a caller payload cannot be turned into a row.

    Attributes:
        operation: The store operation that rejected the payload
        validation_error: Underlying parser/validator message
    """

    operation: str = ""
    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid payload for {self.operation}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_PAYLOAD_INVALID
        self.context.update({
            "operation": self.operation,
            "validation_error": self.validation_error,
        })


@dataclass
class MetricEnvelopeError(PayloadValidationError):
    """Raised when a serialized metric envelope is not valid JSON or misses fields."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.operation:
            self.operation = "store_metric_data"
        if not self.message:
            self.message = f"Malformed metric envelope: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_METRIC_ENVELOPE_INVALID
        if not self.suggestion:
            self.suggestion = (
                "Send a JSON object with trialJobId, parameterId, type, sequence and data"
            )
        super().__post_init__()


@dataclass
class RowLoadError(ExpStoreError, ValueError):
    """
    Raised when a stored row cannot be mapped back to a record.

    Attributes:
        table: Table the row came from
        underlying_error: What went wrong while loading
    """

    table: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load {self.table} row: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_ROW_LOAD_FAILED
        if not self.suggestion:
            self.suggestion = "The stored row may have been written by another tool"
        self.context.update({
            "table": self.table,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(ExpStoreError):
    """Raised when a store configuration file cannot be loaded."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
