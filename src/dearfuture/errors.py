"""
Exception hierarchy for Dear Future.

All Dear Future exceptions inherit from DearFutureError, allowing callers to
catch every project-specific exception with a single except clause.

Exception Categories:
    - CapsuleValidationError: Capsule input could not be parsed
    - CapsuleNotFoundError: No live capsule with the requested id
    - StorageError: Reading or writing the capsule file failed
    - SortError: The concurrent ordering engine could not finish
    - TransferError: Import/export of capsules failed
    - ConfigError: Settings file is invalid

Not every failure is an exception. Empty titles/messages on add are reported
as a False result and unknown ids on delete/restore/purge are silent no-ops;
see CapsuleService for the per-operation contract.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Capsule errors: 1xxx
ERROR_CAPSULE_INVALID = 1001
ERROR_CAPSULE_NOT_FOUND = 1002

# Storage errors: 2xxx
ERROR_STORAGE_READ = 2001
ERROR_STORAGE_WRITE = 2002

# Sort errors: 3xxx
ERROR_SORT_FAILED = 3001

# Transfer errors: 4xxx
ERROR_TRANSFER_FAILED = 4001
ERROR_TRANSFER_FORMAT = 4002

# Config errors: 5xxx
ERROR_CONFIG_INVALID = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class DearFutureError(Exception):
    """
    Base exception for all Dear Future errors.

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
# Capsule Errors
# =============================================================================


@dataclass
class CapsuleValidationError(DearFutureError):
    """
    Raised when capsule input cannot be turned into a valid value.

    Attributes:
        field_name: The capsule field that failed (e.g. "unlockDate")
        value: The offending raw value
    """

    field_name: str = ""
    value: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid value for {self.field_name}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_CAPSULE_INVALID
        self.context.update({
            "field": self.field_name,
            "value": self.value,
        })


@dataclass
class CapsuleNotFoundError(DearFutureError):
    """Raised when no live capsule has the requested id."""

    capsule_id: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Capsule not found: {self.capsule_id}"
        if self.code == 0:
            self.code = ERROR_CAPSULE_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Run `dearfuture list --view trash` to check the trash"
        self.context["capsule_id"] = self.capsule_id


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(DearFutureError):
    """
    Base class for capsule file errors.

    Attributes:
        operation: The operation that failed (e.g., "load", "save")
        path: The backing file involved
    """

    operation: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "operation": self.operation,
            "path": self.path,
        })


@dataclass
class StorageReadError(StorageError):
    """
    Raised (or recorded) when the capsule file cannot be read.

    The store never raises this from load; it keeps it as ``load_error``.
    """

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not read capsules from {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        if not self.suggestion:
            self.suggestion = (
                "The file was ignored and the next change will overwrite it. "
                "Back it up before making changes."
            )
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageWriteError(StorageError):
    """Raised when the capsule file cannot be written."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not save capsules to {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        if not self.suggestion:
            self.suggestion = "Check that the data file location is writable"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Sort Errors
# =============================================================================


@dataclass
class SortError(DearFutureError):
    """Raised when a parallel sort subtask fails or is cancelled."""

    item_count: int = 0
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Sort failed for {self.item_count} items: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SORT_FAILED
        self.context.update({
            "item_count": self.item_count,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Transfer Errors
# =============================================================================


@dataclass
class TransferError(DearFutureError):
    """
    Raised when importing or exporting capsules fails.

    Attributes:
        path: File being read or written
        format: "json" or "csv"
    """

    path: str = ""
    format: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Transfer failed for {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_TRANSFER_FAILED
        self.context.update({
            "path": self.path,
            "format": self.format,
            "underlying_error": self.underlying_error,
        })


@dataclass
class TransferFormatError(TransferError):
    """Raised when an unsupported transfer format is requested."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported format: {self.format!r}"
        if self.code == 0:
            self.code = ERROR_TRANSFER_FORMAT
        if not self.suggestion:
            self.suggestion = "Choose 'json' or 'csv'"
        super().__post_init__()


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(DearFutureError):
    """Raised when the settings file cannot be loaded."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid config {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
