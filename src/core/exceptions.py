"""
Infrastructure exceptions for the tier cache service.

Purpose
-------
Define the structured exception hierarchy for cache-layer failures: key-value
backend connectivity and operation errors, corrupted stored values, and misuse
of the one-shot schema migrator.

Design Notes
------------
- All exceptions inherit from `TierCacheException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the caller may retry the operation
  - `error_code`: short, stable identifier for programmatic use
- The cache layer never retries on its own; `is_retryable` is a hint for
  callers (route handlers, scripts) that own retry policy.
- `MalformedKeyWarning` is not raised. It names the category of the
  non-fatal "skipped key" log records emitted during scans.

Exception Hierarchy
-------------------
TierCacheException
├── BackendError
│   ├── BackendConnectivityError (startup PING failed; fatal)
│   └── BackendOperationError    (any later command/pipeline failure)
├── DecodeError                  (stored value could not be decoded)
└── MigrationError               (migrator misuse)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class TierCacheException(Exception):
    """
    Base exception for all cache-layer errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise TierCacheException(
        ...     "Unexpected cache state",
        ...     {"key": "tiers-v2-profile:..."}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class BackendError(TierCacheException):
    """Base class for key-value backend failures."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True


class BackendConnectivityError(BackendError):
    """
    Raised when the backing store is unreachable at construction time.

    Fatal to startup. The adapter never enters a degraded mode.

    Args:
        url_scheme: Scheme of the configured URL (credentials are never logged)
        original_error: The underlying client exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, url_scheme: str, original_error: Exception) -> None:
        self.url_scheme = url_scheme
        self.original_error = original_error
        super().__init__(
            f"Could not connect to key-value backend: {original_error}",
            details={
                "url_scheme": url_scheme,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="BACKEND_UNREACHABLE",
        )


class BackendOperationError(BackendError):
    """
    Raised when a single backend command or pipeline fails after startup.

    Args:
        operation: Command name (GET, SET, SCAN, PIPELINE, ...)
        original_error: The underlying client exception
        key: The key involved, when there is exactly one
    """

    def __init__(
        self,
        operation: str,
        original_error: Exception,
        key: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.original_error = original_error
        self.key = key
        target = f" on '{key}'" if key else ""
        super().__init__(
            f"Backend error during {operation}{target}: {original_error}",
            details={
                "operation": operation,
                "key": key,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="BACKEND_ERROR",
        )


class DecodeError(TierCacheException):
    """
    Raised when a stored value cannot be decoded into a player record.

    Surfaced instead of defaulting to "unknown" so corrupted data is noticed.

    Args:
        reason: What was wrong with the payload
        raw: The raw payload (only a truncated description is kept)
        key: Key the payload was read from, when known
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    MAX_PAYLOAD_PREVIEW = 120

    def __init__(self, reason: str, raw: Any = None, key: Optional[str] = None) -> None:
        self.reason = reason
        self.key = key
        self.payload_description = self.describe_payload(raw)
        super().__init__(
            f"Could not decode player record: {reason}",
            details={
                "key": key,
                "payload": self.payload_description,
            },
            error_code="DECODE_ERROR",
        )

    @classmethod
    def describe_payload(cls, raw: Any) -> str:
        if raw is None:
            return "<nil>"
        if isinstance(raw, str):
            # Undecodable reply bytes arrive as lone surrogates
            raw = raw.encode("utf-8", errors="surrogateescape")
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="backslashreplace")
        text = str(raw)
        if len(text) > cls.MAX_PAYLOAD_PREVIEW:
            return f"{text[:cls.MAX_PAYLOAD_PREVIEW]}... ({len(text)} chars)"
        return text


class MigrationError(TierCacheException):
    """Raised when a migrator instance is asked to run a second time."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False


class MalformedKeyWarning(RuntimeWarning):
    """Category for keys skipped during a scan because they do not parse."""


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """
    Check if an exception represents a transient error that can be retried.

    Args:
        exc: Exception to check

    Returns:
        True if error is retryable, False otherwise.
    """
    if isinstance(exc, TierCacheException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Args:
        exc: Exception to check

    Returns:
        ErrorSeverity level.
    """
    if isinstance(exc, TierCacheException):
        return exc.severity
    return ErrorSeverity.ERROR
