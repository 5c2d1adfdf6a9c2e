"""
Domain exceptions for the tier lookup layer.

Purpose
-------
Errors raised by services for caller mistakes, as opposed to the
infrastructure failures in `src.core.exceptions`. The HTTP layer maps these
to 4xx responses and everything else to 5xx.

Design Notes
------------
- All domain exceptions inherit from `TierDomainException`, which reuses the
  structured fields of `TierCacheException` (message, details, severity,
  is_retryable, error_code).
"""

from __future__ import annotations

from src.core.exceptions import ErrorSeverity, TierCacheException, get_error_severity


class TierDomainException(TierCacheException):
    """Base exception for caller-facing domain errors."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False


class ValidationError(TierDomainException):
    """
    Raised when caller input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


def should_alert(exc: Exception) -> bool:
    """
    Determine if an exception should trigger alerting.

    Returns:
        True if severity is ERROR or CRITICAL, False otherwise.
    """
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
