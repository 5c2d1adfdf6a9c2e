"""
Base Service Foundation

Purpose
-------
Common base for domain services. Services hold the request-level protocol
(validate, consult the cache, call upstream, populate the cache) and leave
storage and transport to the infrastructure layer.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Error logging with a consistent shape

What this class does NOT do:
- Own or construct infrastructure (the composition root passes it in)
- Retry failures

Usage
-----
    class TierLookupService(BaseService):
        def __init__(self, store, fetcher):
            super().__init__(get_logger(__name__))
            self._store = store
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.core.exceptions import is_transient_error
from src.modules.shared.exceptions import should_alert

if TYPE_CHECKING:
    from logging import Logger


class BaseService:
    """
    Base class for all domain services.

    Args:
        logger: Structured logger instance
    """

    def __init__(self, logger: Logger) -> None:
        self.log = logger

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log a service operation with structured context.

        Args:
            operation: Name of the operation being performed
            **context: Additional context data
        """
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """
        Log a service error with full context.

        Args:
            operation: Name of the operation that failed
            error: The exception that occurred
            **context: Additional context data
        """
        level = logging.ERROR if should_alert(error) else logging.WARNING
        self.log.log(
            level,
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "retryable": is_transient_error(error),
                **context,
            },
        )
