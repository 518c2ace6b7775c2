"""
Base Service Class.

Standardizes the logger pattern and the ``ServiceResult`` failure
envelope for all services.  Services extend this and add their own
repository dependencies via __init__.
"""

from __future__ import annotations

from tripflow.exceptions import WorkflowError
from tripflow.logger import StructuredLogger
from tripflow.models.service_models import ServiceResult


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _denied(self, exc: WorkflowError, action: str, **context: object) -> ServiceResult:
        """Log an expected workflow outcome and wrap it in a failed result."""
        self._logger.bind(error_kind=exc.kind, **context).warning(
            "%s denied: %s", action, exc.message,
        )
        return ServiceResult(
            success=False,
            error=exc.message,
            error_kind=exc.kind,
            status_code=exc.status_code,
        )

    def _failed(self, exc: Exception, action: str, **context: object) -> ServiceResult:
        """Log an unexpected error with its traceback; return a 500 result."""
        self._logger.bind(**context).error(
            "Error during %s: %s", action, str(exc), exc_info=True,
        )
        return ServiceResult(
            success=False,
            error=f"Database error: {str(exc)}",
            status_code=500,
        )
