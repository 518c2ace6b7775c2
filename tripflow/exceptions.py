"""
Workflow Error Hierarchy.

Every error raised by the approval engine and the record stores is an
expected outcome the caller presents to the user (e.g. "already approved
by someone else, please refresh").  ``status_code`` mirrors the HTTP-like
codes carried by :class:`~tripflow.models.service_models.ServiceResult`.
"""

from __future__ import annotations

__all__ = [
    "Conflict",
    "InvalidState",
    "NotFound",
    "Unauthorized",
    "ValidationError",
    "WorkflowError",
]


class WorkflowError(Exception):
    """Base class for all recoverable workflow outcomes."""

    status_code: int = 400
    kind: str = "WorkflowError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(WorkflowError):
    """The referenced record does not exist in the record store."""

    status_code = 404
    kind = "NotFound"


class InvalidState(WorkflowError):
    """Action attempted on a terminal record or one with no current step."""

    status_code = 409
    kind = "InvalidState"


class ValidationError(WorkflowError):
    """Required input is missing, e.g. an empty rejection reason."""

    status_code = 422
    kind = "ValidationError"


class Unauthorized(WorkflowError):
    """The acting user is not entitled to act at the current step."""

    status_code = 403
    kind = "Unauthorized"


class Conflict(WorkflowError):
    """The optimistic-concurrency check failed; another actor got there first."""

    status_code = 409
    kind = "Conflict"
