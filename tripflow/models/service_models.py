"""
Service Layer Data Transfer Objects.

Pydantic models for validated output at service boundaries: the
projector results rendered by the UI and the ``ServiceResult`` envelope.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from tripflow.models.enums import ApprovalRole, RecordKind, TimelineAction, WorkflowStatus

T = TypeVar("T")

__all__ = [
    "LatestApproval",
    "RecordStatusView",
    "ServiceResult",
    "StatusLabel",
    "TimelineEntry",
]


# ---------------------------------------------------------------------------
# Approval history projections
# ---------------------------------------------------------------------------

class LatestApproval(BaseModel):
    """The most recently executed approval step of a record."""

    role: ApprovalRole
    timestamp: datetime


class StatusLabel(BaseModel):
    """Badge shown for a status: a stable style tag plus its text."""

    badge_class: str
    text: str

    model_config = {"frozen": True}


class TimelineEntry(BaseModel):
    """One line of the printable approval list."""

    name: str
    position: str
    timestamp: Optional[datetime] = None
    action: TimelineAction


class RecordStatusView(BaseModel):
    """Everything a viewer needs to render a record's approval state."""

    record_id: str
    kind: RecordKind
    number: Optional[str] = None
    status: WorkflowStatus
    current_approval_step: Optional[ApprovalRole] = None
    label: StatusLabel
    captions: list[str] = Field(default_factory=list)
    latest_approval: Optional[LatestApproval] = None
    auto_approved: bool = False
    rejection_reason: Optional[str] = None
    timeline: list[TimelineEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All service methods return this, providing a consistent contract
    for the UI layer.  ``error_kind`` carries the workflow error class
    name (``"Conflict"``, ``"Unauthorized"``, ...) so callers can pick a
    message without parsing ``error``.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: int = 200
