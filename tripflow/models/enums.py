"""
Shared Enumerations for tripflow Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so stored values like ``'Submitted'`` or ``'staff_ga'`` round-trip as-is.
"""

from __future__ import annotations
from enum import StrEnum


class ApprovalRole(StrEnum):
    """Approver roles, declared in chain order.

    ``SUPERVISOR`` is resolved from the subject employee's own
    ``supervisor_id``; every other role is resolved from the company's
    line approval row.
    """

    SUPERVISOR = "supervisor"
    STAFF_GA = "staff_ga"
    SPV_GA = "spv_ga"
    HR_MANAGER = "hr_manager"
    BOD = "bod"
    STAFF_FA = "staff_fa"


class WorkflowStatus(StrEnum):
    """Lifecycle states shared by business trips and trip claims.

    ``COMPLETED`` (trips) and ``PAID`` (claims) are post-payment states
    written by the finance side of the application, never by the engine.
    """

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    PAID = "Paid"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES: frozenset[WorkflowStatus] = frozenset({
    WorkflowStatus.APPROVED,
    WorkflowStatus.REJECTED,
    WorkflowStatus.COMPLETED,
    WorkflowStatus.PAID,
})


class RecordKind(StrEnum):
    """The two record types that travel through the approval chain."""

    BUSINESS_TRIP = "business_trip"
    TRIP_CLAIM = "trip_claim"

    @property
    def number_field(self) -> str:
        """Column holding the human-readable record number."""
        if self is RecordKind.BUSINESS_TRIP:
            return "trip_number"
        return "claim_number"


class TimelineAction(StrEnum):
    """Entry types of a record's approval timeline."""

    SUBMIT = "SUBMIT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
