"""
Workflow Record Model.

A business trip or a trip claim as seen by the approval engine.  Both
kinds share one shape; the kind only decides the table, the number
column, and a few kind-specific payload columns.

Per-role approval data lives in ``approvals`` keyed by
:class:`ApprovalRole`.  The flat ``<role>_approved_at`` /
``<role>_approved_by`` column pairs exist only at the storage boundary
(:meth:`WorkflowRecord.from_row` / :meth:`WorkflowRecord.to_row`).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from tripflow.models.employee import Employee
from tripflow.models.enums import ApprovalRole, RecordKind, WorkflowStatus
from tripflow.utils.general import JsonSafeType, convert_to_json_safe

__all__ = [
    "StepApproval",
    "WORKFLOW_COLUMNS",
    "WorkflowRecord",
    "approval_columns",
    "record_columns",
]


def approval_columns(role: ApprovalRole) -> tuple[str, str]:
    """Return the ``(approved_at, approved_by)`` column names for *role*."""
    return f"{role.value}_approved_at", f"{role.value}_approved_by"


# Columns the engine is allowed to write.  Everything else on the row
# belongs to the surrounding application (forms, expense lines, payment).
WORKFLOW_COLUMNS: tuple[str, ...] = (
    "status",
    "current_approval_step",
    "submitted_at",
    "rejected_at",
    "rejected_by",
    "rejection_reason",
) + tuple(col for role in ApprovalRole for col in approval_columns(role))

_KIND_COLUMNS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.BUSINESS_TRIP: ("trip_number", "company_id", "cash_advance"),
    RecordKind.TRIP_CLAIM: ("claim_number", "trip_id", "total_amount"),
}


def record_columns(kind: RecordKind) -> tuple[str, ...]:
    """All stored columns for *kind*, in table order."""
    return ("id", "employee_id") + _KIND_COLUMNS[kind] + WORKFLOW_COLUMNS + (
        "created_at",
        "updated_at",
    )


class StepApproval(BaseModel):
    """The ``approved_at`` / ``approved_by`` pair of one chain step."""

    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None

    model_config = {"frozen": True}


_NO_APPROVAL = StepApproval()


class WorkflowRecord(BaseModel):
    """In-memory copy of a trip or claim row.

    Records are treated as values: engine operations return a modified
    copy and leave the input untouched.  ``employee`` is a hydrated
    relation used for supervisor resolution and is never written back.
    """

    id: str
    kind: RecordKind
    number: Optional[str] = None
    employee_id: str
    company_id: Optional[str] = None
    trip_id: Optional[str] = None

    status: WorkflowStatus = WorkflowStatus.DRAFT
    current_approval_step: Optional[ApprovalRole] = None
    approvals: dict[ApprovalRole, StepApproval] = Field(default_factory=dict)

    submitted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None

    # Gating amount for the Staff GA skip rule.  Claims carry their
    # parent trip's cash advance.
    cash_advance: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    employee: Optional[Employee] = Field(default=None, exclude=True)

    model_config = {"from_attributes": True}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def approval(self, role: ApprovalRole) -> StepApproval:
        """Return the approval pair for *role* (empty when never approved)."""
        return self.approvals.get(role, _NO_APPROVAL)

    @property
    def organizational_unit(self) -> Optional[str]:
        """Company used to resolve role assignments.

        Trips store it directly; claims inherit it from the employee.
        """
        if self.company_id:
            return self.company_id
        if self.employee is not None:
            return self.employee.company_id
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    # ------------------------------------------------------------------
    # Storage boundary
    # ------------------------------------------------------------------

    @classmethod
    def from_row(cls, kind: RecordKind, row: Mapping[str, object]) -> "WorkflowRecord":
        """Build a record from a flat table row.

        Accepts the nested ``business_trips`` / ``employees`` objects that
        PostgREST embeds when the select string requests them.
        """
        approvals: dict[ApprovalRole, StepApproval] = {}
        for role in ApprovalRole:
            at_col, by_col = approval_columns(role)
            approved_at = row.get(at_col)
            approved_by = row.get(by_col)
            if approved_at or approved_by:
                approvals[role] = StepApproval(
                    approved_at=approved_at or None,
                    approved_by=approved_by or None,
                )

        cash_advance = row.get("cash_advance")
        trip = row.get("trip") or row.get("business_trips")
        if cash_advance is None and isinstance(trip, Mapping):
            cash_advance = trip.get("cash_advance")

        # Filter-only embeds (``employees!inner(company_id)``) carry no id and
        # are not a usable employee.
        employee_row = row.get("employees")
        employee = (
            Employee(**employee_row)
            if isinstance(employee_row, Mapping) and employee_row.get("id")
            else None
        )

        return cls(
            id=str(row["id"]),
            kind=kind,
            number=str(row[kind.number_field]) if row.get(kind.number_field) else None,
            employee_id=str(row["employee_id"]),
            company_id=row.get("company_id") or None,
            trip_id=row.get("trip_id") or None,
            status=row.get("status") or WorkflowStatus.DRAFT,
            current_approval_step=row.get("current_approval_step") or None,
            approvals=approvals,
            submitted_at=row.get("submitted_at") or None,
            rejected_at=row.get("rejected_at") or None,
            rejected_by=row.get("rejected_by") or None,
            rejection_reason=row.get("rejection_reason") or None,
            cash_advance=cash_advance,
            total_amount=row.get("total_amount"),
            created_at=row.get("created_at") or None,
            updated_at=row.get("updated_at") or None,
            employee=employee,
        )

    def to_row(self) -> dict[str, JsonSafeType]:
        """Flatten to the stored column layout with JSON-safe values."""
        row: dict[str, object] = {
            "id": self.id,
            "employee_id": self.employee_id,
            self.kind.number_field: self.number,
            "status": self.status.value,
            "current_approval_step": (
                self.current_approval_step.value if self.current_approval_step else None
            ),
            "submitted_at": self.submitted_at,
            "rejected_at": self.rejected_at,
            "rejected_by": self.rejected_by,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.kind is RecordKind.BUSINESS_TRIP:
            row["company_id"] = self.company_id
            row["cash_advance"] = self.cash_advance
        else:
            row["trip_id"] = self.trip_id
            row["total_amount"] = self.total_amount

        for role in ApprovalRole:
            at_col, by_col = approval_columns(role)
            step = self.approval(role)
            row[at_col] = step.approved_at
            row[by_col] = step.approved_by

        return {key: convert_to_json_safe(value) for key, value in row.items()}

    def workflow_patch(self, before: "WorkflowRecord") -> dict[str, JsonSafeType]:
        """Return the workflow columns that differ from *before*."""
        new_row = self.to_row()
        old_row = before.to_row()
        return {
            col: new_row[col]
            for col in WORKFLOW_COLUMNS
            if new_row[col] != old_row[col]
        }
