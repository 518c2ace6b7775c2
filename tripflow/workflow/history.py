"""
Approval History Projector.

Read-only views derived from a record's stored approval timestamps:
the latest approval, the status badge, the captions under the badge,
the auto-approved flag and the printable approval timeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Optional, Union

from tripflow.models.enums import ApprovalRole, TimelineAction, WorkflowStatus
from tripflow.models.service_models import LatestApproval, StatusLabel, TimelineEntry
from tripflow.models.workflow_record import WorkflowRecord
from tripflow.workflow.chain import DEFAULT_CHAIN, ApprovalChain

__all__ = [
    "ROLE_LABELS",
    "STATUS_LABELS",
    "approval_timeline",
    "format_date",
    "is_auto_approved",
    "latest_approval",
    "status_captions",
    "status_label",
]

ROLE_LABELS: dict[ApprovalRole, str] = {
    ApprovalRole.SUPERVISOR: "Supervisor",
    ApprovalRole.STAFF_GA: "Staff GA",
    ApprovalRole.SPV_GA: "SPV GA",
    ApprovalRole.HR_MANAGER: "HR Manager",
    ApprovalRole.BOD: "BOD",
    ApprovalRole.STAFF_FA: "Staff FA",
}

# Positions as printed on the claim form.
_TIMELINE_POSITIONS: dict[ApprovalRole, str] = {
    ApprovalRole.SUPERVISOR: "SUPERVISOR",
    ApprovalRole.STAFF_GA: "GA STAFF",
    ApprovalRole.SPV_GA: "GA SPV",
    ApprovalRole.HR_MANAGER: "HR MANAGER",
    ApprovalRole.BOD: "BOD",
    ApprovalRole.STAFF_FA: "FA STAFF",
}

STATUS_LABELS: dict[WorkflowStatus, StatusLabel] = {
    WorkflowStatus.DRAFT: StatusLabel(badge_class="bg-gray-100 text-gray-800", text="Draft"),
    WorkflowStatus.SUBMITTED: StatusLabel(badge_class="bg-yellow-100 text-yellow-800", text="Submitted"),
    WorkflowStatus.APPROVED: StatusLabel(badge_class="bg-green-100 text-green-800", text="Approved"),
    WorkflowStatus.REJECTED: StatusLabel(badge_class="bg-red-100 text-red-800", text="Rejected"),
    WorkflowStatus.COMPLETED: StatusLabel(badge_class="bg-blue-100 text-blue-800", text="Completed"),
    WorkflowStatus.PAID: StatusLabel(badge_class="bg-purple-100 text-purple-800", text="Paid"),
}


def format_date(value: Optional[datetime]) -> str:
    """``dd/mm/yyyy``, or ``-`` when there is no date."""
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y")


def latest_approval(
    record: WorkflowRecord,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> Optional[LatestApproval]:
    """Return the highest-order step that has an ``approved_at``.

    Steps run strictly in chain order, so scanning from the last role
    backwards finds the most recent approval.
    """
    for role in reversed(chain.roles()):
        approved_at = record.approval(role).approved_at
        if approved_at is not None:
            return LatestApproval(role=role, timestamp=approved_at)
    return None


def status_label(status: Union[WorkflowRecord, WorkflowStatus, str]) -> StatusLabel:
    """Badge for a record or raw status value; unknown values render as Draft."""
    if isinstance(status, WorkflowRecord):
        status = status.status
    try:
        return STATUS_LABELS[WorkflowStatus(status)]
    except ValueError:
        return STATUS_LABELS[WorkflowStatus.DRAFT]


def is_auto_approved(record: WorkflowRecord) -> bool:
    """``True`` for an Approved record that never visited any approval step."""
    if record.status is not WorkflowStatus.APPROVED:
        return False
    return all(record.approval(role).approved_at is None for role in ApprovalRole)


def status_captions(
    record: WorkflowRecord,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> list[str]:
    """Captions rendered under the status badge, top to bottom."""
    captions: list[str] = []
    latest = latest_approval(record, chain)

    # A Staff FA approval means the record is fully approved; the badge
    # says it all.
    if (
        record.status is not WorkflowStatus.REJECTED
        and latest is not None
        and latest.role is not ApprovalRole.STAFF_FA
    ):
        captions.append(
            f"Approved by {ROLE_LABELS[latest.role]} on {format_date(latest.timestamp)}"
        )
    elif record.status is WorkflowStatus.SUBMITTED:
        captions.append(f"Submitted on {format_date(record.submitted_at)}")

    if record.status is WorkflowStatus.REJECTED and record.rejected_at is not None:
        captions.append(f"Rejected on {format_date(record.rejected_at)}")

    if is_auto_approved(record):
        captions.append("No expenses submitted, auto-approved")

    return captions


def approval_timeline(
    record: WorkflowRecord,
    names: Optional[Mapping[str, str]] = None,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> list[TimelineEntry]:
    """Submission, each executed approval, then the rejection if any.

    Args:
        record: The record to project.
        names: Employee id -> display name for approvers; unknown ids
            print as ``-``.
        chain: Approval chain order.
    """
    names = names or {}
    submitter = names.get(record.employee_id)
    if submitter is None and record.employee is not None:
        submitter = record.employee.name or None

    entries: list[TimelineEntry] = [
        TimelineEntry(
            name=submitter or "N/A",
            position="USER",
            timestamp=record.submitted_at or record.created_at,
            action=TimelineAction.SUBMIT,
        )
    ]

    for role in chain.roles():
        step = record.approval(role)
        if step.approved_at is None:
            continue
        entries.append(
            TimelineEntry(
                name=names.get(step.approved_by or "", "-"),
                position=_TIMELINE_POSITIONS[role],
                timestamp=step.approved_at,
                action=TimelineAction.APPROVED,
            )
        )

    if record.status is WorkflowStatus.REJECTED and record.rejected_at is not None:
        step = record.current_approval_step
        entries.append(
            TimelineEntry(
                name=names.get(record.rejected_by or "", "-"),
                position=_TIMELINE_POSITIONS[step] if step is not None else "-",
                timestamp=record.rejected_at,
                action=TimelineAction.REJECTED,
            )
        )

    return entries
