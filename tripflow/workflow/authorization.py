"""
Authorization Resolver.

Decides whether an acting user may approve or reject a record at its
current step.  Supervisor approval is resolved from the subject
employee's ``supervisor_id``; every other role comes from the company's
line approval row.  This asymmetry is intentional.

Missing data always means "not allowed", never an error.
"""

from __future__ import annotations

from typing import Optional

from tripflow.models.enums import ApprovalRole
from tripflow.models.role_assignment import RoleAssignment
from tripflow.models.user import User
from tripflow.models.workflow_record import WorkflowRecord

__all__ = ["can_act", "expected_actor"]


def expected_actor(
    record: WorkflowRecord,
    role_assignment: Optional[RoleAssignment],
) -> Optional[str]:
    """Return the employee id entitled to act at the record's current step.

    ``None`` when there is no current step or nobody holds the role.
    """
    step = record.current_approval_step
    if step is None:
        return None

    if step is ApprovalRole.SUPERVISOR:
        if record.employee is None:
            return None
        return record.employee.supervisor_id or None

    if role_assignment is None:
        return None
    return role_assignment.assignee_for(step)


def can_act(
    record: WorkflowRecord,
    acting_user: Optional[User],
    role_assignment: Optional[RoleAssignment],
) -> bool:
    """``True`` when *acting_user* may act on *record* right now.

    Args:
        record: The record, with ``employee`` hydrated for supervisor steps.
        acting_user: The authenticated user; needs a linked ``employee_id``.
        role_assignment: Line approval row for the record's company.
    """
    if record.is_terminal:
        return False

    step = record.current_approval_step
    if step is None:
        return False

    # Someone already acted at this step.
    if record.approval(step).approved_by:
        return False

    actor_id = acting_user.employee_id if acting_user is not None else None
    if not actor_id:
        return False

    entitled = expected_actor(record, role_assignment)
    return entitled is not None and entitled == actor_id
