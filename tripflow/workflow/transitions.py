"""
Step Transition Engine.

Pure functions computing the next state of a workflow record for the
submit, approve and reject actions.  Inputs are never mutated: each
function returns a modified copy which the caller persists through a
record store, guarded by :func:`guard_for`.

State machine over ``status x current_approval_step``::

    Draft --submit--> Submitted@supervisor
    Submitted@step --approve--> Submitted@next(step)
                            \\-> Approved   (last step, or Staff GA with
                                            no cash advance)
    Submitted@step --reject--> Rejected    (step and history kept)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from tripflow.exceptions import Conflict, InvalidState, Unauthorized, ValidationError
from tripflow.models.enums import ApprovalRole, WorkflowStatus
from tripflow.models.role_assignment import RoleAssignment
from tripflow.models.store_models import StoreGuard
from tripflow.models.user import User
from tripflow.models.workflow_record import StepApproval, WorkflowRecord, approval_columns
from tripflow.workflow.chain import DEFAULT_CHAIN, ApprovalChain

__all__ = [
    "approve",
    "ensure_actionable",
    "guard_for",
    "reject",
    "required_roles",
    "skips_after_staff_ga",
    "submit",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _actor_id(acting_user: User) -> str:
    if not acting_user.employee_id:
        raise Unauthorized(
            f"User '{acting_user.id}' is not linked to an employee record."
        )
    return acting_user.employee_id


def skips_after_staff_ga(record: WorkflowRecord) -> bool:
    """``True`` when the record has no cash advance to reconcile.

    Such records finish at the Staff GA step instead of continuing to
    SPV GA, HR Manager, BOD and Staff FA.
    """
    amount = record.cash_advance
    return amount is None or amount <= Decimal("0")


def required_roles(
    record: WorkflowRecord,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> list[ApprovalRole]:
    """Roles the record will visit, in chain order, given its cash advance."""
    roles = list(chain.roles())
    if skips_after_staff_ga(record) and ApprovalRole.STAFF_GA in roles:
        roles = roles[: chain.position(ApprovalRole.STAFF_GA) + 1]
    return roles


def ensure_actionable(record: WorkflowRecord) -> ApprovalRole:
    """Validate that *record* can be approved or rejected; return its step.

    Raises:
        InvalidState: The record is terminal, not submitted, or has no
            current step.
        Conflict: Someone already acted at the current step.
    """
    if record.is_terminal:
        raise InvalidState(
            f"Record {record.id} is already {record.status.value}; "
            f"no further approval actions are possible."
        )
    if record.status is not WorkflowStatus.SUBMITTED:
        raise InvalidState(
            f"Record {record.id} is {record.status.value}; "
            f"only Submitted records can be approved or rejected."
        )

    step = record.current_approval_step
    if step is None:
        raise InvalidState(f"Record {record.id} has no current approval step.")

    if record.approval(step).approved_by:
        raise Conflict(
            f"Step '{step.value}' of record {record.id} was already approved "
            f"by {record.approval(step).approved_by}."
        )
    return step


def guard_for(before: WorkflowRecord) -> StoreGuard:
    """Compare-and-set precondition for persisting a transition of *before*.

    The stored row must still be in the state that was read, and the
    current step's ``approved_by`` column must still be NULL.
    """
    step = before.current_approval_step
    null_columns: tuple[str, ...] = ()
    if step is not None:
        null_columns = (approval_columns(step)[1],)
    return StoreGuard(
        status=before.status,
        current_approval_step=step,
        null_columns=null_columns,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def submit(
    record: WorkflowRecord,
    role_assignment: Optional[RoleAssignment],
    now: datetime,
    *,
    require_complete: bool = True,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> WorkflowRecord:
    """Move a Draft record into the chain at its first step.

    With *require_complete*, every role the record will visit must have
    an approver, otherwise the record would stall at that step forever.

    Raises:
        InvalidState: The record is not a Draft.
        ValidationError: A required role has no approver.
    """
    if record.status is not WorkflowStatus.DRAFT:
        raise InvalidState(
            f"Record {record.id} is {record.status.value}; only Draft records "
            f"can be submitted."
        )

    if require_complete:
        missing: list[str] = []
        for role in required_roles(record, chain):
            if role is ApprovalRole.SUPERVISOR:
                has_approver = record.employee is not None and bool(record.employee.supervisor_id)
            else:
                has_approver = role_assignment is not None and bool(role_assignment.assignee_for(role))
            if not has_approver:
                missing.append(role.value)
        if missing:
            raise ValidationError(
                f"Record {record.id} cannot be submitted: no approver assigned "
                f"for {', '.join(missing)}."
            )

    return record.model_copy(update={
        "status": WorkflowStatus.SUBMITTED,
        "submitted_at": now,
        "current_approval_step": chain.first,
    })


def approve(
    record: WorkflowRecord,
    acting_user: User,
    now: datetime,
    *,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> WorkflowRecord:
    """Record the acting user's approval of the current step.

    The step's approval pair is set, then the record either advances to
    the next role or, when the step was the last one or the Staff GA
    step of a record without cash advance, becomes ``Approved`` with no
    current step.  Authorization is the caller's job (see
    :func:`~tripflow.workflow.authorization.can_act`).

    Raises:
        InvalidState: See :func:`ensure_actionable`.
        Conflict: The current step already carries an approver.
        Unauthorized: The acting user has no linked employee.
    """
    step = ensure_actionable(record)
    actor = _actor_id(acting_user)

    approvals = dict(record.approvals)
    approvals[step] = StepApproval(approved_at=now, approved_by=actor)

    finishes = chain.is_last(step) or (
        step is ApprovalRole.STAFF_GA and skips_after_staff_ga(record)
    )
    if finishes:
        update: dict[str, object] = {
            "status": WorkflowStatus.APPROVED,
            "current_approval_step": None,
        }
    else:
        update = {
            "status": WorkflowStatus.SUBMITTED,
            "current_approval_step": chain.next(step),
        }
    update["approvals"] = approvals
    return record.model_copy(update=update)


def reject(
    record: WorkflowRecord,
    acting_user: User,
    reason: Optional[str],
    now: datetime,
) -> WorkflowRecord:
    """Reject the record at its current step.

    ``current_approval_step`` and earlier approvals stay untouched so the
    history remains visible.

    Raises:
        InvalidState: See :func:`ensure_actionable`.
        Conflict: The current step already carries an approver.
        ValidationError: *reason* is empty.
        Unauthorized: The acting user has no linked employee.
    """
    ensure_actionable(record)
    if reason is None or not reason.strip():
        raise ValidationError("A rejection reason is required.")
    actor = _actor_id(acting_user)

    return record.model_copy(update={
        "status": WorkflowStatus.REJECTED,
        "rejected_at": now,
        "rejected_by": actor,
        "rejection_reason": reason.strip(),
    })
