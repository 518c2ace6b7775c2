"""
Approval Workflow Service.

Orchestrates submit, approve and reject for business trips and trip
claims: loads the record and its relations, checks state and
authorization with the pure engine in :mod:`tripflow.workflow`, then
persists the transition through a conditional store update and writes
the audit trail.

Every public method returns a :class:`ServiceResult`; expected workflow
outcomes (``Conflict``, ``Unauthorized``, ...) never escape as
exceptions.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Optional

from tripflow.exceptions import Unauthorized, WorkflowError
from tripflow.logger import StructuredLogger
from tripflow.models.employee import Employee
from tripflow.models.enums import RecordKind, WorkflowStatus
from tripflow.models.role_assignment import RoleAssignment
from tripflow.models.service_models import RecordStatusView, ServiceResult
from tripflow.models.store_models import RecordFilter
from tripflow.models.user import User
from tripflow.models.workflow_record import WorkflowRecord
from tripflow.repositories.employee_repository import EmployeeRepository
from tripflow.repositories.line_approval_repository import LineApprovalRepository
from tripflow.repositories.record_store import WorkflowRecordStore
from tripflow.services.base_service import BaseService
from tripflow.utils.audit import AuditAction, log_audit_event
from tripflow.workflow import authorization, history, transitions
from tripflow.workflow.chain import DEFAULT_CHAIN, ApprovalChain


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalWorkflowService(BaseService):
    """
    Service handling workflow state transitions and approval views.

    Dependencies are injected via __init__.  ``stores`` maps each record
    kind to the store serving it; ``clock`` is injectable so tests can
    pin timestamps.
    """

    def __init__(
        self,
        stores: Mapping[RecordKind, WorkflowRecordStore],
        employee_repo: EmployeeRepository,
        line_approval_repo: LineApprovalRepository,
        logger: StructuredLogger,
        *,
        chain: ApprovalChain = DEFAULT_CHAIN,
        clock: Optional[Callable[[], datetime]] = None,
        require_complete_line_approval: bool = True,
        audit_conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        super().__init__(logger)
        self._stores = dict(stores)
        self._employee_repo = employee_repo
        self._line_approval_repo = line_approval_repo
        self._chain = chain
        self._clock = clock or _utc_now
        self._require_complete = require_complete_line_approval
        self._audit_conn = audit_conn

    # ------------------------------------------------------------------
    # Private helpers: loading
    # ------------------------------------------------------------------

    def _store(self, kind: RecordKind) -> WorkflowRecordStore:
        try:
            return self._stores[kind]
        except KeyError:
            raise ValueError(f"No record store configured for {kind.value}.") from None

    def _hydrate(
        self,
        record: WorkflowRecord,
        employees: Optional[dict[str, Optional[Employee]]] = None,
    ) -> WorkflowRecord:
        """Attach the subject employee, needed for the supervisor step."""
        if record.employee is not None:
            return record
        if employees is not None and record.employee_id in employees:
            employee = employees[record.employee_id]
        else:
            employee = self._employee_repo.get_by_id(record.employee_id)
            if employees is not None:
                employees[record.employee_id] = employee
        if employee is None:
            self._logger.warning(
                "Employee %s of %s %s not found; supervisor step cannot be resolved.",
                record.employee_id,
                record.kind.value,
                record.id,
            )
            return record
        return record.model_copy(update={"employee": employee})

    def _load(self, kind: RecordKind, record_id: str) -> WorkflowRecord:
        return self._hydrate(self._store(kind).get(record_id))

    def _assignment(self, record: WorkflowRecord) -> Optional[RoleAssignment]:
        return self._line_approval_repo.get_by_company(record.organizational_unit)

    def _persist(self, before: WorkflowRecord, after: WorkflowRecord) -> WorkflowRecord:
        """Write *after* only while the stored row still matches *before*."""
        saved = self._store(before.kind).compare_and_update(
            before.id,
            transitions.guard_for(before),
            after.workflow_patch(before),
        )
        return saved.model_copy(update={"employee": before.employee})

    def _audit(
        self,
        action: AuditAction,
        record: WorkflowRecord,
        acting_user: User,
        details: dict[str, Optional[str]],
    ) -> None:
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type=record.kind.value,
            entity_id=record.id,
            user_id=acting_user.employee_id or acting_user.id,
            details={"number": record.number, "status": record.status.value, **details},
            conn=self._audit_conn,
        )

    # ------------------------------------------------------------------
    # Public: authorization
    # ------------------------------------------------------------------

    def can_act(self, kind: RecordKind, record_id: str, acting_user: User) -> bool:
        """Whether *acting_user* may approve or reject the record now.

        Never raises: a missing record or relation means ``False``.
        """
        try:
            record = self._load(kind, record_id)
            return authorization.can_act(record, acting_user, self._assignment(record))
        except WorkflowError:
            return False

    # ------------------------------------------------------------------
    # Public: transitions
    # ------------------------------------------------------------------

    def submit_record(
        self,
        kind: RecordKind,
        record_id: str,
        acting_user: User,
    ) -> ServiceResult[WorkflowRecord]:
        """
        Submits a Draft record into the approval chain.

        Only the record's own employee may submit it.  With complete line
        approval required, every role the record will visit must have an
        approver.

        Returns:
            ServiceResult carrying the stored record on success.
        """
        context = {"record_id": record_id, "record_kind": kind.value, "actor": acting_user.employee_id}
        try:
            before = self._load(kind, record_id)
            if not acting_user.employee_id or acting_user.employee_id != before.employee_id:
                raise Unauthorized(
                    f"Only the employee on {kind.value} {record_id} may submit it."
                )

            after = transitions.submit(
                before,
                self._assignment(before),
                self._clock(),
                require_complete=self._require_complete,
                chain=self._chain,
            )
            saved = self._persist(before, after)

            self._audit(AuditAction.SUBMIT, saved, acting_user, {"step": self._chain.first.value})
            return ServiceResult(success=True, data=saved)
        except WorkflowError as exc:
            return self._denied(exc, "submit", **context)
        except Exception as exc:
            return self._failed(exc, "submit", **context)

    def approve_record(
        self,
        kind: RecordKind,
        record_id: str,
        acting_user: User,
    ) -> ServiceResult[WorkflowRecord]:
        """
        Approves the record at its current step on behalf of *acting_user*.

        State is checked before authorization, so a second approver of
        the same step gets ``Conflict`` rather than ``Unauthorized``.  The
        write is guarded: if another approver got there first between our
        read and our write, the store raises ``Conflict`` and nothing is
        written.

        Returns:
            ServiceResult carrying the stored record on success.
        """
        context = {"record_id": record_id, "record_kind": kind.value, "actor": acting_user.employee_id}
        try:
            before = self._load(kind, record_id)
            step = transitions.ensure_actionable(before)
            if not authorization.can_act(before, acting_user, self._assignment(before)):
                raise Unauthorized(
                    f"You are not the assigned approver for step '{step.value}' "
                    f"of {kind.value} {before.number or record_id}."
                )

            after = transitions.approve(before, acting_user, self._clock(), chain=self._chain)
            saved = self._persist(before, after)

            next_step = saved.current_approval_step
            self._audit(
                AuditAction.APPROVE,
                saved,
                acting_user,
                {"step": step.value, "next_step": next_step.value if next_step else None},
            )
            return ServiceResult(success=True, data=saved)
        except WorkflowError as exc:
            return self._denied(exc, "approve", **context)
        except Exception as exc:
            return self._failed(exc, "approve", **context)

    def reject_record(
        self,
        kind: RecordKind,
        record_id: str,
        acting_user: User,
        reason: Optional[str],
    ) -> ServiceResult[WorkflowRecord]:
        """
        Rejects the record at its current step.

        Args:
            kind: Record kind.
            record_id: Primary key of the record.
            acting_user: The approver holding the current step.
            reason: Mandatory, non-blank rejection reason.
        """
        context = {"record_id": record_id, "record_kind": kind.value, "actor": acting_user.employee_id}
        try:
            before = self._load(kind, record_id)
            step = transitions.ensure_actionable(before)
            if not authorization.can_act(before, acting_user, self._assignment(before)):
                raise Unauthorized(
                    f"You are not the assigned approver for step '{step.value}' "
                    f"of {kind.value} {before.number or record_id}."
                )

            after = transitions.reject(before, acting_user, reason, self._clock())
            saved = self._persist(before, after)

            self._audit(
                AuditAction.REJECT,
                saved,
                acting_user,
                {"step": step.value, "reason": saved.rejection_reason},
            )
            return ServiceResult(success=True, data=saved)
        except WorkflowError as exc:
            return self._denied(exc, "reject", **context)
        except Exception as exc:
            return self._failed(exc, "reject", **context)

    # ------------------------------------------------------------------
    # Public: views
    # ------------------------------------------------------------------

    def list_actionable(
        self,
        kind: RecordKind,
        acting_user: User,
        limit: int = 500,
    ) -> ServiceResult[list[WorkflowRecord]]:
        """Submitted records the acting user may approve or reject now."""
        context = {"record_kind": kind.value, "actor": acting_user.employee_id}
        if not acting_user.employee_id:
            return ServiceResult(success=True, data=[])
        try:
            candidates = self._store(kind).list_by_filter(
                RecordFilter(status=WorkflowStatus.SUBMITTED, limit=limit)
            )
            employees: dict[str, Optional[Employee]] = {}
            assignments: dict[Optional[str], Optional[RoleAssignment]] = {}

            actionable: list[WorkflowRecord] = []
            for candidate in candidates:
                record = self._hydrate(candidate, employees)
                unit = record.organizational_unit
                if unit not in assignments:
                    assignments[unit] = self._assignment(record)
                if authorization.can_act(record, acting_user, assignments[unit]):
                    actionable.append(record)
            return ServiceResult(success=True, data=actionable)
        except WorkflowError as exc:
            return self._denied(exc, "list_actionable", **context)
        except Exception as exc:
            return self._failed(exc, "list_actionable", **context)

    def get_status(self, kind: RecordKind, record_id: str) -> ServiceResult[RecordStatusView]:
        """Badge, captions and approval timeline of a record."""
        context = {"record_id": record_id, "record_kind": kind.value}
        try:
            record = self._load(kind, record_id)
            actor_ids = [record.employee_id, record.rejected_by or ""]
            actor_ids.extend(step.approved_by or "" for step in record.approvals.values())
            names = self._employee_repo.get_names(actor_ids)

            view = RecordStatusView(
                record_id=record.id,
                kind=record.kind,
                number=record.number,
                status=record.status,
                current_approval_step=record.current_approval_step,
                label=history.status_label(record),
                captions=history.status_captions(record, self._chain),
                latest_approval=history.latest_approval(record, self._chain),
                auto_approved=history.is_auto_approved(record),
                rejection_reason=record.rejection_reason,
                timeline=history.approval_timeline(record, names, self._chain),
            )
            return ServiceResult(success=True, data=view)
        except WorkflowError as exc:
            return self._denied(exc, "get_status", **context)
        except Exception as exc:
            return self._failed(exc, "get_status", **context)
