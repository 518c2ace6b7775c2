"""
Tests for the step transition engine.

Tests cover:
- approve: advance one step, finish at Staff FA, Staff GA skip rule
- reject: reason required, step and history preserved
- submit: Draft only, approver completeness check
- guards: terminal finality, double approval, compare-and-set guard
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from tripflow.exceptions import Conflict, InvalidState, Unauthorized, ValidationError
from tripflow.models import ApprovalRole, RecordKind, StepApproval, WorkflowStatus
from tripflow.workflow import approve, guard_for, reject, submit
from tripflow.workflow.transitions import required_roles, skips_after_staff_ga

from tests.factories import (
    APPROVERS,
    NOW,
    SUPERVISOR,
    approver,
    make_assignment,
    make_employee,
    make_record,
    make_user,
)

LATER = NOW + timedelta(days=1)


class TestApprove:
    def test_supervisor_approval_advances_to_staff_ga(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        result = approve(record, make_user(SUPERVISOR), LATER)

        assert result.status is WorkflowStatus.SUBMITTED
        assert result.current_approval_step is ApprovalRole.STAFF_GA
        assert result.approval(ApprovalRole.SUPERVISOR) == StepApproval(
            approved_at=LATER, approved_by=SUPERVISOR,
        )

    def test_input_is_not_mutated(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        approve(record, make_user(SUPERVISOR), LATER)
        assert record.current_approval_step is ApprovalRole.SUPERVISOR
        assert ApprovalRole.SUPERVISOR not in record.approvals

    def test_staff_fa_approval_finishes(self):
        record = make_record(step=ApprovalRole.STAFF_FA)
        result = approve(record, approver(ApprovalRole.STAFF_FA), LATER)

        assert result.status is WorkflowStatus.APPROVED
        assert result.current_approval_step is None
        assert result.approval(ApprovalRole.STAFF_FA).approved_by == APPROVERS[ApprovalRole.STAFF_FA]

    def test_earlier_approvals_kept(self):
        record = make_record(step=ApprovalRole.BOD)
        result = approve(record, approver(ApprovalRole.BOD), LATER)
        for role in (ApprovalRole.SUPERVISOR, ApprovalRole.STAFF_GA, ApprovalRole.SPV_GA, ApprovalRole.HR_MANAGER):
            assert result.approval(role) == record.approval(role)

    def test_actor_without_employee_link(self):
        with pytest.raises(Unauthorized):
            approve(make_record(), make_user(None), LATER)


class TestStaffGaSkip:
    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-10")])
    def test_no_cash_advance_finishes_at_staff_ga(self, amount):
        record = make_record(step=ApprovalRole.STAFF_GA, cash_advance=amount)
        result = approve(record, approver(ApprovalRole.STAFF_GA), LATER)

        assert result.status is WorkflowStatus.APPROVED
        assert result.current_approval_step is None
        for role in (ApprovalRole.SPV_GA, ApprovalRole.HR_MANAGER, ApprovalRole.BOD, ApprovalRole.STAFF_FA):
            assert result.approval(role).approved_at is None

    def test_cash_advance_continues_to_spv_ga(self):
        record = make_record(step=ApprovalRole.STAFF_GA, cash_advance=Decimal("0.01"))
        result = approve(record, approver(ApprovalRole.STAFF_GA), LATER)

        assert result.status is WorkflowStatus.SUBMITTED
        assert result.current_approval_step is ApprovalRole.SPV_GA

    def test_skip_applies_only_at_staff_ga(self):
        record = make_record(step=ApprovalRole.SUPERVISOR, cash_advance=None)
        result = approve(record, make_user(SUPERVISOR), LATER)
        assert result.current_approval_step is ApprovalRole.STAFF_GA

    def test_claim_uses_trip_cash_advance(self):
        record = make_record(kind=RecordKind.TRIP_CLAIM, id="claim-001", step=ApprovalRole.STAFF_GA, cash_advance=None, total_amount=Decimal("750000"))
        result = approve(record, approver(ApprovalRole.STAFF_GA), LATER)
        assert result.status is WorkflowStatus.APPROVED

    def test_required_roles(self):
        assert required_roles(make_record(cash_advance=None)) == [ApprovalRole.SUPERVISOR, ApprovalRole.STAFF_GA]
        assert len(required_roles(make_record())) == 6
        assert skips_after_staff_ga(make_record(cash_advance=Decimal("0")))


class TestReject:
    def test_reject_keeps_step_and_history(self):
        record = make_record(step=ApprovalRole.SPV_GA)
        result = reject(record, approver(ApprovalRole.SPV_GA), "  Budget exceeded ", LATER)

        assert result.status is WorkflowStatus.REJECTED
        assert result.current_approval_step is ApprovalRole.SPV_GA
        assert result.rejected_at == LATER
        assert result.rejected_by == APPROVERS[ApprovalRole.SPV_GA]
        assert result.rejection_reason == "Budget exceeded"
        assert result.approvals == record.approvals

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_required(self, reason):
        with pytest.raises(ValidationError):
            reject(make_record(), make_user(SUPERVISOR), reason, LATER)

    def test_terminal_check_precedes_reason_check(self):
        record = make_record(status=WorkflowStatus.APPROVED, step=None, approvals={})
        with pytest.raises(InvalidState):
            reject(record, make_user(SUPERVISOR), "", LATER)


class TestTerminalFinality:
    @pytest.mark.parametrize(
        "status",
        [WorkflowStatus.APPROVED, WorkflowStatus.REJECTED, WorkflowStatus.COMPLETED, WorkflowStatus.PAID],
    )
    def test_terminal_records_refuse_approve_and_reject(self, status):
        record = make_record(status=status, step=ApprovalRole.STAFF_GA, approvals={})
        with pytest.raises(InvalidState):
            approve(record, approver(ApprovalRole.STAFF_GA), LATER)
        with pytest.raises(InvalidState):
            reject(record, approver(ApprovalRole.STAFF_GA), "late", LATER)

    def test_draft_cannot_be_approved(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None)
        with pytest.raises(InvalidState):
            approve(record, make_user(SUPERVISOR), LATER)

    def test_submitted_without_step(self):
        record = make_record(step=None, approvals={})
        with pytest.raises(InvalidState):
            approve(record, make_user(SUPERVISOR), LATER)


class TestDoubleApproval:
    def test_second_approval_of_same_step_conflicts(self):
        approvals = {ApprovalRole.SUPERVISOR: StepApproval(approved_at=NOW, approved_by=SUPERVISOR)}
        record = make_record(step=ApprovalRole.SUPERVISOR, approvals=approvals)
        with pytest.raises(Conflict):
            approve(record, make_user(SUPERVISOR), LATER)

    def test_guard_pins_read_state(self):
        record = make_record(step=ApprovalRole.HR_MANAGER)
        guard = guard_for(record)
        assert guard.status is WorkflowStatus.SUBMITTED
        assert guard.current_approval_step is ApprovalRole.HR_MANAGER
        assert guard.null_columns == ("hr_manager_approved_by",)

    def test_patch_touches_only_the_step(self):
        record = make_record(step=ApprovalRole.HR_MANAGER)
        result = approve(record, approver(ApprovalRole.HR_MANAGER), LATER)
        assert result.workflow_patch(record) == {
            "current_approval_step": "bod",
            "hr_manager_approved_at": LATER.isoformat(),
            "hr_manager_approved_by": APPROVERS[ApprovalRole.HR_MANAGER],
        }


class TestSubmit:
    def test_draft_enters_chain_at_supervisor(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None)
        result = submit(record, make_assignment(), LATER)

        assert result.status is WorkflowStatus.SUBMITTED
        assert result.current_approval_step is ApprovalRole.SUPERVISOR
        assert result.submitted_at == LATER

    def test_only_drafts(self):
        with pytest.raises(InvalidState):
            submit(make_record(), make_assignment(), LATER)

    def test_missing_supervisor_fails_validation(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None, employee=make_employee(supervisor_id=None))
        with pytest.raises(ValidationError, match="supervisor"):
            submit(record, make_assignment(), LATER)

    def test_unassigned_role_fails_validation(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None)
        with pytest.raises(ValidationError, match="bod"):
            submit(record, make_assignment(bod_id=None), LATER)

    def test_roles_after_skip_not_required(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None, cash_advance=None)
        result = submit(record, make_assignment(bod_id=None, staff_fa_id=None), LATER)
        assert result.status is WorkflowStatus.SUBMITTED

    def test_completeness_check_can_be_disabled(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None)
        result = submit(record, None, LATER, require_complete=False)
        assert result.current_approval_step is ApprovalRole.SUPERVISOR
