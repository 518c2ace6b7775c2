"""
Tests for the authorization resolver.

Tests cover:
- supervisor step resolved from the subject employee's supervisor_id
- other steps resolved from the company's line approval row
- missing data (user, employee link, assignment, supervisor) means "no"
- finished steps and terminal records are never actionable
"""

import pytest

from tripflow.models import ApprovalRole, StepApproval, WorkflowStatus
from tripflow.workflow import can_act, expected_actor

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


class TestSupervisorStep:
    def test_subjects_supervisor_may_act(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        assert can_act(record, make_user(SUPERVISOR), make_assignment())

    def test_other_employee_may_not(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        assert not can_act(record, approver(ApprovalRole.STAFF_GA), make_assignment())

    def test_assignment_not_needed(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        assert can_act(record, make_user(SUPERVISOR), None)

    def test_missing_supervisor_blocks_everyone(self):
        record = make_record(employee=make_employee(supervisor_id=None))
        assert expected_actor(record, make_assignment()) is None
        assert not can_act(record, make_user(SUPERVISOR), make_assignment())

    def test_unhydrated_employee_blocks_everyone(self):
        record = make_record(with_employee=False)
        assert not can_act(record, make_user(SUPERVISOR), make_assignment())


class TestAssignedSteps:
    @pytest.mark.parametrize(
        "role",
        [
            ApprovalRole.STAFF_GA,
            ApprovalRole.SPV_GA,
            ApprovalRole.HR_MANAGER,
            ApprovalRole.BOD,
            ApprovalRole.STAFF_FA,
        ],
    )
    def test_assignee_may_act(self, role):
        record = make_record(step=role)
        assert expected_actor(record, make_assignment()) == APPROVERS[role]
        assert can_act(record, approver(role), make_assignment())

    def test_supervisor_cannot_act_for_staff_ga(self):
        record = make_record(step=ApprovalRole.STAFF_GA)
        assert not can_act(record, make_user(SUPERVISOR), make_assignment())

    def test_missing_assignment_means_no(self):
        record = make_record(step=ApprovalRole.BOD)
        assert not can_act(record, approver(ApprovalRole.BOD), None)

    def test_unassigned_role_means_no(self):
        record = make_record(step=ApprovalRole.BOD)
        assignment = make_assignment(bod_id=None)
        assert not can_act(record, approver(ApprovalRole.BOD), assignment)


class TestNotActionable:
    def test_user_without_employee_link(self):
        record = make_record(step=ApprovalRole.SUPERVISOR)
        assert not can_act(record, make_user(None), make_assignment())

    def test_no_user(self):
        assert not can_act(make_record(), None, make_assignment())

    def test_step_already_approved(self):
        approvals = {
            ApprovalRole.SUPERVISOR: StepApproval(approved_at=NOW, approved_by=SUPERVISOR),
        }
        record = make_record(step=ApprovalRole.SUPERVISOR, approvals=approvals)
        assert not can_act(record, make_user(SUPERVISOR), make_assignment())

    def test_no_current_step(self):
        record = make_record(status=WorkflowStatus.DRAFT, step=None)
        assert not can_act(record, make_user(SUPERVISOR), make_assignment())

    @pytest.mark.parametrize(
        "status",
        [
            WorkflowStatus.APPROVED,
            WorkflowStatus.REJECTED,
            WorkflowStatus.COMPLETED,
            WorkflowStatus.PAID,
        ],
    )
    def test_terminal_record_with_step_left_set(self, status):
        # A rejected record keeps its step; it must still be final.
        record = make_record(status=status, step=ApprovalRole.STAFF_GA, approvals={})
        assert not can_act(record, approver(ApprovalRole.STAFF_GA), make_assignment())
