"""
Tests for the workflow record model at the storage boundary.

Tests cover:
- from_row: flat approval columns, embedded trip and employee objects
- to_row / workflow_patch: JSON-safe flat rows, only changed workflow columns
- RoleAssignment lookups
"""

from decimal import Decimal

from tripflow.models import ApprovalRole, RecordKind, WorkflowRecord, WorkflowStatus
from tripflow.models.workflow_record import WORKFLOW_COLUMNS, approval_columns

from tests.factories import APPROVERS, COMPANY, SUBJECT, make_assignment, make_record


def trip_row(**overrides):
    row = {
        "id": "trip-001",
        "trip_number": "PD/2026/001",
        "employee_id": SUBJECT,
        "company_id": COMPANY,
        "cash_advance": 250000.0,
        "status": "Submitted",
        "current_approval_step": "staff_ga",
        "submitted_at": "2026-03-10T09:00:00+00:00",
        "supervisor_approved_at": "2026-03-10T10:00:00+00:00",
        "supervisor_approved_by": APPROVERS[ApprovalRole.SUPERVISOR],
        "staff_ga_approved_at": None,
        "staff_ga_approved_by": None,
    }
    row.update(overrides)
    return row


class TestFromRow:
    def test_flat_columns(self):
        record = WorkflowRecord.from_row(RecordKind.BUSINESS_TRIP, trip_row())

        assert record.number == "PD/2026/001"
        assert record.status is WorkflowStatus.SUBMITTED
        assert record.current_approval_step is ApprovalRole.STAFF_GA
        assert record.cash_advance == Decimal("250000")
        assert record.approval(ApprovalRole.SUPERVISOR).approved_by == APPROVERS[ApprovalRole.SUPERVISOR]
        assert record.approval(ApprovalRole.STAFF_GA).approved_at is None
        assert set(record.approvals) == {ApprovalRole.SUPERVISOR}

    def test_claim_reads_embedded_trip(self):
        row = {
            "id": "claim-001",
            "claim_number": "CL/2026/001",
            "employee_id": SUBJECT,
            "trip_id": "trip-001",
            "total_amount": 900000,
            "status": "Draft",
            "trip": {"cash_advance": 0},
            "employees": {"id": SUBJECT, "name": "Budi", "company_id": COMPANY, "supervisor_id": "x"},
        }
        record = WorkflowRecord.from_row(RecordKind.TRIP_CLAIM, row)

        assert record.cash_advance == Decimal("0")
        assert record.company_id is None
        assert record.organizational_unit == COMPANY
        assert record.employee.supervisor_id == "x"

    def test_empty_strings_read_as_null(self):
        record = WorkflowRecord.from_row(
            RecordKind.BUSINESS_TRIP,
            trip_row(current_approval_step="", rejection_reason=""),
        )
        assert record.current_approval_step is None
        assert record.rejection_reason is None


class TestToRow:
    def test_round_trip_through_row(self):
        record = make_record(step=ApprovalRole.BOD)
        again = WorkflowRecord.from_row(RecordKind.BUSINESS_TRIP, record.to_row())
        assert again.approvals == record.approvals
        assert again.current_approval_step is ApprovalRole.BOD
        assert again.cash_advance == record.cash_advance

    def test_row_is_json_safe(self):
        row = make_record().to_row()
        assert row["status"] == "Submitted"
        assert row["current_approval_step"] == "supervisor"
        assert isinstance(row["cash_advance"], float)
        assert "employee" not in row

    def test_claim_row_columns(self):
        row = make_record(kind=RecordKind.TRIP_CLAIM, id="claim-001").to_row()
        assert row["claim_number"] == "CL/2026/001"
        assert "trip_number" not in row
        assert "cash_advance" not in row

    def test_patch_is_empty_without_changes(self):
        record = make_record()
        assert record.workflow_patch(record) == {}

    def test_workflow_columns_cover_every_role(self):
        for role in ApprovalRole:
            assert set(approval_columns(role)) <= set(WORKFLOW_COLUMNS)


class TestRoleAssignment:
    def test_assignee_per_role(self):
        assignment = make_assignment()
        assert assignment.assignee_for(ApprovalRole.BOD) == APPROVERS[ApprovalRole.BOD]
        assert assignment.assignee_for(ApprovalRole.SUPERVISOR) is None

    def test_unassigned_roles(self):
        assignment = make_assignment(spv_ga_id=None, staff_fa_id="")
        assert assignment.unassigned_roles() == [ApprovalRole.SPV_GA, ApprovalRole.STAFF_FA]
