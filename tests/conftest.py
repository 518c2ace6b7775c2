"""Shared pytest fixtures for tripflow tests."""

from __future__ import annotations

import pytest

from tripflow.database import DatabaseManager
from tripflow.logger import StructuredLogger
from tripflow.models import RecordKind
from tripflow.repositories import (
    EmployeeRepository,
    InMemoryWorkflowRecordStore,
    LineApprovalRepository,
    SqliteWorkflowRecordStore,
)
from tripflow.schema import initialize_schema
from tripflow.services import ApprovalWorkflowService

from tests.factories import COMPANY, NAMES, NOW, SUBJECT, SUPERVISOR, make_assignment


@pytest.fixture(scope="session")
def logger(tmp_path_factory: pytest.TempPathFactory) -> StructuredLogger:
    """JSON logger writing to a throwaway file."""
    log_file = tmp_path_factory.mktemp("logs") / "tripflow-test.log"
    return StructuredLogger(name="tripflow.tests", log_file=str(log_file))


@pytest.fixture
def db(logger: StructuredLogger):
    """Local-mode DatabaseManager over an in-memory SQLite database."""
    manager = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=":memory:",
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def seeded_db(db: DatabaseManager) -> DatabaseManager:
    """Employees and the company line approval row."""
    for employee_id, name in NAMES.items():
        supervisor_id = SUPERVISOR if employee_id == SUBJECT else None
        db.sqlite.execute(
            "INSERT INTO employees (id, name, company_id, supervisor_id) VALUES (?, ?, ?, ?)",
            (employee_id, name, COMPANY, supervisor_id),
        )
    assignment = make_assignment()
    db.sqlite.execute(
        """
        INSERT INTO line_approvals
            (id, company_id, staff_ga_id, spv_ga_id, hr_manager_id, bod_id, staff_fa_id)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            assignment.id,
            assignment.company_id,
            assignment.staff_ga_id,
            assignment.spv_ga_id,
            assignment.hr_manager_id,
            assignment.bod_id,
            assignment.staff_fa_id,
        ),
    )
    db.sqlite.commit()
    return db


@pytest.fixture
def sqlite_stores(seeded_db: DatabaseManager, logger: StructuredLogger):
    return {
        kind: SqliteWorkflowRecordStore(db=seeded_db, kind=kind, logger=logger)
        for kind in RecordKind
    }


@pytest.fixture
def memory_stores():
    return {kind: InMemoryWorkflowRecordStore(kind) for kind in RecordKind}


@pytest.fixture
def service(seeded_db: DatabaseManager, sqlite_stores, logger: StructuredLogger) -> ApprovalWorkflowService:
    """Approval service over the local SQLite store with a pinned clock."""
    return ApprovalWorkflowService(
        stores=sqlite_stores,
        employee_repo=EmployeeRepository(db=seeded_db, logger=logger),
        line_approval_repo=LineApprovalRepository(db=seeded_db, logger=logger),
        logger=logger,
        clock=lambda: NOW,
        audit_conn=seeded_db.sqlite,
    )
