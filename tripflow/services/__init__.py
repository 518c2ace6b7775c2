"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on the pure
engine in :mod:`tripflow.workflow` for every decision.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer can consume without
knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from tripflow.config import AppConfig
from tripflow.database import DatabaseManager
from tripflow.logger import get_logger
from tripflow.models.enums import RecordKind
from tripflow.repositories.employee_repository import EmployeeRepository
from tripflow.repositories.line_approval_repository import LineApprovalRepository
from tripflow.repositories.record_store import WorkflowRecordStore
from tripflow.repositories.sqlite_record_store import SqliteWorkflowRecordStore
from tripflow.repositories.supabase_record_store import SupabaseWorkflowRecordStore
from tripflow.services.approval_service import ApprovalWorkflowService
from tripflow.services.base_service import BaseService

__all__ = [
    "ApprovalWorkflowService",
    "BaseService",
    "ServiceContainer",
    "create_services",
]


class ServiceContainer(TypedDict):
    """Typed container for all application services and shared repositories."""

    employee_repository: EmployeeRepository
    line_approval_repository: LineApprovalRepository
    record_stores: dict[RecordKind, WorkflowRecordStore]
    approval_service: ApprovalWorkflowService


def create_services(db: DatabaseManager, config: AppConfig) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  Record
    stores are Supabase-backed when the hosted project is configured and
    SQLite-backed otherwise.

    Args:
        db: Initialised DatabaseManager with the SQLite schema in place.
        config: Application configuration.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    employee_repo = EmployeeRepository(db=db, logger=logger)
    line_approval_repo = LineApprovalRepository(db=db, logger=logger)

    record_stores: dict[RecordKind, WorkflowRecordStore] = {}
    for kind in RecordKind:
        local = SqliteWorkflowRecordStore(db=db, kind=kind, logger=logger)
        if db.is_online:
            record_stores[kind] = SupabaseWorkflowRecordStore(
                db=db, kind=kind, logger=logger, local=local,
            )
        else:
            record_stores[kind] = local

    # ------------------------------------------------------------------
    # 2. Services
    # ------------------------------------------------------------------
    approval_service = ApprovalWorkflowService(
        stores=record_stores,
        employee_repo=employee_repo,
        line_approval_repo=line_approval_repo,
        logger=get_logger("workflow"),
        require_complete_line_approval=config.REQUIRE_COMPLETE_LINE_APPROVAL,
        audit_conn=db.sqlite,
    )

    logger.info(
        "Services wired (%s mode).", "Supabase" if db.is_online else "local SQLite",
    )
    return ServiceContainer(
        employee_repository=employee_repo,
        line_approval_repository=line_approval_repo,
        record_stores=record_stores,
        approval_service=approval_service,
    )
