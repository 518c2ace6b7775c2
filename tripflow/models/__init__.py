"""
Data Models Package.

Re-exports all Pydantic models:
    from tripflow.models import WorkflowRecord, Employee, RoleAssignment, User
    from tripflow.models import ApprovalRole, WorkflowStatus, RecordKind
"""

from tripflow.models.employee import Employee
from tripflow.models.enums import ApprovalRole, RecordKind, TimelineAction, WorkflowStatus
from tripflow.models.role_assignment import RoleAssignment
from tripflow.models.service_models import (
    LatestApproval,
    RecordStatusView,
    ServiceResult,
    StatusLabel,
    TimelineEntry,
)
from tripflow.models.store_models import RecordFilter, StoreGuard
from tripflow.models.user import User
from tripflow.models.workflow_record import StepApproval, WorkflowRecord

__all__ = [
    "ApprovalRole",
    "Employee",
    "LatestApproval",
    "RecordFilter",
    "RecordKind",
    "RecordStatusView",
    "RoleAssignment",
    "ServiceResult",
    "StatusLabel",
    "StepApproval",
    "StoreGuard",
    "TimelineAction",
    "TimelineEntry",
    "User",
    "WorkflowRecord",
    "WorkflowStatus",
]
