"""
Repository Layer Package.

Data access over Supabase (hosted) and SQLite (local store and cache).
Services reach records only through a
:class:`~tripflow.repositories.record_store.WorkflowRecordStore`; they
never touch ``db.supabase`` or ``db.sqlite`` directly.
"""

from tripflow.repositories.base_repository import BaseRepository
from tripflow.repositories.employee_repository import EmployeeRepository
from tripflow.repositories.line_approval_repository import LineApprovalRepository
from tripflow.repositories.record_store import (
    InMemoryWorkflowRecordStore,
    WorkflowRecordStore,
)
from tripflow.repositories.sqlite_record_store import SqliteWorkflowRecordStore
from tripflow.repositories.supabase_record_store import SupabaseWorkflowRecordStore

__all__ = [
    "BaseRepository",
    "EmployeeRepository",
    "InMemoryWorkflowRecordStore",
    "LineApprovalRepository",
    "SqliteWorkflowRecordStore",
    "SupabaseWorkflowRecordStore",
    "WorkflowRecordStore",
]
