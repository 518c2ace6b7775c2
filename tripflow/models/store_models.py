"""
Record Store Query Models.

Inputs accepted by :class:`~tripflow.repositories.record_store.WorkflowRecordStore`
implementations.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from tripflow.models.enums import ApprovalRole, WorkflowStatus

__all__ = ["RecordFilter", "StoreGuard"]


class StoreGuard(BaseModel):
    """Optimistic-concurrency precondition for a conditional update.

    The update is applied only while the stored row still has
    ``status`` and ``current_approval_step`` equal to the values the
    caller read, and every column in ``null_columns`` is still NULL.
    """

    status: WorkflowStatus
    current_approval_step: Optional[ApprovalRole] = None
    null_columns: tuple[str, ...] = ()

    model_config = {"frozen": True}


class RecordFilter(BaseModel):
    """Criteria for ``list_by_filter``.  Unset fields do not filter."""

    status: Optional[WorkflowStatus] = None
    current_approval_step: Optional[ApprovalRole] = None
    employee_id: Optional[str] = None
    company_id: Optional[str] = None
    number_search: Optional[str] = None
    limit: int = Field(default=500, ge=1, le=5000)
