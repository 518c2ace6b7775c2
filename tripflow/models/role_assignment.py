"""
Role Assignment Model.

Pydantic model for the ``line_approvals`` table: one row per company
naming the employee that holds each non-supervisor approver role.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from tripflow.models.enums import ApprovalRole


class RoleAssignment(BaseModel):
    """Who holds each approver role for a company.

    The table also carries a ``supervisor_id`` column, but the workflow
    never reads it: the supervisor step is resolved per employee.
    """

    id: Optional[str] = None
    company_id: str
    staff_ga_id: Optional[str] = None
    spv_ga_id: Optional[str] = None
    hr_manager_id: Optional[str] = None
    bod_id: Optional[str] = None
    staff_fa_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    def assignee_for(self, role: ApprovalRole) -> Optional[str]:
        """Return the employee id assigned to *role*, or ``None``.

        Always ``None`` for :attr:`ApprovalRole.SUPERVISOR`.
        """
        if role is ApprovalRole.SUPERVISOR:
            return None
        return getattr(self, f"{role.value}_id")

    def unassigned_roles(self) -> list[ApprovalRole]:
        """Non-supervisor roles with nobody assigned, in chain order."""
        return [
            role
            for role in ApprovalRole
            if role is not ApprovalRole.SUPERVISOR and not self.assignee_for(role)
        ]
