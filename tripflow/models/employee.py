"""
Employee Model.

Pydantic model for rows of the ``employees`` table.  Only the fields the
approval workflow reads are declared; extra columns are ignored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Employee(BaseModel):
    """An employee, the subject of trips and claims and possibly an approver.

    ``supervisor_id`` points at another employee and is what decides who
    may act on the ``supervisor`` step of this employee's records.
    """

    id: str
    name: str = ""
    employee_id: Optional[str] = None  # HR staff number shown in the UI
    email: Optional[str] = None
    company_id: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    supervisor_id: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}
