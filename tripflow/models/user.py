"""
User Model.

The acting user as supplied by the identity provider.  The workflow only
compares ``employee_id`` for equality; its format is opaque.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """An authenticated application user linked to an employee record."""

    id: str  # Supabase auth UUID
    email: str = ""
    full_name: str = ""
    employee_id: Optional[str] = None

    model_config = {"from_attributes": True}
