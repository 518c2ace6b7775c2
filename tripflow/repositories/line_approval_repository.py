"""
Line Approval Repository.

Reads the per-company approver assignment (``line_approvals``) from
Supabase (primary) and SQLite (local cache).  Read-only: assignments are
maintained by administrators outside the workflow.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from tripflow.database import DatabaseManager
from tripflow.logger import StructuredLogger
from tripflow.models.role_assignment import RoleAssignment
from tripflow.repositories.base_repository import BaseRepository

_COLUMNS: tuple[str, ...] = (
    "id",
    "company_id",
    "staff_ga_id",
    "spv_ga_id",
    "hr_manager_id",
    "bod_id",
    "staff_fa_id",
)


class LineApprovalRepository(BaseRepository):
    """Data access for RoleAssignment rows, one per company."""

    TABLE = "line_approvals"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_by_company(self, company_id: Optional[str]) -> Optional[RoleAssignment]:
        """Return the company's role assignment, or ``None`` if it has none."""
        if not company_id:
            return None

        def _supabase() -> Optional[RoleAssignment]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("company_id", company_id)
                .maybe_single()
                .execute()
            )
            if response is None or not response.data:
                return None
            return RoleAssignment(**response.data)

        def _sqlite() -> Optional[RoleAssignment]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE company_id = ?", (company_id,)
            ).fetchone()
            return RoleAssignment(**dict(row)) if row else None

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            default_factory=lambda: None,
            operation_name="get_by_company (line_approvals)",
            on_supabase_success=self._cache_to_sqlite,
        )

    def _cache_to_sqlite(self, assignment: RoleAssignment) -> None:
        """Write the assignment to the local cache (non-fatal on failure)."""
        row = {col: getattr(assignment, col) for col in _COLUMNS}
        row["id"] = assignment.id or assignment.company_id
        try:
            self._upsert_local(row, conflict_column="company_id")
        except sqlite3.Error as exc:
            self._logger.warning(
                "Failed to cache line approval for company %s (non-fatal): %s",
                assignment.company_id,
                exc,
            )
