"""
Employee Repository.

Reads employees from Supabase (primary) and SQLite (local cache).  The
workflow needs them for supervisor resolution and approver display names.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from typing import Optional

from tripflow.database import DatabaseManager
from tripflow.logger import StructuredLogger
from tripflow.models.employee import Employee
from tripflow.repositories.base_repository import BaseRepository

_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "employee_id",
    "email",
    "company_id",
    "department",
    "position",
    "supervisor_id",
    "status",
)


class EmployeeRepository(BaseRepository):
    """Read-only data access for Employee rows."""

    TABLE = "employees"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        """Fetch an employee by primary key. Tries Supabase first, falls back to SQLite."""
        def _supabase() -> Optional[Employee]:
            response = (
                self.supabase.table(self.TABLE)
                .select("*")
                .eq("id", employee_id)
                .maybe_single()
                .execute()
            )
            if response is None or not response.data:
                return None
            return Employee(**response.data)

        def _sqlite() -> Optional[Employee]:
            row = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE} WHERE id = ?", (employee_id,)
            ).fetchone()
            return Employee(**dict(row)) if row else None

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            default_factory=lambda: None,
            operation_name="get_by_id (employees)",
            on_supabase_success=self._cache_to_sqlite,
        )

    def get_names(self, employee_ids: Iterable[str]) -> dict[str, str]:
        """Map each known id in *employee_ids* to the employee's name."""
        ids = sorted({eid for eid in employee_ids if eid})
        if not ids:
            return {}

        def _supabase() -> dict[str, str]:
            response = (
                self.supabase.table(self.TABLE)
                .select("id, name")
                .in_("id", ids)
                .execute()
            )
            return {row["id"]: row["name"] for row in response.data}

        def _sqlite() -> dict[str, str]:
            placeholders = ", ".join("?" for _ in ids)
            rows = self.sqlite.execute(
                f"SELECT id, name FROM {self.TABLE} WHERE id IN ({placeholders})",
                ids,
            ).fetchall()
            return {row["id"]: row["name"] for row in rows}

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            default_factory=dict,
            operation_name="get_names (employees)",
        )

    def _cache_to_sqlite(self, employee: Employee) -> None:
        """Write the employee to the local cache.

        Failures are logged, never raised, so a cache problem cannot mask
        a successful Supabase read.
        """
        try:
            self._upsert_local({col: getattr(employee, col) for col in _COLUMNS})
        except sqlite3.Error as exc:
            self._logger.warning(
                "Failed to cache employee %s to SQLite (non-fatal): %s",
                employee.id,
                exc,
            )
