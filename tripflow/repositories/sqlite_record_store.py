"""
SQLite Workflow Record Store.

Local-mode store, and the read cache behind the Supabase store.  The
conditional update is a single ``UPDATE ... WHERE`` whose predicate
encodes the guard, so the check and the write cannot be separated by
another writer.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Optional

from tripflow.database import DatabaseManager
from tripflow.exceptions import Conflict, NotFound
from tripflow.logger import StructuredLogger
from tripflow.models.enums import RecordKind
from tripflow.models.store_models import RecordFilter, StoreGuard
from tripflow.models.workflow_record import WorkflowRecord, record_columns
from tripflow.repositories.base_repository import BaseRepository
from tripflow.repositories.record_store import validate_patch
from tripflow.utils.general import JsonSafeType, convert_to_json_safe

TABLES: dict[RecordKind, str] = {
    RecordKind.BUSINESS_TRIP: "business_trips",
    RecordKind.TRIP_CLAIM: "trip_claims",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteWorkflowRecordStore(BaseRepository):
    """Record store over the local ``business_trips`` / ``trip_claims`` tables."""

    def __init__(
        self,
        db: DatabaseManager,
        kind: RecordKind,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(db, logger)
        self.kind = kind
        self.TABLE = TABLES[kind]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _select_sql(self) -> str:
        # Claims are gated by the parent trip's cash advance: the amount cached
        # with the claim, else the locally stored trip.
        if self.kind is RecordKind.TRIP_CLAIM:
            return (
                f"SELECT r.*, COALESCE(r.trip_cash_advance, t.cash_advance) AS cash_advance "
                f"FROM {self.TABLE} r "
                f"LEFT JOIN {TABLES[RecordKind.BUSINESS_TRIP]} t ON t.id = r.trip_id"
            )
        return f"SELECT r.* FROM {self.TABLE} r"

    def find(self, record_id: str) -> Optional[WorkflowRecord]:
        """Return the record, or ``None`` if it is not stored locally."""
        row = self.sqlite.execute(
            f"{self._select_sql()} WHERE r.id = ?", (record_id,)
        ).fetchone()
        return WorkflowRecord.from_row(self.kind, dict(row)) if row else None

    def get(self, record_id: str) -> WorkflowRecord:
        record = self.find(record_id)
        if record is None:
            raise NotFound(f"{self.kind.value} {record_id} not found.")
        return record

    def list_by_filter(self, criteria: RecordFilter) -> list[WorkflowRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if criteria.status is not None:
            clauses.append("r.status = ?")
            params.append(criteria.status.value)
        if criteria.current_approval_step is not None:
            clauses.append("r.current_approval_step = ?")
            params.append(criteria.current_approval_step.value)
        if criteria.employee_id is not None:
            clauses.append("r.employee_id = ?")
            params.append(criteria.employee_id)
        if criteria.company_id is not None:
            if self.kind is RecordKind.BUSINESS_TRIP:
                clauses.append("r.company_id = ?")
            else:
                clauses.append(
                    "r.employee_id IN (SELECT id FROM employees WHERE company_id = ?)"
                )
            params.append(criteria.company_id)
        if criteria.number_search:
            clauses.append(f"r.{self.kind.number_field} LIKE ?")
            params.append(f"%{criteria.number_search}%")

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.sqlite.execute(
            f"{self._select_sql()}{where} ORDER BY r.created_at DESC LIMIT ?",
            (*params, criteria.limit),
        ).fetchall()
        return [WorkflowRecord.from_row(self.kind, dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: WorkflowRecord) -> WorkflowRecord:
        if record.kind is not self.kind:
            raise ValueError(f"Cannot store a {record.kind.value} in {self.TABLE}.")
        row = self._stored_columns(record.to_row())
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    f"INSERT INTO {self.TABLE} ({columns}) VALUES ({placeholders})",
                    tuple(row.values()),
                )
        except sqlite3.IntegrityError as exc:
            raise Conflict(f"{self.kind.value} {record.id} already exists.") from exc
        return self.get(record.id)

    def cache(self, row: Mapping[str, object]) -> None:
        """Upsert a row read from the hosted store into the local copy.

        A claim row carrying the embedded parent trip keeps its cash
        advance in ``trip_cash_advance``; rows without the embed (update
        responses) leave the cached amount untouched.
        """
        stored = self._stored_columns(row)
        if self.kind is RecordKind.TRIP_CLAIM:
            trip = row.get("trip") or row.get("business_trips")
            if isinstance(trip, Mapping):
                stored["trip_cash_advance"] = convert_to_json_safe(trip.get("cash_advance"))
        self._upsert_local(stored)

    def compare_and_update(
        self,
        record_id: str,
        guard: StoreGuard,
        patch: Mapping[str, JsonSafeType],
    ) -> WorkflowRecord:
        validate_patch(patch, guard)
        values = {**patch, "updated_at": _utc_now_iso()}
        assignments = ", ".join(f"{col} = ?" for col in values)

        predicates = ["id = ?", "status = ?"]
        params: list[object] = [*values.values(), record_id, guard.status.value]
        if guard.current_approval_step is None:
            predicates.append("current_approval_step IS NULL")
        else:
            predicates.append("current_approval_step = ?")
            params.append(guard.current_approval_step.value)
        predicates.extend(f"{col} IS NULL" for col in guard.null_columns)

        with self._db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE {self.TABLE} SET {assignments} WHERE {' AND '.join(predicates)}",
                params,
            )
            updated = cursor.rowcount

        if updated == 0:
            if self.find(record_id) is None:
                raise NotFound(f"{self.kind.value} {record_id} not found.")
            raise Conflict(
                f"{self.kind.value} {record_id} was changed by someone else; "
                f"refresh and try again."
            )

        self._logger.debug(
            "Conditional update applied to %s %s: %s",
            self.TABLE,
            record_id,
            sorted(patch),
        )
        return self.get(record_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stored_columns(self, row: Mapping[str, object]) -> dict[str, object]:
        """Keep only this table's columns; let SQLite default unset timestamps."""
        flat: dict[str, object] = {}
        for col in record_columns(self.kind):
            if col not in row:
                continue
            value = row[col]
            if col in ("created_at", "updated_at") and value is None:
                continue
            flat[col] = value
        return flat
