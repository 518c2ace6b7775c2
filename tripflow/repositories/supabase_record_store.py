"""
Supabase Workflow Record Store.

Hosted store for business trips and trip claims.  Reads go to Supabase
first and fall back to the local SQLite copy; every successful read
refreshes that copy.

Writes are conditional PostgREST updates: the guard is expressed as
``eq`` / ``is_`` filters on the same request, so Postgres applies the
check and the write atomically.  An empty ``data`` list in the response
means no row matched.  Writes never fall back to SQLite.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Optional

from tripflow.database import DatabaseManager
from tripflow.exceptions import Conflict, NotFound
from tripflow.logger import StructuredLogger
from tripflow.models.enums import RecordKind
from tripflow.models.store_models import RecordFilter, StoreGuard
from tripflow.models.workflow_record import WorkflowRecord
from tripflow.repositories.base_repository import BaseRepository
from tripflow.repositories.record_store import validate_patch
from tripflow.repositories.sqlite_record_store import TABLES, SqliteWorkflowRecordStore
from tripflow.utils.general import JsonSafeType
from tripflow.utils.string_helpers import sanitize_postgrest_value

_SELECT: dict[RecordKind, str] = {
    RecordKind.BUSINESS_TRIP: "*",
    RecordKind.TRIP_CLAIM: "*, trip:business_trips(cash_advance)",
}


class SupabaseWorkflowRecordStore(BaseRepository):
    """Record store over the hosted ``business_trips`` / ``trip_claims`` tables."""

    def __init__(
        self,
        db: DatabaseManager,
        kind: RecordKind,
        logger: StructuredLogger,
        local: Optional[SqliteWorkflowRecordStore] = None,
    ) -> None:
        super().__init__(db, logger)
        self.kind = kind
        self.TABLE = TABLES[kind]
        self._local = local or SqliteWorkflowRecordStore(db, kind, logger)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> WorkflowRecord:
        def _supabase() -> Optional[WorkflowRecord]:
            response = (
                self.supabase.table(self.TABLE)
                .select(_SELECT[self.kind])
                .eq("id", record_id)
                .maybe_single()
                .execute()
            )
            if response is None or not response.data:
                return None
            self._cache_row(response.data)
            return WorkflowRecord.from_row(self.kind, response.data)

        record = self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=lambda: self._local.find(record_id),
            default_factory=lambda: None,
            operation_name=f"get ({self.TABLE})",
        )
        if record is None:
            raise NotFound(f"{self.kind.value} {record_id} not found.")
        return record

    def list_by_filter(self, criteria: RecordFilter) -> list[WorkflowRecord]:
        def _supabase() -> list[WorkflowRecord]:
            select = _SELECT[self.kind]
            if criteria.company_id is not None and self.kind is RecordKind.TRIP_CLAIM:
                select = f"{select}, employees!inner(company_id)"
            query = self.supabase.table(self.TABLE).select(select)

            if criteria.status is not None:
                query = query.eq("status", criteria.status.value)
            if criteria.current_approval_step is not None:
                query = query.eq("current_approval_step", criteria.current_approval_step.value)
            if criteria.employee_id is not None:
                query = query.eq("employee_id", criteria.employee_id)
            if criteria.company_id is not None:
                if self.kind is RecordKind.BUSINESS_TRIP:
                    query = query.eq("company_id", criteria.company_id)
                else:
                    query = query.eq("employees.company_id", criteria.company_id)
            if criteria.number_search:
                safe_search = sanitize_postgrest_value(criteria.number_search)
                query = query.ilike(self.kind.number_field, f"%{safe_search}%")

            response = query.order("created_at", desc=True).limit(criteria.limit).execute()
            return [WorkflowRecord.from_row(self.kind, row) for row in response.data]

        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=lambda: self._local.list_by_filter(criteria),
            default_factory=list,
            operation_name=f"list_by_filter ({self.TABLE})",
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: WorkflowRecord) -> WorkflowRecord:
        if record.kind is not self.kind:
            raise ValueError(f"Cannot store a {record.kind.value} in {self.TABLE}.")
        row = {key: value for key, value in record.to_row().items() if value is not None}
        try:
            response = self.supabase.table(self.TABLE).insert(row).execute()
        except Exception as exc:
            # PostgREST reports unique violations with Postgres code 23505.
            if getattr(exc, "code", None) == "23505":
                raise Conflict(f"{self.kind.value} {record.id} already exists.") from exc
            self._logger.error(
                "Failed to insert %s %s into Supabase: %s", self.TABLE, record.id, exc,
            )
            raise
        self._cache_row(response.data[0])
        return self.get(record.id)

    def compare_and_update(
        self,
        record_id: str,
        guard: StoreGuard,
        patch: Mapping[str, JsonSafeType],
    ) -> WorkflowRecord:
        validate_patch(patch, guard)
        values = {**patch, "updated_at": datetime.now(timezone.utc).isoformat()}

        try:
            query = (
                self.supabase.table(self.TABLE)
                .update(values)
                .eq("id", record_id)
                .eq("status", guard.status.value)
            )
            if guard.current_approval_step is None:
                query = query.is_("current_approval_step", "null")
            else:
                query = query.eq("current_approval_step", guard.current_approval_step.value)
            for col in guard.null_columns:
                query = query.is_(col, "null")
            response = query.execute()
        except Exception as exc:
            self._logger.error(
                "Conditional update of %s %s failed: %s", self.TABLE, record_id, exc,
            )
            raise

        if not response.data:
            if not self._exists(record_id):
                raise NotFound(f"{self.kind.value} {record_id} not found.")
            raise Conflict(
                f"{self.kind.value} {record_id} was changed by someone else; "
                f"refresh and try again."
            )

        self._cache_row(response.data[0])
        return self.get(record_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _exists(self, record_id: str) -> bool:
        response = (
            self.supabase.table(self.TABLE)
            .select("id")
            .eq("id", record_id)
            .maybe_single()
            .execute()
        )
        return response is not None and bool(response.data)

    def _cache_row(self, row: Mapping[str, object]) -> None:
        """Refresh the local copy.  Failures are logged, never raised."""
        try:
            self._local.cache(row)
        except Exception as exc:
            self._logger.warning(
                "Failed to cache %s %s to SQLite (non-fatal): %s",
                self.TABLE,
                row.get("id"),
                exc,
            )
