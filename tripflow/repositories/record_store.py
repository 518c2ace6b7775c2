"""
Workflow Record Store.

The boundary through which the approval engine reads and writes trips
and claims.  A store instance serves one record kind (one table).

Writes are conditional: :meth:`WorkflowRecordStore.compare_and_update`
applies a patch only while the stored row still satisfies a
:class:`~tripflow.models.store_models.StoreGuard`, and raises
:class:`~tripflow.exceptions.Conflict` otherwise.  That closes the
double-approval race between two approvers acting on the same step.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from tripflow.exceptions import Conflict, NotFound
from tripflow.models.enums import RecordKind
from tripflow.models.store_models import RecordFilter, StoreGuard
from tripflow.models.workflow_record import WORKFLOW_COLUMNS, WorkflowRecord
from tripflow.utils.general import JsonSafeType

__all__ = [
    "InMemoryWorkflowRecordStore",
    "WorkflowRecordStore",
    "guard_matches",
    "validate_patch",
]


@runtime_checkable
class WorkflowRecordStore(Protocol):
    """Persistence contract consumed by the approval service."""

    kind: RecordKind

    def get(self, record_id: str) -> WorkflowRecord:
        """Return the record. Raises ``NotFound`` if absent."""
        ...

    def compare_and_update(
        self,
        record_id: str,
        guard: StoreGuard,
        patch: Mapping[str, JsonSafeType],
    ) -> WorkflowRecord:
        """Apply *patch* only while *guard* holds; return the stored result.

        Raises ``NotFound`` if the record is absent and ``Conflict`` if the
        guard no longer holds.
        """
        ...

    def list_by_filter(self, criteria: RecordFilter) -> list[WorkflowRecord]:
        ...

    def insert(self, record: WorkflowRecord) -> WorkflowRecord:
        """Create a record. Raises ``Conflict`` if the id is taken."""
        ...


def validate_patch(patch: Mapping[str, JsonSafeType], guard: StoreGuard) -> None:
    """Reject patches or guards that touch columns outside the workflow set.

    Column names end up in SQL text, so they are checked against the
    fixed allowlist before any statement is built.
    """
    unknown = [col for col in list(patch) + list(guard.null_columns) if col not in WORKFLOW_COLUMNS]
    if unknown:
        raise ValueError(f"Columns not writable by the workflow: {', '.join(unknown)}")


def guard_matches(row: Mapping[str, object], guard: StoreGuard) -> bool:
    """``True`` when a flat stored row still satisfies *guard*."""
    if row.get("status") != guard.status.value:
        return False
    expected_step = guard.current_approval_step.value if guard.current_approval_step else None
    if (row.get("current_approval_step") or None) != expected_step:
        return False
    return all(row.get(col) is None for col in guard.null_columns)


def _matches_filter(record: WorkflowRecord, criteria: RecordFilter) -> bool:
    if criteria.status is not None and record.status is not criteria.status:
        return False
    if (
        criteria.current_approval_step is not None
        and record.current_approval_step is not criteria.current_approval_step
    ):
        return False
    if criteria.employee_id is not None and record.employee_id != criteria.employee_id:
        return False
    if criteria.company_id is not None and record.company_id != criteria.company_id:
        return False
    if criteria.number_search:
        needle = criteria.number_search.lower()
        if needle not in (record.number or "").lower():
            return False
    return True


class InMemoryWorkflowRecordStore:
    """Dict-backed store holding flat rows, for tests and local tooling.

    A single lock makes every compare-and-update atomic, matching the
    contract of the database-backed stores.
    """

    def __init__(self, kind: RecordKind) -> None:
        self.kind = kind
        self._rows: dict[str, dict[str, JsonSafeType]] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> WorkflowRecord:
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFound(f"{self.kind.value} {record_id} not found.")
            return WorkflowRecord.from_row(self.kind, row)

    def compare_and_update(
        self,
        record_id: str,
        guard: StoreGuard,
        patch: Mapping[str, JsonSafeType],
    ) -> WorkflowRecord:
        validate_patch(patch, guard)
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise NotFound(f"{self.kind.value} {record_id} not found.")
            if not guard_matches(row, guard):
                raise Conflict(
                    f"{self.kind.value} {record_id} was changed by someone else; "
                    f"refresh and try again."
                )
            row.update(patch)
            row["updated_at"] = datetime.now(timezone.utc).isoformat()
            return WorkflowRecord.from_row(self.kind, row)

    def list_by_filter(self, criteria: RecordFilter) -> list[WorkflowRecord]:
        with self._lock:
            records = [WorkflowRecord.from_row(self.kind, row) for row in self._rows.values()]
        matched = [record for record in records if _matches_filter(record, criteria)]
        return matched[: criteria.limit]

    def insert(self, record: WorkflowRecord) -> WorkflowRecord:
        if record.kind is not self.kind:
            raise ValueError(f"Cannot store a {record.kind.value} in the {self.kind.value} store.")
        with self._lock:
            if record.id in self._rows:
                raise Conflict(f"{self.kind.value} {record.id} already exists.")
            row = record.to_row()
            # Claims keep their parent trip's cash advance alongside the row.
            if record.kind is RecordKind.TRIP_CLAIM and record.cash_advance is not None:
                row["trip"] = {"cash_advance": str(record.cash_advance)}
            self._rows[record.id] = row
            return WorkflowRecord.from_row(self.kind, row)
