"""
Workflow Audit Trail.

Every state change (submit, approve, reject) becomes one validated
:class:`AuditEvent`: logged as a JSON line and, when a SQLite connection
is supplied, appended to the local ``audit_log`` table.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional, Union

from pydantic import BaseModel, Field

from tripflow.logger import StructuredLogger

__all__ = [
    "AuditAction",
    "AuditEvent",
    "log_audit_event",
    "persist_audit_event",
    "read_audit_trail",
]

# Details stay flat; anything nested belongs in its own column.
DetailValue = Union[str, int, float, bool, None]


class AuditAction(StrEnum):
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditEvent(BaseModel):
    """One row of the audit trail."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: AuditAction
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> AuditEvent:
    """Emit the audit line for a state change and optionally persist it.

    Args:
        logger: Destination for the JSON line.
        action: The transition that happened.
        entity_type: Record kind (``"business_trip"`` or ``"trip_claim"``).
        entity_id: Primary key of the record.
        user_id: Employee id of the actor.
        details: Step, resulting status, rejection reason and similar.
        conn: When given, the event is also written to ``audit_log``.
            A write failure is logged and does not undo the transition.
    """
    event = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info(
        "AUDIT: %s",
        event.model_dump_json(),
        extra={"record_id": entity_id, "record_kind": entity_type},
    )

    if conn is not None:
        try:
            persist_audit_event(conn=conn, event=event)
        except sqlite3.Error as db_err:
            logger.warning("Failed to persist audit event for %s: %s", entity_id, db_err)
    return event


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    conn.execute(
        """
        INSERT INTO audit_log (timestamp, action, entity_type, entity_id, user_id, details)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            event.timestamp.isoformat(),
            event.action.value,
            event.entity_type,
            event.entity_id,
            event.user_id,
            json.dumps(event.details),
        ),
    )
    conn.commit()


def read_audit_trail(conn: sqlite3.Connection, entity_id: str) -> list[AuditEvent]:
    """Events recorded locally for one record, oldest first."""
    rows = conn.execute(
        """
        SELECT timestamp, action, entity_type, entity_id, user_id, details
        FROM audit_log WHERE entity_id = ? ORDER BY id
        """,
        (entity_id,),
    ).fetchall()
    return [
        AuditEvent(
            timestamp=row["timestamp"],
            action=row["action"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            user_id=row["user_id"],
            details=json.loads(row["details"]) if row["details"] else {},
        )
        for row in rows
    ]
