"""
Centralized SQLite Schema Initialization.

Defines the canonical schema for the tripflow local database and provides
a single entry-point -- :func:`initialize_schema` -- that creates all
required tables idempotently.  A single-row ``schema_version`` table
records the applied version.  Fresh databases get every table at once;
existing ones only run the migrations registered in :data:`_MIGRATIONS`.

The record tables mirror the hosted ``business_trips`` / ``trip_claims``
tables column for column (flat ``<role>_approved_at`` / ``_approved_by``
pairs), so rows move between the two stores unchanged.  ``trip_claims``
adds ``trip_cash_advance``: the parent trip's cash advance as last read
from the hosted store, used when the trip itself is not cached locally.

Usage::

    import sqlite3
    from tripflow.logger import StructuredLogger
    from tripflow.schema import initialize_schema

    conn = sqlite3.connect("tripflow_local.db")
    initialize_schema(conn, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from tripflow.logger import StructuredLogger
from tripflow.models.enums import ApprovalRole

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 2

_NOW_ISO = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

_APPROVAL_COLUMNS: str = ",\n".join(
    f"        {role.value}_approved_at TEXT,\n        {role.value}_approved_by TEXT"
    for role in ApprovalRole
)

_WORKFLOW_COLUMNS: str = f"""
        status TEXT NOT NULL DEFAULT 'Draft',
        current_approval_step TEXT,
        submitted_at TEXT,
        rejected_at TEXT,
        rejected_by TEXT,
        rejection_reason TEXT,
{_APPROVAL_COLUMNS},
        created_at TEXT DEFAULT {_NOW_ISO},
        updated_at TEXT DEFAULT {_NOW_ISO}
"""

_TABLE_DEFINITIONS: list[str] = [
    # -- append-only audit trail ------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        details TEXT
    )
    """,
    # -- employees (subject + approver identities) ------------------------------
    f"""
    CREATE TABLE IF NOT EXISTS employees (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL DEFAULT '',
        employee_id TEXT,
        email TEXT,
        company_id TEXT,
        department TEXT,
        position TEXT,
        supervisor_id TEXT,
        status TEXT,
        created_at TEXT DEFAULT {_NOW_ISO},
        updated_at TEXT DEFAULT {_NOW_ISO}
    )
    """,
    # -- per-company approver assignment ----------------------------------------
    f"""
    CREATE TABLE IF NOT EXISTS line_approvals (
        id TEXT PRIMARY KEY,
        company_id TEXT NOT NULL UNIQUE,
        supervisor_id TEXT,
        staff_ga_id TEXT,
        spv_ga_id TEXT,
        hr_manager_id TEXT,
        bod_id TEXT,
        staff_fa_id TEXT,
        created_at TEXT DEFAULT {_NOW_ISO},
        updated_at TEXT DEFAULT {_NOW_ISO}
    )
    """,
    # -- business trips ---------------------------------------------------------
    f"""
    CREATE TABLE IF NOT EXISTS business_trips (
        id TEXT PRIMARY KEY,
        trip_number TEXT,
        employee_id TEXT NOT NULL,
        company_id TEXT,
        cash_advance REAL,
{_WORKFLOW_COLUMNS}
    )
    """,
    # -- trip claims ------------------------------------------------------------
    f"""
    CREATE TABLE IF NOT EXISTS trip_claims (
        id TEXT PRIMARY KEY,
        claim_number TEXT,
        employee_id TEXT NOT NULL,
        trip_id TEXT,
        total_amount REAL,
        trip_cash_advance REAL,
{_WORKFLOW_COLUMNS}
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_business_trips_status ON business_trips(status, current_approval_step)",
    "CREATE INDEX IF NOT EXISTS idx_trip_claims_status ON trip_claims(status, current_approval_step)",
    "CREATE INDEX IF NOT EXISTS idx_trip_claims_trip_id ON trip_claims(trip_id)",
]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version, or ``0`` if unset."""
    row = conn.execute(
        "SELECT version FROM schema_version WHERE id = 1"
    ).fetchone()
    return int(row[0]) if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


# ---------------------------------------------------------------------------
# Incremental migrations
# ---------------------------------------------------------------------------

_ALLOWED_TABLES: frozenset[str] = frozenset({
    "audit_log",
    "employees",
    "line_approvals",
    "business_trips",
    "trip_claims",
})


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Check whether *column* already exists in *table*.

    Raises:
        ValueError: If *table* is not one of the workflow tables.
    """
    if table not in _ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table!r}.")
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cursor.fetchall())


def _migrate_v1_to_v2(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Add ``trip_cash_advance`` to ``trip_claims``.

    Nullable; rows cached before the migration pick it up on their next
    hosted read.
    """
    if not _column_exists(conn, "trip_claims", "trip_cash_advance"):
        conn.execute("ALTER TABLE trip_claims ADD COLUMN trip_cash_advance REAL")
        logger.info("Migration v1->v2: added trip_cash_advance column to trip_claims.")


MigrationFunc = Callable[[sqlite3.Connection, StructuredLogger], None]

_MIGRATIONS: dict[int, MigrationFunc] = {
    2: _migrate_v1_to_v2,
}


def _run_incremental_migrations(
    conn: sqlite3.Connection,
    logger: StructuredLogger,
    from_version: int,
) -> None:
    """Apply registered migrations in ``(from_version, CURRENT_SCHEMA_VERSION]``.

    Does not commit.
    """
    for version in sorted(v for v in _MIGRATIONS if from_version < v <= CURRENT_SCHEMA_VERSION):
        logger.info("Running migration to version %d.", version)
        _MIGRATIONS[version](conn, logger)


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local SQLite database matches the current schema version.

    A fresh database (version 0) gets every table in
    :data:`_TABLE_DEFINITIONS`; an existing one runs only the migrations
    above its stored version.  Either way the upgrade and the version
    bump share one transaction, so a failure leaves the old version in
    place and the next startup retries.  Safe to call on every startup.

    Args:
        conn: An open SQLite connection.
        logger: A :class:`~tripflow.logger.StructuredLogger` instance.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info("Schema is up to date (version %d).", current)
        return

    logger.info(
        "Upgrading schema from version %d to %d.", current, CURRENT_SCHEMA_VERSION,
    )

    try:
        if current == 0:
            for ddl in _TABLE_DEFINITIONS:
                conn.execute(ddl)
        else:
            _run_incremental_migrations(conn, logger, current)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error(
            "Schema initialisation failed; rolled back to version %d.", current,
        )
        raise

    logger.info("Schema initialised at version %d.", CURRENT_SCHEMA_VERSION)
