"""
Base Repository.

Shared plumbing for the data-access layer:

- Supabase-first reads with a SQLite fallback (:meth:`BaseRepository._execute_with_fallback`)
- the local upsert used to refresh the SQLite cache (:meth:`BaseRepository._upsert_local`)
"""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence
from typing import Callable, Optional, TypeVar

from supabase import Client as SupabaseClient

from tripflow.database import DatabaseManager
from tripflow.logger import StructuredLogger

T = TypeVar("T")


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        return self._db.supabase

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._db.sqlite

    def _execute_with_fallback(
        self,
        supabase_op: Callable[[], Optional[T]],
        sqlite_op: Callable[[], Optional[T]],
        default_factory: Callable[[], T],
        *,
        operation_name: str,
        on_supabase_success: Optional[Callable[[T], None]] = None,
    ) -> T:
        """Run a read against Supabase, falling back to the local copy.

        Reads only.  A conditional workflow update must never be applied
        to the local copy behind the hosted store's back.

        1. In local mode, go straight to step 3.
        2. ``supabase_op()``; a non-``None`` result is passed to
           ``on_supabase_success`` (failures there are logged) and returned.
           Exceptions are logged and fall through.
        3. ``sqlite_op()``; a non-``None`` result is returned.
        4. ``default_factory()``.

        Parameters
        ----------
        operation_name:
            Label for log messages, e.g. ``"get_by_id (employees)"``.
        on_supabase_success:
            Cache-warming callback invoked with the Supabase result.
        """
        if self._db.is_online:
            try:
                result = supabase_op()
            except Exception as exc:
                self._logger.warning("Supabase unavailable for %s: %s", operation_name, exc)
            else:
                if result is not None:
                    if on_supabase_success is not None:
                        try:
                            on_supabase_success(result)
                        except Exception as cache_exc:
                            self._logger.warning(
                                "Cache refresh after %s failed: %s", operation_name, cache_exc,
                            )
                    return result

        try:
            result = sqlite_op()
        except sqlite3.Error as sqlite_exc:
            self._logger.error("SQLite read failed for %s: %s", operation_name, sqlite_exc)
        else:
            if result is not None:
                return result

        return default_factory()

    def _upsert_local(
        self,
        row: Mapping[str, object],
        *,
        conflict_column: str = "id",
        keep: Sequence[str] = ("id",),
    ) -> None:
        """Insert *row* into :attr:`TABLE`, updating the existing row on conflict.

        Columns named in *keep* are never overwritten on update.
        """
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        updates = ", ".join(
            f"{col} = excluded.{col}" for col in row if col not in keep and col != conflict_column
        )
        with self._db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO {self.TABLE} ({columns})
                VALUES ({placeholders})
                ON CONFLICT({conflict_column}) DO UPDATE SET {updates}
                """,
                tuple(row.values()),
            )
