"""
Database Connections.

Two stores back the workflow:

- **Supabase** (hosted PostgreSQL via PostgREST) is authoritative when
  credentials are configured.  Workflow writes go there only.
- **SQLite** is always opened.  It caches hosted reads and is the only
  store in local mode (no credentials; development and tests).

Query logic lives in :mod:`tripflow.repositories`; this module only
owns the connections and the SQLite write lock.

Usage::

    db = DatabaseManager.from_config(get_config(), StructuredLogger(name="database"))
    with db.transaction() as conn:
        conn.execute("UPDATE business_trips SET ...")
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from supabase import Client as SupabaseClient
from supabase import create_client

from tripflow.config import AppConfig
from tripflow.logger import StructuredLogger


class DatabaseManager:
    """Owns the Supabase client (optional) and the SQLite connection.

    Parameters
    ----------
    supabase_url, supabase_key:
        Hosted project credentials.  Either one empty means local mode.
    sqlite_path:
        Local database file, or ``":memory:"``.
    logger:
        Structured logger for connection lifecycle messages.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Union[Path, str],
        logger: StructuredLogger,
    ) -> None:
        self._logger = logger
        self._write_lock = threading.RLock()
        self._supabase: Optional[SupabaseClient] = self._connect_supabase(supabase_url, supabase_key)
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    @classmethod
    def from_config(cls, config: AppConfig, logger: StructuredLogger) -> "DatabaseManager":
        return cls(
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
            sqlite_path=config.sqlite_location,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """The hosted client.

        Raises
        ------
        RuntimeError
            In local mode.
        """
        if self._supabase is None:
            raise RuntimeError("Supabase is not configured; running against local SQLite only.")
        return self._supabase

    @property
    def is_online(self) -> bool:
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Serialises SQLite writers sharing this connection (re-entrant)."""
        return self._write_lock

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock for a unit of SQLite work.

        Commits when the block exits normally and rolls back when it
        raises; the exception propagates.
        """
        with self._write_lock:
            try:
                yield self._sqlite_conn
            except BaseException:
                self._sqlite_conn.rollback()
                raise
            self._sqlite_conn.commit()

    def close(self) -> None:
        """Close the SQLite connection.  Repeated calls do nothing."""
        with self._write_lock:
            try:
                self._sqlite_conn.close()
            except sqlite3.ProgrammingError:
                return
            self._logger.info("SQLite connection closed.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_supabase(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning("Supabase credentials not configured; local mode.")
            return None
        try:
            client = create_client(url, key)
        except (ValueError, TypeError) as exc:
            # Malformed URL or key; the app stays usable on SQLite.
            self._logger.warning("Invalid Supabase credentials (%s); local mode.", exc)
            return None
        self._logger.info("Supabase client initialized for %s", url)
        return client

    def _connect_sqlite(self, path: Union[Path, str]) -> sqlite3.Connection:
        """Open the local database with dict-like rows, WAL and foreign keys.

        Raises
        ------
        PermissionError
            The file or its directory is not writable.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
        except PermissionError as exc:
            msg = f"Cannot open the local database at '{path}': permission denied."
            self._logger.error(msg)
            raise PermissionError(msg) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys = ON;")
        self._logger.info("SQLite database opened at %s", path)
        return conn
