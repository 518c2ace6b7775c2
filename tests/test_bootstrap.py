"""
Tests for configuration, schema initialisation and service wiring.
"""

import sqlite3
from pathlib import Path

import pytest

from tripflow.bootstrap import build_application
from tripflow.config import AppConfig
from tripflow.database import DatabaseManager
from tripflow.models import RecordKind
from tripflow.repositories import SqliteWorkflowRecordStore
from tripflow.schema import CURRENT_SCHEMA_VERSION, initialize_schema
from tripflow.services import ApprovalWorkflowService


class TestConfig:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        monkeypatch.setenv("REQUIRE_COMPLETE_LINE_APPROVAL", "false")

        config = AppConfig()

        assert config.is_supabase_configured
        assert config.SUPABASE_ANON_KEY.get_secret_value() == "anon-key"
        assert config.REQUIRE_COMPLETE_LINE_APPROVAL is False

    def test_local_mode_without_credentials(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "")
        assert not AppConfig().is_supabase_configured


class TestSchema:
    def test_initialisation_is_idempotent(self, db, logger):
        initialize_schema(db.sqlite, logger)
        version = db.sqlite.execute("SELECT version FROM schema_version").fetchone()[0]
        assert version == CURRENT_SCHEMA_VERSION

    def test_record_tables_have_approval_columns(self, db):
        columns = {row["name"] for row in db.sqlite.execute("PRAGMA table_info(trip_claims)")}
        assert {"claim_number", "current_approval_step", "staff_fa_approved_at", "staff_fa_approved_by"} <= columns

    def test_existing_database_migrates_claim_cache_column(self, logger):
        conn = sqlite3.connect(":memory:")
        conn.execute(
            "CREATE TABLE schema_version (id INTEGER PRIMARY KEY CHECK (id = 1), "
            "version INTEGER NOT NULL, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
        )
        conn.execute("INSERT INTO schema_version (id, version) VALUES (1, 1)")
        conn.execute("CREATE TABLE trip_claims (id TEXT PRIMARY KEY, employee_id TEXT NOT NULL, trip_id TEXT)")
        conn.execute("INSERT INTO trip_claims (id, employee_id) VALUES ('claim-001', 'emp-subject')")
        conn.commit()
        try:
            initialize_schema(conn, logger)

            columns = {row[1] for row in conn.execute("PRAGMA table_info(trip_claims)")}
            assert "trip_cash_advance" in columns
            assert conn.execute("SELECT COUNT(*) FROM trip_claims").fetchone()[0] == 1
            assert conn.execute("SELECT version FROM schema_version").fetchone()[0] == CURRENT_SCHEMA_VERSION
        finally:
            conn.close()


class TestBuildApplication:
    def test_local_mode_wires_sqlite_stores(self):
        config = AppConfig(SUPABASE_URL="", SUPABASE_ANON_KEY="", SQLITE_PATH=":memory:")

        app = build_application(config)
        try:
            assert not app.db.is_online
            assert isinstance(app.services["approval_service"], ApprovalWorkflowService)
            for kind in RecordKind:
                assert isinstance(app.services["record_stores"][kind], SqliteWorkflowRecordStore)
        finally:
            app.db.close()


class TestDatabaseManager:
    def test_transaction_commits(self, db):
        with db.transaction() as conn:
            conn.execute("INSERT INTO employees (id, name) VALUES ('e-1', 'Ana')")
        assert db.sqlite.execute("SELECT COUNT(*) FROM employees").fetchone()[0] == 1

    def test_transaction_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute("INSERT INTO employees (id, name) VALUES ('e-1', 'Ana')")
                raise RuntimeError("boom")
        assert db.sqlite.execute("SELECT COUNT(*) FROM employees").fetchone()[0] == 0

    def test_local_mode_has_no_supabase_client(self, db):
        assert not db.is_online
        with pytest.raises(RuntimeError):
            db.supabase

    def test_close_twice(self, logger):
        manager = DatabaseManager("", "", ":memory:", logger)
        manager.close()
        manager.close()

    def test_memory_location_kept_verbatim(self):
        assert AppConfig(SQLITE_PATH=":memory:").sqlite_location == ":memory:"
        assert AppConfig(SQLITE_PATH="data/tripflow.db").sqlite_location == Path("data/tripflow.db")
