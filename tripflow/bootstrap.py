"""
Application Bootstrap.

Builds the entire dependency graph via constructor injection and
initialises the local SQLite schema.  Every subsystem is wired here;
there are no module-level globals beyond the cached configuration.

Usage::

    from tripflow.bootstrap import build_application

    app = build_application()
    result = app.services["approval_service"].approve_record(kind, record_id, user)
"""

from __future__ import annotations

import atexit
from typing import NamedTuple, Optional

from tripflow.config import AppConfig, get_config
from tripflow.database import DatabaseManager
from tripflow.logger import StructuredLogger, get_logger
from tripflow.schema import initialize_schema
from tripflow.services import ServiceContainer, create_services


class Application(NamedTuple):
    config: AppConfig
    db: DatabaseManager
    services: ServiceContainer


def build_application(config: Optional[AppConfig] = None) -> Application:
    """Wire configuration, database, schema and services.

    ``db.close()`` is registered with :mod:`atexit`; calling it earlier
    is safe.
    """
    logger: StructuredLogger = get_logger("bootstrap")
    logger.info("Starting tripflow...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = config or get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase optional, SQLite always)
    # ------------------------------------------------------------------
    db = DatabaseManager.from_config(config, StructuredLogger(name="database"))
    atexit.register(db.close)

    # ------------------------------------------------------------------
    # 3. SQLite Schema Initialization (idempotent)
    # ------------------------------------------------------------------
    initialize_schema(db.sqlite, StructuredLogger(name="schema"))

    # ------------------------------------------------------------------
    # 4. Service Container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(db=db, config=config)

    logger.info("tripflow ready.")
    return Application(config=config, db=db, services=services)
