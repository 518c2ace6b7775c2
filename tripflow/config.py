"""
Application Configuration.

Settings for the approval workflow, read from environment variables
and an optional ``.env`` file.  Components receive an :class:`AppConfig`
through their constructor; :func:`get_config` is for entry points only.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

_log = logging.getLogger("tripflow.config")


class AppConfig(BaseSettings):
    """Workflow settings.  Unset values fall back to local-mode defaults."""

    # --- Supabase (empty = local mode) ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Local store ---
    SQLITE_PATH: str = "tripflow_local.db"

    # --- Workflow ---
    # Refuse to submit a record whose company line approval leaves a role
    # unassigned; such a record could never leave that step.
    REQUIRE_COMPLETE_LINE_APPROVAL: bool = True

    # --- Logging ---
    LOG_FILE: str = "tripflow.log"
    LOG_MAX_BYTES: int = Field(default=5_242_880, gt=0)  # 5 MB
    LOG_BACKUP_COUNT: int = Field(default=3, ge=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_local_mode(self) -> "AppConfig":
        """Tell operators when records will live in SQLite only."""
        if not self.is_supabase_configured:
            _log.warning(
                "Supabase is not configured; trips and claims are stored in "
                "the local SQLite database at %s.",
                self.SQLITE_PATH,
            )
        return self

    @property
    def is_supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY.get_secret_value())

    @property
    def sqlite_location(self) -> Union[Path, str]:
        """``SQLITE_PATH`` as a Path, or the ``":memory:"`` marker unchanged."""
        if self.SQLITE_PATH == ":memory:":
            return self.SQLITE_PATH
        return Path(self.SQLITE_PATH)


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return the process-wide ``AppConfig``, creating it on first use.

    Check-lock-check: the common path takes no lock.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
