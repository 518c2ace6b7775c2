"""
Structured JSON Logging Module.

Every log line is a single JSON object, written to stdout and to a
size-rotated file.  Workflow code attaches record context (record id,
record kind, acting employee) through ``extra`` or :meth:`StructuredLogger.bind`
so denied actions and audit events can be filtered per record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional, TextIO, Union

# Attribute names every LogRecord carries; anything else came in via ``extra``.
_RESERVED: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({})).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as one JSON line.

    Keys: ``timestamp`` (UTC ISO-8601), ``level``, ``logger_name``,
    ``message``, then ``extra`` and ``exception`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        context = {
            key: str(value)
            for key, value in vars(record).items()
            if key not in _RESERVED
        }
        if context:
            entry["extra"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


def _attach_handlers(
    logger: logging.Logger,
    level: int,
    stream: Optional[TextIO],
    log_file: str,
    max_bytes: int,
    backup_count: int,
) -> None:
    formatter = JSONFormatter()

    console = logging.StreamHandler(stream or sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    try:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            filename=str(path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        logger.warning(
            "Could not open log file '%s': %s. Logging to console only.",
            log_file,
            exc,
        )
        return
    rotating.setLevel(level)
    rotating.setFormatter(formatter)
    logger.addHandler(rotating)


class StructuredLogger:
    """Injectable JSON logger.

    Handlers are attached once per logger name; later instances with the
    same name reuse them.  Settings not passed explicitly come from
    :class:`~tripflow.config.AppConfig`.

    Usage::

        log = StructuredLogger(name="workflow")
        log.info("Trip approved", extra={"record_id": "trip-001"})

        scoped = log.bind(record_id="trip-001", record_kind="business_trip")
        scoped.warning("approve denied (Conflict)")
    """

    def __init__(
        self,
        name: str = "tripflow",
        level: int = logging.INFO,
        stream: Union[TextIO, None] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
        *,
        context: Optional[Mapping[str, object]] = None,
    ) -> None:
        self._context: dict[str, object] = dict(context or {})
        self._logger: logging.Logger = logging.getLogger(name)
        if self._logger.handlers:
            return

        # Imported here: config itself logs through the stdlib at import time.
        from tripflow.config import get_config
        cfg = get_config()

        self._logger.setLevel(level)
        _attach_handlers(
            self._logger,
            level,
            stream,
            log_file or cfg.LOG_FILE,
            max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
            backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
        )

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying ``logging.Logger`` directly."""
        return self._logger

    def bind(self, **context: object) -> "StructuredLogger":
        """Return a logger sharing these handlers that adds *context* to every line."""
        return StructuredLogger(self._logger.name, context={**self._context, **context})

    def _log(self, level: int, msg: str, args: tuple[object, ...], kwargs: dict[str, object]) -> None:
        if self._context:
            kwargs["extra"] = {**self._context, **(kwargs.get("extra") or {})}
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log(logging.CRITICAL, msg, args, kwargs)


def get_logger(name: str = "tripflow") -> StructuredLogger:
    """Shorthand for ``StructuredLogger(name=name)`` with configured defaults."""
    return StructuredLogger(name=name)
