"""Opt-in logging setup for lwwcrdt.

The library installs only a NullHandler on the ``lwwcrdt`` logger, so
nothing is printed unless the application asks for it:

    import lwwcrdt

    lwwcrdt.enable_console_logging(level="DEBUG")
    lwwcrdt.enable_file_logging("logs/replicas.log", max_bytes=5_000_000)
    lwwcrdt.enable_json_logging()
    lwwcrdt.configure_from_env()

Environment variables read by ``configure_from_env``:
    LWW_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LWW_LOG_FILE: Path to a rotating log file
    LWW_LOG_JSON: "1" switches either target to JSON lines
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "lwwcrdt"

# Record attributes copied into JSON output when a caller passes them via ``extra``.
CONTEXT_FIELDS = ("node_id", "object_id", "operation_id", "status")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Replica context passed through ``extra`` (node, object, operation and
    envelope status) is lifted into top-level keys:

        {"timestamp": "2026-01-15T10:30:00+00:00", "level": "DEBUG",
         "logger": "lwwcrdt.crdt.last_write_wins", "message": "...",
         "object_id": "5c0f..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = str(value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _get_level(level: str | int) -> int:
    """Map a level name or number onto a logging constant (INFO if unknown)."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Detach and close every non-null handler on the package logger."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _rotating_handler(path: str | Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Send lwwcrdt logs to stderr.

    Args:
        level: Level name or numeric level.
        format: ``logging.Formatter`` format string.
        date_format: Format used for ``%(asctime)s``.

    Returns:
        The installed handler, so callers can remove it later.
    """
    handler = logging.StreamHandler()
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RotatingFileHandler:
    """Write lwwcrdt logs to a size-capped rotating file.

    Long simulations at DEBUG level log every quarantined operation, so
    the file is rotated once it reaches ``max_bytes`` and at most
    ``backup_count`` old files are kept. Missing parent directories are
    created.
    """
    handler = _rotating_handler(path, max_bytes, backup_count)
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_timed_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    when: str = "midnight",
    interval: int = 1,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> TimedRotatingFileHandler:
    """Write lwwcrdt logs to a file rotated on a schedule.

    Args:
        path: Log file; missing parent directories are created.
        level: Level name or numeric level.
        when: ``TimedRotatingFileHandler`` interval unit ("S", "M", "H",
            "D", "midnight" or "W0".."W6").
        interval: Number of ``when`` units between rotations.
        backup_count: Rotated files to keep.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(path, when=when, interval=interval, backupCount=backup_count)
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Send lwwcrdt logs to stderr as JSON lines."""
    handler = logging.StreamHandler()
    _install(handler, level, JsonFormatter())
    return handler


def enable_json_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> RotatingFileHandler:
    """Write JSON lines to a rotating file."""
    handler = _rotating_handler(path, max_bytes, backup_count)
    _install(handler, level, JsonFormatter())
    return handler


def configure_from_env() -> None:
    """Enable logging according to ``LWW_LOGGING``, ``LWW_LOG_FILE`` and ``LWW_LOG_JSON``.

    Does nothing when neither a level nor a file is configured. A file
    without a level logs at INFO.
    """
    level = os.environ.get("LWW_LOGGING", "").upper()
    log_file = os.environ.get("LWW_LOG_FILE", "")
    use_json = os.environ.get("LWW_LOG_JSON", "") == "1"

    if not level and not log_file:
        return
    level = level or "INFO"

    if log_file:
        if use_json:
            enable_json_file_logging(log_file, level=level)
        else:
            enable_file_logging(log_file, level=level)
    elif use_json:
        enable_json_logging(level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Change the level of the package logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Change the level of one submodule, e.g. ``"crdt.last_write_wins"``."""
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Drop all handlers and raise the threshold above CRITICAL."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
