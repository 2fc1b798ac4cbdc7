"""
Logging setup.

Installs console and optional rotating file handlers on the root logger with
either a human-readable or a JSON formatter. Converter modules attach an
``event`` field (see ``constants.LogEvents``) plus context such as ``sql``,
``entity_type`` and ``field`` through ``extra=``; both formatters surface
that context, the JSON one as top-level payload keys.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Literal, Optional

from constants import LoggingConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Context keys attached by the converter, in payload order.
DIAGNOSTIC_FIELDS = ("event", "entity_type", "field", "error_kind", "sql")

# Attributes every LogRecord carries; anything else came in through extra=.
_STANDARD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the extra= fields of a record, diagnostic fields first."""
    context: Dict[str, Any] = {}
    for key in DIAGNOSTIC_FIELDS:
        if key in record.__dict__:
            context[key] = record.__dict__[key]
    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRIBUTES or key.startswith("_") or key in context:
            continue
        context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with extra= context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LoggingConfig.JSON_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        for key, value in record_context(record).items():
            payload.setdefault(key, _json_safe(value))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class DiagnosticTextFormatter(logging.Formatter):
    """Text formatter that tags records carrying a diagnostic event."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        event = getattr(record, "event", None)
        if not event:
            return line
        location = ".".join(
            str(part) for part in (getattr(record, "entity_type", None), getattr(record, "field", None)) if part
        )
        return f"{line} [{event}{' ' + location if location else ''}]"


def _make_formatter(style: str) -> logging.Formatter:
    if style == "json":
        return JSONFormatter()
    return DiagnosticTextFormatter(fmt=LoggingConfig.LOG_FORMAT, datefmt=LoggingConfig.DATE_FORMAT)


def _make_file_handler(path: str, config: Dict[str, Any]) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(config.get("max_mb", LoggingConfig.MAX_LOG_FILE_MB)) * 1024 * 1024,
        backupCount=int(config.get("backup_count", LoggingConfig.LOG_BACKUP_COUNT)),
        encoding="utf-8",
    )


_installed_handlers: List[logging.Handler] = []


def _clear_managed_handlers() -> None:
    """Detach and close the handlers installed by setup_logging."""
    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def setup_logging(
    level: LogLevel = LoggingConfig.DEFAULT_LOG_LEVEL,  # type: ignore[assignment]
    log_file: Optional[str] = None,
    *,
    config: Optional[Dict[str, Any]] = None,
    include_console: bool = True,
) -> Optional[str]:
    """
    Configure root logging from arguments or a ``logging`` config section.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level used when the config does not name one.
        log_file: Log file path; overrides ``config["file"]``.
        config: The ``logging`` section of a conversion config
            (``level``, ``file``, ``format`` = text|json, ``max_mb``, ``backup_count``).
        include_console: If False, skip adding a stdout handler.

    Returns:
        The log file path in use, or None if logging to console only.
    """
    section = dict(config or {})
    log_level = getattr(logging, str(section.get("level") or level).upper(), logging.INFO)
    file_path = log_file if log_file is not None else section.get("file")

    style = str(section.get("format", LoggingConfig.DEFAULT_FORMAT_STYLE)).lower()
    if style not in LoggingConfig.SUPPORTED_FORMATS:
        style = LoggingConfig.DEFAULT_FORMAT_STYLE
    formatter = _make_formatter(style)

    handlers: List[logging.Handler] = []
    if include_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if file_path:
        handlers.append(_make_file_handler(file_path, section))

    _clear_managed_handlers()
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _installed_handlers.append(handler)

    if file_path:
        logging.getLogger(__name__).info(f"Logging to: {file_path}")
    return file_path
