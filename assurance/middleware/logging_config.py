"""
Structured logging configuration.

Two output formats:
    readable   coloured single-line output (development, testing)
    json       one JSON object per line for log aggregation (production)

LOG_FORMAT overrides the choice; LOG_LEVEL comes from config, then env.

Inside a request every record is stamped with the request id and any
project / standard / profession ids in the URL, so service-layer log lines
can be correlated with the access log written by the timing middleware.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes copied into JSON output when present
CONTEXT_FIELDS = ("request_id", "project_id", "standard_id", "profession_id")
EXTRA_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr") + CONTEXT_FIELDS

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "alembic.runtime")


class RequestContextFilter(logging.Filter):
    """Attach request-scoped identifiers to records that do not carry them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        view_args = request.view_args or {}
        for key in CONTEXT_FIELDS[1:]:
            if getattr(record, key, None) is None and key in view_args:
                setattr(record, key, view_args[key])
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update({
            key: getattr(record, key)
            for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Coloured console output for development."""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{colour}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" [{duration:.0f}ms]"
        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" ({request_id})"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


FORMATTERS = {"json": JSONFormatter, "readable": ReadableFormatter}


def _resolve_level(app, is_prod: bool) -> tuple[str, int]:
    name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    return name, getattr(logging, name, logging.INFO)


def configure_logging(app):
    """Install one root handler for *app* with the configured format and level."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name, level = _resolve_level(app, is_prod)
    format_name = (app.config.get("LOG_FORMAT") or ("json" if is_prod else "readable")).lower()
    formatter_cls = FORMATTERS.get(format_name, ReadableFormatter)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter_cls())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    # Replaced, not appended: tests build several apps per session
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, format_name)
