"""
Structured logging configuration.

- Development / testing: human-readable colored lines
- Production: one JSON object per line
- LOG_LEVEL / LOG_FORMAT config keys override the environment defaults

Services attach entity ids with ``extra={"sop_id": ...}``. ``RequestContextFilter``
adds the current request id to every record emitted inside a request, so a
service log line can be traced back to the HTTP call that caused it.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Entity ids attached by the services
ENTITY_KEYS = (
    "sop_id",
    "step_id",
    "business_process_id",
    "department_id",
    "role_id",
    "tier_id",
    "module_id",
    "task_id",
)
# Request fields attached by the timing middleware, provider fields by the AI gateway
CONTEXT_KEYS = ("request_id", "method", "path", "status", "duration_ms", "remote_addr")
AI_KEYS = ("provider", "model", "purpose")

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "httpx", "anthropic", "openai", "google_genai")


class RequestContextFilter(logging.Filter):
    """Stamp ``request_id`` from flask.g onto records logged during a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None and has_request_context():
            record.request_id = getattr(g, "request_id", None)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_KEYS + ENTITY_KEYS + AI_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{stamp} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        tags = [
            f"{key}={getattr(record, key)}"
            for key in ENTITY_KEYS
            if getattr(record, key, None) is not None
        ]
        if getattr(record, "request_id", None):
            tags.append(f"req={record.request_id}")
        if tags:
            line += f" ({' '.join(tags)})"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(app, is_prod: bool) -> str:
    fmt = (app.config.get("LOG_FORMAT") or "").strip().lower()
    if fmt in ("json", "readable"):
        return fmt
    return "json" if is_prod else "readable"


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    Level: LOG_LEVEL, else DEBUG outside production and INFO in production.
    Format: LOG_FORMAT, else JSON in production and readable elsewhere.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (app.config.get("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)
    fmt = _resolve_format(app, is_prod)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    # create_app() may run more than once per process (tests)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.setLevel(level)
    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
