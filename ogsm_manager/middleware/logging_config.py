"""
Structured logging for OGSM Manager.

Services log hierarchy mutations with ``extra=`` ids (component, parent,
template) and counts; both formatters surface those fields.

- Production: one JSON object per line
- Development / testing: colored single line with ``key=value`` context
- LOG_LEVEL overrides the level (DEBUG outside production, INFO in it)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Request fields set by middleware.timing
_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")

# Hierarchy fields set by the services
_OGSM_FIELDS = (
    "component_id",
    "new_component_id",
    "parent_id",
    "template_id",
    "updated_count",
    "created_count",
    "reason",
)


def _extras(record: logging.LogRecord, fields) -> dict:
    return {k: getattr(record, k) for k in fields if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request and hierarchy context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        entry.update(_extras(record, _REQUEST_FIELDS))
        entry.update(_extras(record, _OGSM_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored console line: ``HH:MM:SS LEVEL logger: msg key=value [Nms]``."""

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
        ts = datetime.now().strftime("%H:%M:%S")
        context = "".join(f" {k}={v}" for k, v in _extras(record, _OGSM_FIELDS).items())
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            context += f" [{duration:.0f}ms]"
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{context}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger for ``app``."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()  # create_app may run more than once per process
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
