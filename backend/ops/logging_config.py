"""
Structured logging configuration for the ledger.

Production writes JSON lines to stdout so posting rejections and audit
findings can be searched by their structured fields (entry_id, reference,
error.code, check). Development gets a readable console format.

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json unless DEBUG)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG when DEBUG)
- LOG_SQL: "True" to echo SQL in development
"""
import json
import logging
import os
from datetime import datetime, timezone

# Loggers owned by this project; each module logs via getLogger(__name__)
APP_LOGGERS = ("accounting", "documents", "reports", "reconciliation", "ops", "celery")


def get_logging_config(debug: bool = False) -> dict:
    """
    Build Django's LOGGING dict.

    Args:
        debug: Whether running in debug mode

    Returns:
        Django LOGGING dict
    """
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")
    log_sql = debug and os.environ.get("LOG_SQL", "False") == "True"

    if log_format == "json":
        formatters = {
            "json": {
                "()": "ops.logging_config.JsonFormatter",
            },
        }
        console = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        console = {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        }

    loggers = {
        "": {
            "handlers": ["console"],
            "level": log_level,
        },
        "django": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": log_level if debug else "ERROR",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"] if log_sql else ["null"],
            "level": "DEBUG" if log_sql else "INFO",
            "propagate": False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": console,
            "null": {
                "class": "logging.NullHandler",
            },
        },
        "loggers": loggers,
    }


# LogRecord attributes that are not caller-supplied `extra` fields
STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "taskName", "exc_info", "exc_text",
    "stack_info", "message", "asctime",
})


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    One object per line:
    - timestamp: ISO 8601, UTC
    - level, logger, message
    - location: file/line/function
    - exception: formatted traceback, when present
    - extra: fields passed through `extra={...}`
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
