"""Structured logging configuration for FlowForm.

Engine modules log through ``logging.getLogger(__name__)`` and pass
session context (``session_id``, ``flow_id``, ``node_id``) via ``extra=``.
The console shows the message only; the optional JSON file keeps every
extra field as its own key.
"""

import logging
import logging.config
from typing import Any

from flowform.config.settings import LoggingConfig

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure logging for the ``flowform`` logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a rotating JSON-lines log file
    """
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "level": level,
        },
    }
    if log_file:
        handlers["json_file"] = _json_file_handler(log_file, level)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {"format": CONSOLE_FORMAT, "datefmt": "%H:%M:%S"},
                "json": {"()": "pythonjsonlogger.json.JsonFormatter", "format": JSON_FORMAT},
            },
            "handlers": handlers,
            "loggers": {
                "flowform": {
                    "handlers": list(handlers),
                    "level": level,
                    "propagate": False,
                },
            },
        }
    )


def configure_from_settings(settings: LoggingConfig) -> None:
    """Apply the ``settings.logging`` section of a flow document."""
    setup_logging(level=settings.level, log_file=settings.file)


def _json_file_handler(log_file: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": log_file,
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf-8",
        "formatter": "json",
        "level": level,
    }
