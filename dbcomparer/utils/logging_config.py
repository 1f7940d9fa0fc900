"""
Logging setup for applications and test suites using dbcomparer.

The library itself only logs through module loggers under the
``dbcomparer`` namespace; configure_logging attaches a handler to it.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from dbcomparer.utils.correlation import setup_correlation_logging

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s [%(correlation_id)s] %(name)s - %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_EXTRA_FIELDS = ("table", "row_index", "column", "outcome", "duration")


class StructuredJSONFormatter(logging.Formatter):
    """Formats records as single-line JSON objects."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "N/A"),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    level: int = logging.INFO,
    json_logging: Optional[bool] = None,
    logger_name: str = "dbcomparer"
) -> logging.Logger:
    """
    Attach a console handler to the dbcomparer logger.

    Args:
        level: Log level for the dbcomparer logger
        json_logging: Emit JSON lines; defaults to the JSON_LOGGING env var
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    if json_logging is None:
        json_logging = os.getenv("JSON_LOGGING", "false").lower() == "true"

    handler = logging.StreamHandler()
    if json_logging:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
    setup_correlation_logging(handler)

    target = logging.getLogger(logger_name)
    for existing in list(target.handlers):
        if getattr(existing, "_dbcomparer_handler", False):
            target.removeHandler(existing)
    handler._dbcomparer_handler = True
    target.addHandler(handler)
    target.setLevel(level)

    if json_logging:
        target.propagate = False

    return target
