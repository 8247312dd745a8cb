"""
Logging setup: JSON records for files, plain lines for the console.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.settings import MonitoringSettings

_RESERVED_ATTRS = {
    "name",
    "msg",
    "message",
    "asctime",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "stack_info",
    "exc_info",
    "exc_text",
    "correlation_id",
    "run_id",
}

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging with correlation IDs."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "unknown"),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = getattr(record, "run_id", None)
        if run_id:
            log_data["run_id"] = run_id

        # Extra fields passed through ``extra={...}``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    settings: MonitoringSettings, verbose: bool = False
) -> Optional[Path]:
    """
    Configure the root logger from monitoring settings.

    The console handler writes to stderr so it never interleaves with the
    result blocks on stdout. When ``LOG_FILE`` is set a second handler writes
    JSON records there.

    Returns:
        The log file path, if one was configured.
    """
    console_handler = logging.StreamHandler()
    if settings.log_format == "json":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else settings.log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    log_file: Optional[Path] = None
    if settings.log_file:
        log_file = Path(settings.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        structured_handler = logging.FileHandler(log_file)
        structured_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(structured_handler)

    # The driver is chatty at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    return log_file
