"""
Structured JSON logging for the GatePilot service.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

# Extra attributes copied into the log entry when present on the record
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "initiative_id",
    "gate",
    "action",
    "from_status",
    "to_status",
    "error_code",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: int) -> logging.Logger:
    """Attach the JSON handler to the ``gatepilot`` logger (once)."""
    logger = logging.getLogger("gatepilot")
    logger.setLevel(level)
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    return logger
