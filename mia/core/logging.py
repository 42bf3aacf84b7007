"""MIA — Structured JSON Logging."""

import logging
import json
import sys
from datetime import datetime, timezone
from mia.config import settings

# Extra attributes copied onto the JSON line when a caller passes them via `extra=`
EXTRA_FIELDS = (
    "endpoint",
    "campaign_id",
    "insight_count",
    "duration_ms",
    "status_code",
)


class JSONFormatter(logging.Formatter):
    """Produces structured JSON log lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with structured JSON handler."""
    logger = logging.getLogger(f"mia.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
