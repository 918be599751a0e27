"""Logging setup for the calendar service."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from care_calendar.core.context import get_request_id, get_user_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | user=%(user_id)s | %(message)s"


class CalendarContextFilter(logging.Filter):
    """Stamp records with the active request id and calendar owner."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        # Explicit ``extra={"user_id": ...}`` wins over the bound context.
        if not getattr(record, "user_id", None):
            record.user_id = get_user_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Install the console handler once per process."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "filters": {"calendar_context": {"()": CalendarContextFilter}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["calendar_context"],
                }
            },
            "loggers": {
                # Per-statement SQL logging is far too chatty at DEBUG.
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
