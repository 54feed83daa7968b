"""Logging setup driven by runtime settings."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from pagewright.config import Settings, get_settings

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Formats each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_logging(settings: Optional[Settings] = None, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Install a single stream handler on the ``pagewright`` logger.

    Args:
        settings: Runtime settings (default: cached settings)
        stream: Output stream (default: stderr)

    Returns:
        The installed handler
    """
    settings = settings or get_settings()
    handler = logging.StreamHandler(stream or sys.stderr)
    if settings.log_format.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    level = "DEBUG" if settings.debug else settings.log_level.upper()
    logger = logging.getLogger("pagewright")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
