"""
Logging Configuration

dictConfig-based setup writing to stdout. Service loggers follow LOG_LEVEL;
chatty third-party loggers (SQL echo, outbound HTTP, Google certificate
fetches) are pinned to WARNING so request logs stay readable.
"""

import logging
import sys
from logging.config import dictConfig
from typing import Any

from chimera_sync.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers and the level they are capped at
QUIET_LOGGERS: dict[str, str] = {
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "google.auth": "WARNING",
    "urllib3": "WARNING",
}


def _resolve_level(name: str) -> str:
    level = name.strip().upper()
    return level if level in logging.getLevelNamesMapping() else "INFO"


def build_logging_config(level: str) -> dict[str, Any]:
    """dictConfig mapping for ``level``; unknown level names fall back to INFO."""
    service_level = _resolve_level(level)

    def console(logger_level: str) -> dict[str, Any]:
        return {"level": logger_level, "handlers": ["console"], "propagate": False}

    loggers: dict[str, Any] = {
        "chimera_sync": console(service_level),
        "uvicorn": console("INFO"),
        "uvicorn.access": console("INFO"),
    }
    loggers.update({name: console(lvl) for name, lvl in QUIET_LOGGERS.items()})

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
        },
        "root": {"level": service_level, "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging() -> None:
    """Apply the configuration for ``settings.LOG_LEVEL``. Call once at import of the app."""
    dictConfig(build_logging_config(settings.LOG_LEVEL))
