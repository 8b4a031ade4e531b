"""Central logging configuration for the runtime.

One stdout handler on the root logger; module loggers propagate to it, so
`logging.getLogger(__name__)` is all a module needs. The `formrunner` level
follows FORMRUNNER_LOG_LEVEL (default INFO). httpx is held at WARNING so
per-request lines from the submission client do not drown runtime events.
"""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"


def _dict_config(level: str) -> Dict[str, Any]:
    console = {"level": "INFO", "handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "INFO", "handlers": ["console"]},
        "loggers": {
            "formrunner": {"level": level, "propagate": True},
            "httpx": {"level": "WARNING", "propagate": True},
            "uvicorn": dict(console),
            "uvicorn.error": dict(console),
            "uvicorn.access": dict(console),
        },
    }


def configure_logging(level: str | None = None) -> bool:
    """Install the runtime's logging once; returns False when already configured.

    A root logger that already has handlers (reloaders, pytest's capture)
    is left alone.
    """
    if logging.getLogger().handlers:
        return False
    resolved = (level or os.environ.get("FORMRUNNER_LOG_LEVEL") or "INFO").upper()
    dictConfig(_dict_config(resolved))
    return True


__all__ = ["LOG_FORMAT", "configure_logging"]
