"""SQLAlchemy engine construction for the local key-value store.

Partial submissions are persisted on the respondent's side of the system; by
default that is a SQLite file next to the running process. An in-memory URL is
supported for tests.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


DEFAULT_STORAGE_URL = "sqlite+pysqlite:///./formrunner_local.db"


def _db_url() -> str:
    return (
        os.getenv("FORMRUNNER_TEST_STORAGE_URL")
        or os.getenv("FORMRUNNER_STORAGE_URL")
        or DEFAULT_STORAGE_URL
    )


_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return a cached Engine for `url` (or the configured storage URL).

    In-memory SQLite URLs use a StaticPool so every connection sees the same
    database for the life of the process.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("storage_engine_created url=%s", resolved_url)

    return _ENGINE


def reset_engine() -> None:
    """Dispose the cached Engine; the next `get_engine` call builds a new one."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


__all__ = ["DEFAULT_STORAGE_URL", "get_engine", "reset_engine"]
