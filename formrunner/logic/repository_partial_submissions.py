"""Durable key-value storage for partial submissions.

Values are opaque JSON strings keyed per form, mirroring a browser's local
storage. `SqlKeyValueStore` keeps them in a local SQLite file by default, so
a saved draft never leaves the respondent's machine.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import DateTime, bindparam, text as sql_text
from sqlalchemy.engine import Engine

from formrunner.config import AppConfig
from formrunner.db.base import get_engine
from formrunner.models.partial_submission import Base

logger = logging.getLogger(__name__)


PARTIAL_KEY_PREFIX = "formrunner_partial_"


def partial_key(form_id: str) -> str:
    return f"{PARTIAL_KEY_PREFIX}{form_id}"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlKeyValueStore:
    """KeyValueStore over a single SQL table (see models.partial_submission)."""

    def __init__(self, engine: Engine | None = None, url: str | None = None) -> None:
        self._engine = engine or get_engine(url)
        Base.metadata.create_all(self._engine)

    @classmethod
    def from_config(cls, config: AppConfig) -> "SqlKeyValueStore":
        return cls(url=config.storage.url)

    def get(self, key: str) -> Optional[str]:
        with self._engine.connect() as conn:
            row = conn.execute(
                sql_text("SELECT value_json FROM formrunner_kv WHERE store_key = :key"),
                {"key": key},
            ).fetchone()
        return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            conn.execute(sql_text("DELETE FROM formrunner_kv WHERE store_key = :key"), {"key": key})
            conn.execute(
                sql_text(
                    "INSERT INTO formrunner_kv (store_key, value_json, updated_at) "
                    "VALUES (:key, :value, :updated_at)"
                ).bindparams(bindparam("updated_at", type_=DateTime(timezone=True))),
                {"key": key, "value": value, "updated_at": now},
            )
        logger.debug("kv_set key=%s bytes=%s", key, len(value))

    def delete(self, key: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(sql_text("DELETE FROM formrunner_kv WHERE store_key = :key"), {"key": key})
        logger.debug("kv_delete key=%s", key)


__all__ = [
    "PARTIAL_KEY_PREFIX",
    "partial_key",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
]
