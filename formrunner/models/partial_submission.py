"""ORM row for the local key-value store holding partial submissions."""

from __future__ import annotations

from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime, String, Text


Base = declarative_base()


class StoredValue(Base):  # type: ignore[valid-type]
    __tablename__ = "formrunner_kv"

    store_key = Column(String, primary_key=True)
    value_json = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


__all__ = ["StoredValue", "Base"]
