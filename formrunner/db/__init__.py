"""Local storage bootstrap: engine construction for the key-value store."""

from formrunner.db.base import DEFAULT_STORAGE_URL, get_engine, reset_engine

__all__ = [
    "DEFAULT_STORAGE_URL",
    "get_engine",
    "reset_engine",
]
