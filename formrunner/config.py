"""Configuration for the form runtime.

Precedence (highest first):
1) Environment variables (`FORMRUNNER_*`)
2) Text files under `config/` (one value per file, e.g. `config/runtime.autosave_debounce_seconds`)
3) `formrunner_config.json` at the project root
4) Defaults suitable for local development
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from formrunner.db.base import DEFAULT_STORAGE_URL


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("formrunner_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class RuntimeConfig(BaseModel):
    autosave_debounce_seconds: float = Field(default=2.0, ge=0)
    partial_ttl_days: int = Field(default=30, gt=0)


class StorageConfig(BaseModel):
    url: str = DEFAULT_STORAGE_URL

    @field_validator("url")
    @classmethod
    def url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("storage.url must be a non-empty string")
        return v


class EndpointsConfig(BaseModel):
    submit_url: Optional[str] = None
    drop_off_url: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("submit_url", "drop_off_url")
    @classmethod
    def must_be_http_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("endpoint URLs must start with http:// or https://")
        return v


class FormsConfig(BaseModel):
    directory: str = "forms"


class AppConfig(BaseModel):
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    forms: FormsConfig = Field(default_factory=FormsConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load and validate configuration; invalid values raise after logging."""

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _value(env_key: str, dotted: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(dotted) or _base(dotted, default)

    debounce_text = _value("FORMRUNNER_AUTOSAVE_DEBOUNCE_SECONDS", "runtime.autosave_debounce_seconds", "2.0")
    ttl_text = _value("FORMRUNNER_PARTIAL_TTL_DAYS", "runtime.partial_ttl_days", "30")
    storage_url = _value("FORMRUNNER_STORAGE_URL", "storage.url", DEFAULT_STORAGE_URL)
    submit_url = _value("FORMRUNNER_SUBMIT_URL", "endpoints.submit_url")
    drop_off_url = _value("FORMRUNNER_DROP_OFF_URL", "endpoints.drop_off_url")
    timeout_text = _value("FORMRUNNER_ENDPOINT_TIMEOUT_SECONDS", "endpoints.timeout_seconds", "10.0")
    forms_dir = _value("FORMRUNNER_FORMS_DIR", "forms.directory", "forms")

    try:
        cfg = AppConfig(
            runtime=RuntimeConfig(
                autosave_debounce_seconds=str(debounce_text).strip(),
                partial_ttl_days=str(ttl_text).strip(),
            ),
            storage=StorageConfig(url=storage_url),
            endpoints=EndpointsConfig(
                submit_url=submit_url,
                drop_off_url=drop_off_url,
                timeout_seconds=str(timeout_text).strip(),
            ),
            forms=FormsConfig(directory=forms_dir),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "RuntimeConfig",
    "StorageConfig",
    "EndpointsConfig",
    "FormsConfig",
    "load_config",
]
