"""Configuration utilities for the survey service.

This module loads application configuration with the following rules:
- Primary source: `surveyflow_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("surveyflow_config.json")
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(text: object) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AutosaveConfig(BaseModel):
    enabled: bool = Field(default=True)
    interval_seconds: float = Field(default=30.0, gt=0)


class SessionConfig(BaseModel):
    idle_timeout_seconds: float = Field(default=1800.0, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    autosave: AutosaveConfig
    sessions: SessionConfig = Field(default_factory=SessionConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - unreadable base file
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) surveyflow_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or DEFAULT_DATABASE_URL
    )
    migrations_text = (
        _env("AUTO_APPLY_MIGRATIONS")
        or _read_config_file("database.auto_apply_migrations")
        or _base("database.auto_apply_migrations", "true")
    )

    # Autosave
    autosave_enabled_text = (
        _env("AUTOSAVE_ENABLED")
        or _read_config_file("autosave.enabled")
        or _base("autosave.enabled", "true")
    )
    interval_text = (
        _env("AUTOSAVE_INTERVAL_SECONDS")
        or _read_config_file("autosave.interval_seconds")
        or _base("autosave.interval_seconds", "30")
    )

    # Sessions
    idle_text = (
        _env("SESSION_IDLE_TIMEOUT_SECONDS")
        or _read_config_file("sessions.idle_timeout_seconds")
        or _base("sessions.idle_timeout_seconds", "1800")
    )

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_truthy(migrations_text)),
            autosave=AutosaveConfig(
                enabled=_truthy(autosave_enabled_text),
                interval_seconds=float(str(interval_text).strip()),
            ),
            sessions=SessionConfig(idle_timeout_seconds=float(str(idle_text).strip())),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "AutosaveConfig",
    "SessionConfig",
    "DEFAULT_DATABASE_URL",
    "load_config",
]
