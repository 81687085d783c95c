"""SQLAlchemy engine and connection helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from surveyflow.config import load_config

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return load_config().database.dsn


# Module-level cached Engine so repositories share the same connection pool
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads during tests.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and (":memory:" in resolved_url or resolved_url.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"}):
            # Keep a single in-memory DB connection shared across the process
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db_engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


@contextmanager
def transaction() -> Generator[Connection, None, None]:
    """Yield a connection inside a transaction; roll back and re-raise on error."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            yield conn
    except Exception:
        logger.error("DB transaction error; rolled back", exc_info=True)
        raise
