"""Database bootstrap utilities for the survey service.

This module exposes convenience imports for engine construction and the
migrations runner that applies SQL files from the packaged migrations/
directory. The DB layer is intentionally minimal and does not leak ORM models
into route handlers.
"""

from surveyflow.db.base import get_engine, transaction
from surveyflow.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "transaction",
    "apply_migrations",
]
