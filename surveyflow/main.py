from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from surveyflow.config import AppConfig, load_config
from surveyflow.db.base import get_engine
from surveyflow.db.migrations_runner import apply_migrations
from surveyflow.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_surveyflow_error,
    handle_unexpected_error,
)
from surveyflow.http.request_id import RequestIdMiddleware
from surveyflow.logging_setup import configure_logging
from surveyflow.logic.errors import SurveyFlowError
from surveyflow.logic.session_registry import SessionRegistry
from surveyflow.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(config: AppConfig) -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine(config.database.dsn).connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: AppConfig | None = None) -> FastAPI:
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    config = config or load_config()

    app = FastAPI(title="SurveyFlow")
    app.state.config = config
    app.state.sessions = SessionRegistry(idle_timeout=config.sessions.idle_timeout_seconds)

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(SurveyFlowError, handle_surveyflow_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    # Apply migrations on startup (guarded) to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:
        if not config.database.auto_apply_migrations:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        try:
            applied = apply_migrations(get_engine(config.database.dsn))
        except SQLAlchemyError:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied files=%s", applied)

    # No dangling autosave timers once the app stops serving
    @app.on_event("shutdown")
    async def _close_sessions() -> None:
        registry: SessionRegistry = app.state.sessions
        if len(registry):
            logger.info("shutdown_closing_sessions count=%s", len(registry))
        await registry.close_all()

    app.include_router(api_router, prefix="/api/v1")

    health_check = _health_check(config)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
