"""FastAPI application package init for SurveyFlow.

This package exposes a small FastAPI application factory wrapping the survey
form engine. It wires only cross-cutting middleware (request-id and
problem+json handlers) and mounts the API routers. Engine logic lives in
`surveyflow/logic/` and route handlers in `surveyflow/routes/`.
"""

from __future__ import annotations

from surveyflow.main import create_app

__all__ = ["create_app"]
