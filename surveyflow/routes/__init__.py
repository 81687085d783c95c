"""APIRouter registration for the survey service."""

from __future__ import annotations

from fastapi import APIRouter

from surveyflow.routes.responses import router as responses_router
from surveyflow.routes.sessions import router as sessions_router
from surveyflow.routes.surveys import router as surveys_router

api_router = APIRouter()
api_router.include_router(surveys_router, tags=["Surveys"])
api_router.include_router(sessions_router, tags=["Sessions"])
api_router.include_router(responses_router, tags=["Responses"])

__all__ = ["api_router"]
