"""Survey response read endpoint."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from surveyflow.logic.repository_responses import get_response

router = APIRouter()


@router.get("/responses/{response_id}", summary="Get a stored survey response")
def get_survey_response(response_id: str) -> Dict[str, Any]:
    return get_response(response_id)


__all__ = ["router", "get_survey_response"]
