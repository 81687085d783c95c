"""Survey definition endpoints.

Implements:
- POST /surveys: register or replace a definition (validated on the way in)
- GET /surveys: list stored definitions
- GET /surveys/{survey_id}: fetch one definition in wire shape
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from surveyflow.logic.repository_surveys import get_survey, list_surveys, save_survey
from surveyflow.models.survey import load_definition

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/surveys", summary="Create or replace a survey definition", status_code=201)
def create_survey(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    definition = load_definition(payload)
    saved = save_survey(definition, is_active=bool(payload.get("is_active", True)))
    return JSONResponse(saved.to_wire(), status_code=201)


@router.get("/surveys", summary="List survey definitions")
def get_surveys() -> Dict[str, Any]:
    return {"surveys": list_surveys()}


@router.get("/surveys/{survey_id}", summary="Get a survey definition")
def get_survey_definition(survey_id: str) -> Dict[str, Any]:
    return get_survey(survey_id).to_wire()


__all__ = ["router", "create_survey", "get_surveys", "get_survey_definition"]
