"""Survey definition data access helpers.

Encapsulates SQL for the `survey_definition` table to keep route handlers
free of inline SQL. Definitions are stored as their camelCase wire JSON.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import text as sql_text

from surveyflow.db.base import get_engine
from surveyflow.logic.errors import SurveyNotFoundError
from surveyflow.models.survey import SurveyDefinition, load_definition

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def save_survey(definition: SurveyDefinition | Dict[str, Any], is_active: bool = True) -> SurveyDefinition:
    """Insert or replace a survey definition and return the validated model."""
    model = load_definition(definition)
    payload = json.dumps(model.to_wire(), ensure_ascii=False)
    now = _now()
    eng = get_engine()
    with eng.begin() as conn:
        existing = conn.execute(
            sql_text("SELECT 1 FROM survey_definition WHERE survey_id = :sid"),
            {"sid": model.id},
        ).fetchone()
        if existing is None:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO survey_definition (survey_id, name, definition_json, is_active, created_at, updated_at)
                    VALUES (:sid, :name, :body, :active, :now, :now)
                    """
                ),
                {"sid": model.id, "name": model.name, "body": payload, "active": is_active, "now": now},
            )
        else:
            conn.execute(
                sql_text(
                    """
                    UPDATE survey_definition
                    SET name = :name, definition_json = :body, is_active = :active, updated_at = :now
                    WHERE survey_id = :sid
                    """
                ),
                {"sid": model.id, "name": model.name, "body": payload, "active": is_active, "now": now},
            )
    logger.info("survey_saved survey_id=%s created=%s", model.id, existing is None)
    return model


def find_survey(survey_id: str) -> Optional[SurveyDefinition]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT definition_json FROM survey_definition WHERE survey_id = :sid"),
            {"sid": survey_id},
        ).fetchone()
    if row is None:
        return None
    return load_definition(json.loads(row[0]))


def get_survey(survey_id: str) -> SurveyDefinition:
    survey = find_survey(survey_id)
    if survey is None:
        raise SurveyNotFoundError(f"survey {survey_id!r} not found", survey_id=survey_id)
    return survey


def is_survey_active(survey_id: str) -> bool:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT is_active FROM survey_definition WHERE survey_id = :sid"),
            {"sid": survey_id},
        ).fetchone()
    return bool(row[0]) if row is not None else False


def list_surveys() -> List[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                "SELECT survey_id, name, is_active, updated_at FROM survey_definition ORDER BY survey_id ASC"
            )
        ).fetchall()
    return [
        {"id": str(r[0]), "name": str(r[1]), "is_active": bool(r[2]), "updated_at": str(r[3])}
        for r in rows
    ]


__all__ = ["save_survey", "find_survey", "get_survey", "is_survey_active", "list_surveys"]
