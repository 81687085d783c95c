"""Survey response data access helpers.

Stores one row per respondent attempt in `survey_response`, holding the
answers JSON and the completion status. Also builds the persistence
collaborators a FormController needs for an HTTP session.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import anyio.to_thread
from sqlalchemy import text as sql_text

from surveyflow.db.base import get_engine, transaction
from surveyflow.logic.errors import FormStateError, ResponseNotFoundError
from surveyflow.logic.events import RESPONSE_SAVED, publish
from surveyflow.models.response_types import COMPLETED, COMPLETION_STATUSES, IN_PROGRESS, STARTED

logger = logging.getLogger(__name__)

_COLUMNS = "response_id, survey_id, respondent_key, answers_json, completion_status, created_at, updated_at, completed_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _row_to_dict(row) -> Dict[str, Any]:
    return {
        "id": str(row[0]),
        "survey_id": str(row[1]),
        "respondent_key": row[2],
        "answers": json.loads(row[3] or "{}"),
        "completion_status": str(row[4]),
        "created_at": str(row[5]),
        "updated_at": str(row[6]),
        "completed_at": row[7],
    }


def _check_status(status: str) -> None:
    if status not in COMPLETION_STATUSES:
        raise ValueError(f"completion_status must be one of {list(COMPLETION_STATUSES)}")


def create_response(
    survey_id: str,
    answers: Optional[Dict[str, Any]] = None,
    completion_status: str = STARTED,
    respondent_key: Optional[str] = None,
) -> Dict[str, Any]:
    _check_status(completion_status)
    response_id = str(uuid.uuid4())
    now = _now()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text(
                """
                INSERT INTO survey_response
                    (response_id, survey_id, respondent_key, answers_json, completion_status, created_at, updated_at, completed_at)
                VALUES (:rid, :sid, :rkey, :answers, :status, :now, :now, :completed_at)
                """
            ),
            {
                "rid": response_id,
                "sid": survey_id,
                "rkey": respondent_key,
                "answers": json.dumps(answers or {}, ensure_ascii=False),
                "status": completion_status,
                "now": now,
                "completed_at": now if completion_status == COMPLETED else None,
            },
        )
    logger.info("response_created response_id=%s survey_id=%s status=%s", response_id, survey_id, completion_status)
    return get_response(response_id)


def find_response(response_id: str) -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM survey_response WHERE response_id = :rid"),
            {"rid": response_id},
        ).fetchone()
    return _row_to_dict(row) if row is not None else None


def get_response(response_id: str) -> Dict[str, Any]:
    found = find_response(response_id)
    if found is None:
        raise ResponseNotFoundError(f"response {response_id!r} not found", response_id=response_id)
    return found


def update_response(response_id: str, answers: Dict[str, Any], completion_status: str) -> Dict[str, Any]:
    """Overwrite answers and status; a completed response is never reopened.

    The completed check lives in the UPDATE's WHERE clause so a late partial
    save racing a final submit cannot downgrade the row.
    """
    _check_status(completion_status)
    now = _now()
    with transaction() as conn:
        result = conn.execute(
            sql_text(
                """
                UPDATE survey_response
                SET answers_json = :answers, completion_status = :status, updated_at = :now,
                    completed_at = :completed_at
                WHERE response_id = :rid AND completion_status <> :completed
                """
            ),
            {
                "rid": response_id,
                "answers": json.dumps(answers, ensure_ascii=False),
                "status": completion_status,
                "now": now,
                "completed_at": now if completion_status == COMPLETED else None,
                "completed": COMPLETED,
            },
        )
        updated = result.rowcount
    if updated == 0:
        # Either missing (raises not-found) or already completed
        get_response(response_id)
        logger.info("response_update_rejected response_id=%s reason=already_completed", response_id)
        raise FormStateError(
            f"response {response_id!r} is already completed",
            response_id=response_id,
        )
    publish(RESPONSE_SAVED, {"response_id": response_id, "completion_status": completion_status})
    return get_response(response_id)


def find_in_progress_response(survey_id: str, respondent_key: str) -> Optional[Dict[str, Any]]:
    """Return the newest started/in-progress response for a respondent, if any."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                f"""
                SELECT {_COLUMNS} FROM survey_response
                WHERE survey_id = :sid AND respondent_key = :rkey
                  AND completion_status IN (:started, :in_progress)
                ORDER BY updated_at DESC
                LIMIT 1
                """
            ),
            {"sid": survey_id, "rkey": respondent_key, "started": STARTED, "in_progress": IN_PROGRESS},
        ).fetchone()
    return _row_to_dict(row) if row is not None else None


def make_collaborators(
    response_id: str,
) -> Tuple[Callable[[Dict[str, Any], str], Awaitable[Dict[str, Any]]], Callable[[Dict[str, Any]], Awaitable[None]]]:
    """Build (on_submit, on_partial_save) coroutines bound to one response row.

    Blocking DB calls run in a worker thread so the event loop stays free.
    """

    async def on_submit(answers: Dict[str, Any], completion_status: str) -> Dict[str, Any]:
        return await anyio.to_thread.run_sync(update_response, response_id, answers, completion_status)

    async def on_partial_save(answers: Dict[str, Any]) -> None:
        await anyio.to_thread.run_sync(update_response, response_id, answers, IN_PROGRESS)

    return on_submit, on_partial_save


__all__ = [
    "create_response",
    "find_response",
    "get_response",
    "update_response",
    "find_in_progress_response",
    "make_collaborators",
]
