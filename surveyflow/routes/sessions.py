"""Form session endpoints.

A session wraps one FormController bound to one stored response. Handlers
are async because the controller's persistence calls and its autosave timer
live on the application's event loop.

Implements:
- POST /surveys/{survey_id}/sessions: start or resume a session
- GET /sessions/{session_id}: current section view
- PUT /sessions/{session_id}/answers/{question_id}: record an answer
- PUT /sessions/{session_id}/answers/{question_id}/custom: attach custom text
- DELETE /sessions/{session_id}/answers/{question_id}: clear an answer
- POST /sessions/{session_id}/next | /previous: navigate
- POST /sessions/{session_id}/submit | /save-draft | /autosave: persist
- DELETE /sessions/{session_id}: close the session

A session is dropped from the registry once it submits successfully, and
sessions idle past the configured timeout are closed on the next request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import anyio.to_thread
from fastapi import APIRouter, Body, Request, Response
from fastapi.responses import JSONResponse

from surveyflow.logic.errors import FormStateError
from surveyflow.logic.form_controller import FormController
from surveyflow.logic.repository_responses import (
    create_response,
    find_in_progress_response,
    get_response,
    make_collaborators,
)
from surveyflow.logic.repository_surveys import get_survey, is_survey_active
from surveyflow.logic.session_registry import SessionRegistry
from surveyflow.models.answer_upsert import AnswerUpsertModel, CustomInputModel, SessionStartModel
from surveyflow.models.response_types import (
    COMPLETED,
    STARTED,
    ActionOutcome,
    AnswerResult,
    NavigationResult,
    OutcomeEnvelope,
    SessionEnvelope,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# HTTP status per controller outcome; the body always carries the outcome
_OUTCOME_STATUS = {
    "completed": 200,
    "saved": 200,
    "invalid": 422,
    "failed": 502,
    "busy": 409,
    "unavailable": 409,
}


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


async def _controller(request: Request, session_id: str) -> FormController:
    registry = _registry(request)
    await registry.sweep()
    return registry.get(session_id)


def _outcome_response(outcome: ActionOutcome, controller: FormController) -> JSONResponse:
    body = OutcomeEnvelope(outcome=outcome, view=controller.view())
    return JSONResponse(body.model_dump(mode="json"), status_code=_OUTCOME_STATUS.get(outcome.status, 200))


@router.post("/surveys/{survey_id}/sessions", summary="Start or resume a form session", status_code=201)
async def start_session(
    survey_id: str,
    request: Request,
    payload: Optional[SessionStartModel] = Body(default=None),
) -> JSONResponse:
    payload = payload or SessionStartModel()
    survey = await anyio.to_thread.run_sync(get_survey, survey_id)
    if not await anyio.to_thread.run_sync(is_survey_active, survey_id):
        raise FormStateError(f"survey {survey_id!r} is not active", survey_id=survey_id)

    existing: Optional[Dict[str, Any]] = None
    if payload.response_id:
        existing = await anyio.to_thread.run_sync(get_response, payload.response_id)
        if existing["survey_id"] != survey_id:
            raise FormStateError(
                f"response {payload.response_id!r} belongs to another survey",
                response_id=payload.response_id,
            )
    elif payload.respondent_key:
        existing = await anyio.to_thread.run_sync(find_in_progress_response, survey_id, payload.respondent_key)

    if existing is not None and existing["completion_status"] == COMPLETED:
        raise FormStateError(
            "survey has already been completed",
            response_id=existing["id"],
            already_completed=True,
        )
    response = existing or await anyio.to_thread.run_sync(
        create_response, survey_id, {}, STARTED, payload.respondent_key
    )

    config = request.app.state.config
    registry = _registry(request)
    await registry.sweep()
    session_id = registry.new_session_id()
    on_submit, on_partial_save = make_collaborators(response["id"])
    controller = FormController(
        survey,
        on_submit=on_submit,
        on_partial_save=on_partial_save,
        initial_answers=response["answers"],
        autosave_interval=config.autosave.interval_seconds,
        session_id=session_id,
    )
    if config.autosave.enabled:
        controller.start_autosave()
    registry.register(session_id, controller, response_id=response["id"])

    body = SessionEnvelope(
        session_id=session_id,
        response_id=response["id"],
        resumed=existing is not None,
        view=controller.view(),
    )
    return JSONResponse(body.model_dump(mode="json"), status_code=201)


@router.get("/sessions/{session_id}", summary="Get the current section view")
async def get_session(session_id: str, request: Request) -> Dict[str, Any]:
    registry = _registry(request)
    controller = await _controller(request, session_id)
    body = SessionEnvelope(
        session_id=session_id,
        response_id=registry.response_id_for(session_id),
        view=controller.view(),
    )
    return body.model_dump(mode="json")


@router.put("/sessions/{session_id}/answers/{question_id}", summary="Record an answer")
async def put_answer(session_id: str, question_id: str, payload: AnswerUpsertModel, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    delta = controller.set_answer(question_id, payload.value)
    return AnswerResult(view=controller.view(), visibility_delta=delta).model_dump(mode="json")


@router.put("/sessions/{session_id}/answers/{question_id}/custom", summary="Attach custom input text")
async def put_custom_input(session_id: str, question_id: str, payload: CustomInputModel, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    delta = controller.set_custom_input(question_id, payload.text)
    return AnswerResult(view=controller.view(), visibility_delta=delta).model_dump(mode="json")


@router.delete("/sessions/{session_id}/answers/{question_id}", summary="Clear an answer")
async def delete_answer(session_id: str, question_id: str, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    delta = controller.clear_answer(question_id)
    return AnswerResult(view=controller.view(), visibility_delta=delta).model_dump(mode="json")


@router.post("/sessions/{session_id}/next", summary="Advance to the next section")
async def next_section(session_id: str, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    moved = controller.next()
    return NavigationResult(moved=moved, view=controller.view()).model_dump(mode="json")


@router.post("/sessions/{session_id}/previous", summary="Return to the previous section")
async def previous_section(session_id: str, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    moved = controller.previous()
    return NavigationResult(moved=moved, view=controller.view()).model_dump(mode="json")


@router.post("/sessions/{session_id}/submit", summary="Validate and submit the form")
async def submit_session(session_id: str, request: Request) -> JSONResponse:
    controller = await _controller(request, session_id)
    outcome = await controller.submit()
    response = _outcome_response(outcome, controller)
    if outcome.status == COMPLETED:
        # A submitted form accepts no further input
        await _registry(request).close(session_id)
    return response


@router.post("/sessions/{session_id}/save-draft", summary="Save the answers as a draft")
async def save_draft(session_id: str, request: Request) -> JSONResponse:
    controller = await _controller(request, session_id)
    outcome = await controller.save_draft()
    return _outcome_response(outcome, controller)


@router.post("/sessions/{session_id}/autosave", summary="Flush a best-effort partial save now")
async def autosave_now(session_id: str, request: Request) -> Dict[str, Any]:
    controller = await _controller(request, session_id)
    saved = await controller.autosave()
    return {"saved": saved, "view": controller.view().model_dump(mode="json")}


@router.delete("/sessions/{session_id}", summary="Close a form session", status_code=204)
async def close_session(session_id: str, request: Request) -> Response:
    registry = _registry(request)
    await registry.sweep()
    await registry.close(session_id)
    return Response(status_code=204)


__all__ = ["router"]
