"""End-to-end tests for the survey HTTP surface.

Runs the in-process FastAPI app against the shared in-memory SQLite
database. The client is entered as a context manager so startup migrations
run and shutdown closes any live sessions.
"""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from surveyflow.main import create_app

API = "/api/v1"


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def branching_survey(client, branching_definition):
    resp = client.post(f"{API}/surveys", json=branching_definition)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def feedback_survey(client, three_section_definition):
    resp = client.post(f"{API}/surveys", json=three_section_definition)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _start(client, survey_id, **body):
    resp = client.post(f"{API}/surveys/{survey_id}/sessions", json=body or None)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["db"] is True


def test_survey_roundtrip_and_listing(client, branching_survey):
    assert "sections" in branching_survey
    assert branching_survey["sections"][1]["showWhen"] == {"q1": "yes"}

    fetched = client.get(f"{API}/surveys/branching").json()
    assert fetched == branching_survey

    listed = client.get(f"{API}/surveys").json()["surveys"]
    assert any(s["id"] == "branching" for s in listed)


def test_invalid_definition_is_problem_json(client):
    resp = client.post(
        f"{API}/surveys",
        json={"id": "bad", "sections": [{"id": "a", "questions": [{"id": "x", "type": "slider"}]}]},
    )

    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["code"] == "SURVEY_DEFINITION_INVALID"
    assert body["errors"]


def test_unknown_survey_and_session_are_404(client):
    assert client.get(f"{API}/surveys/missing").json()["code"] == "SURVEY_NOT_FOUND"
    resp = client.get(f"{API}/sessions/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["code"] == "SESSION_NOT_FOUND"


def test_branching_flow_over_http(client, branching_survey):
    started = _start(client, "branching")
    sid = started["session_id"]
    assert started["resumed"] is False
    assert started["view"]["total_sections"] == 1

    resp = client.put(f"{API}/sessions/{sid}/answers/q1", json={"value": "yes"})
    assert resp.status_code == 200
    assert resp.json()["view"]["total_sections"] == 2
    assert resp.json()["visibility_delta"]["now_visible"] == ["q2"]

    assert client.post(f"{API}/sessions/{sid}/next").json()["moved"] is True
    client.put(f"{API}/sessions/{sid}/answers/q2", json={"value": "it grew"})
    client.post(f"{API}/sessions/{sid}/previous")

    resp = client.put(f"{API}/sessions/{sid}/answers/q1", json={"value": "no"})
    body = resp.json()
    assert body["view"]["total_sections"] == 1
    assert body["visibility_delta"]["suppressed_answers"] == ["q2"]
    assert "q2" not in body["view"]["answers"]

    resp = client.post(f"{API}/sessions/{sid}/submit")
    assert resp.status_code == 200
    assert resp.json()["outcome"]["status"] == "completed"

    stored = client.get(f"{API}/responses/{started['response_id']}").json()
    assert stored["completion_status"] == "completed"
    assert stored["answers"] == {"q1": "no"}
    assert stored["completed_at"]

    # the submitted session is released
    assert sid not in client.app.state.sessions
    assert len(client.app.state.sessions) == 0
    resp = client.put(f"{API}/sessions/{sid}/answers/q1", json={"value": "yes"})
    assert resp.status_code == 404
    assert resp.json()["code"] == "SESSION_NOT_FOUND"


def test_submit_with_missing_answer_returns_422_and_jumps(client, feedback_survey):
    sid = _start(client, "feedback")["session_id"]
    client.put(f"{API}/sessions/{sid}/answers/role", json={"value": "ceo"})
    client.post(f"{API}/sessions/{sid}/next")
    client.put(f"{API}/sessions/{sid}/answers/features", json={"value": ["analysis"]})
    client.put(f"{API}/sessions/{sid}/answers/satisfaction", json={"value": 5})
    client.post(f"{API}/sessions/{sid}/next")
    client.put(f"{API}/sessions/{sid}/answers/contact_email", json={"value": "a@example.com"})
    client.delete(f"{API}/sessions/{sid}/answers/features")

    resp = client.post(f"{API}/sessions/{sid}/submit")

    assert resp.status_code == 422
    body = resp.json()
    assert body["outcome"]["status"] == "invalid"
    assert body["outcome"]["errors"] == {"features": "requiredFieldMissing"}
    assert body["view"]["current_section_index"] == 1
    assert body["view"]["errors"] == {"features": "requiredFieldMissing"}


def test_next_blocked_reports_errors(client, feedback_survey):
    sid = _start(client, "feedback")["session_id"]

    body = client.post(f"{API}/sessions/{sid}/next").json()

    assert body["moved"] is False
    assert body["view"]["errors"] == {"role": "requiredFieldMissing"}


def test_submit_before_last_section_is_conflict(client, feedback_survey):
    sid = _start(client, "feedback")["session_id"]

    resp = client.post(f"{API}/sessions/{sid}/submit")

    assert resp.status_code == 409
    assert resp.json()["code"] == "FORM_STATE_CONFLICT"


def test_custom_input_endpoint(client, feedback_survey):
    sid = _start(client, "feedback")["session_id"]

    resp = client.put(f"{API}/sessions/{sid}/answers/role/custom", json={"text": "Founder"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "CUSTOM_INPUT_NOT_ACTIVE"

    client.put(f"{API}/sessions/{sid}/answers/role", json={"value": "other"})
    resp = client.put(f"{API}/sessions/{sid}/answers/role/custom", json={"text": "Founder"})
    assert resp.status_code == 200
    assert resp.json()["view"]["answers"]["role"] == {"main": "other", "custom": "Founder"}


def test_draft_then_resume_by_respondent_key(client, feedback_survey):
    key = f"respondent-{uuid.uuid4()}"
    started = _start(client, "feedback", respondent_key=key)
    sid = started["session_id"]
    client.put(f"{API}/sessions/{sid}/answers/role", json={"value": "cfo"})

    resp = client.post(f"{API}/sessions/{sid}/save-draft")
    assert resp.status_code == 200
    assert resp.json()["outcome"]["status"] == "saved"
    assert resp.json()["view"]["last_saved_at"]

    assert client.delete(f"{API}/sessions/{sid}").status_code == 204
    assert client.get(f"{API}/sessions/{sid}").status_code == 404

    resumed = _start(client, "feedback", respondent_key=key)
    assert resumed["resumed"] is True
    assert resumed["response_id"] == started["response_id"]
    assert resumed["view"]["answers"] == {"role": "cfo"}


def test_autosave_endpoint_persists_in_progress(client, feedback_survey):
    started = _start(client, "feedback")
    sid = started["session_id"]
    assert client.post(f"{API}/sessions/{sid}/autosave").json()["saved"] is False

    client.put(f"{API}/sessions/{sid}/answers/role", json={"value": "ceo"})
    body = client.post(f"{API}/sessions/{sid}/autosave").json()

    assert body["saved"] is True
    stored = client.get(f"{API}/responses/{started['response_id']}").json()
    assert stored["completion_status"] == "in_progress"
    assert stored["answers"] == {"role": "ceo"}


def test_completed_response_cannot_be_resumed(client, branching_survey):
    started = _start(client, "branching")
    sid = started["session_id"]
    client.put(f"{API}/sessions/{sid}/answers/q1", json={"value": "no"})
    client.post(f"{API}/sessions/{sid}/submit")

    resp = client.post(f"{API}/surveys/branching/sessions", json={"response_id": started["response_id"]})

    assert resp.status_code == 409
    assert resp.json()["already_completed"] is True


def test_save_partial_disabled_over_http(client, three_section_definition):
    three_section_definition["id"] = "feedback-no-partial"
    three_section_definition["settings"]["save_partial"] = False
    client.post(f"{API}/surveys", json=three_section_definition)
    sid = _start(client, "feedback-no-partial")["session_id"]
    client.put(f"{API}/sessions/{sid}/answers/role", json={"value": "ceo"})

    resp = client.post(f"{API}/sessions/{sid}/save-draft")

    assert resp.status_code == 409
    assert resp.json()["outcome"]["status"] == "unavailable"
    assert client.post(f"{API}/sessions/{sid}/autosave").json()["saved"] is False


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-Id": "abc-123"})

    assert resp.headers["X-Request-Id"] == "abc-123"


def test_malformed_answer_payload_is_request_invalid(client, feedback_survey):
    sid = _start(client, "feedback")["session_id"]

    resp = client.put(f"{API}/sessions/{sid}/answers/role", json={"wrong": 1})

    assert resp.status_code == 422
    assert resp.json()["code"] == "REQUEST_INVALID"
