from __future__ import annotations

"""Functional test bootstrap for the survey engine and its HTTP surface.

Points the app at a shared in-memory SQLite database before any imports of
surveyflow.main, disables the background autosave timer for HTTP sessions
(autosave is exercised directly against the controller instead), and
provides survey definitions reused across the suite.
"""

import os
from typing import Any, Dict

import pytest

os.environ["TEST_DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["AUTOSAVE_ENABLED"] = "false"
os.environ["AUTO_APPLY_MIGRATIONS"] = "true"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def branching_definition() -> Dict[str, Any]:
    """Two sections; the second only appears when q1 is answered 'yes'."""
    return {
        "id": "branching",
        "name": "Branching survey",
        "questions": {
            "sections": [
                {
                    "id": "s1",
                    "title": "Start",
                    "questions": [
                        {
                            "id": "q1",
                            "type": "radio",
                            "text": "Did you run an analysis?",
                            "required": True,
                            "options": [
                                {"value": "yes", "label": "Yes"},
                                {"value": "no", "label": "No"},
                            ],
                            "conditionalLogic": {"no": {"hideQuestions": ["q2"]}},
                        }
                    ],
                },
                {
                    "id": "s2",
                    "title": "Details",
                    "showWhen": {"q1": "yes"},
                    "questions": [
                        {
                            "id": "q2",
                            "type": "text",
                            "text": "What did it show?",
                            "required": True,
                            "showWhen": {"q1": "yes"},
                        }
                    ],
                },
            ]
        },
        "settings": {"show_progress": True, "save_partial": True},
    }


@pytest.fixture
def three_section_definition() -> Dict[str, Any]:
    """Three always-visible sections with required questions and a custom input."""
    return {
        "id": "feedback",
        "name": "Feedback",
        "sections": [
            {
                "id": "about",
                "title": "About you",
                "questions": [
                    {
                        "id": "role",
                        "type": "radio",
                        "text": "Your role",
                        "required": True,
                        "options": [
                            {"value": "ceo", "label": "CEO"},
                            {"value": "cfo", "label": "CFO"},
                            {"value": "other", "label": "Other"},
                        ],
                        "customInput": {"showWhen": "other", "placeholder": "Describe your role"},
                    },
                    {"id": "company_name", "type": "text", "text": "Company", "required": False},
                ],
            },
            {
                "id": "usage",
                "title": "Usage",
                "questions": [
                    {
                        "id": "features",
                        "type": "checkbox",
                        "text": "Features used",
                        "required": True,
                        "options": [
                            {"value": "analysis", "label": "Analysis"},
                            {"value": "funding", "label": "Funding"},
                            {"value": "other", "label": "Other"},
                        ],
                        "customInput": {"showWhen": "other", "placeholder": "Which?"},
                    },
                    {
                        "id": "satisfaction",
                        "type": "scale",
                        "text": "How satisfied are you?",
                        "required": True,
                        "scale": {"min": 1, "max": 5, "minLabel": "Poor", "maxLabel": "Great"},
                    },
                ],
            },
            {
                "id": "wrap_up",
                "title": "Wrap up",
                "questions": [
                    {"id": "comments", "type": "textarea", "text": "Anything else?", "required": False},
                    {"id": "contact_email", "type": "email", "text": "Email", "required": True},
                ],
            },
        ],
        "settings": {"show_progress": True, "save_partial": True},
    }


class RecordingCollaborators:
    """Async stand-ins for on_submit / on_partial_save that record calls."""

    def __init__(self, fail_submit: bool = False, fail_partial: bool = False) -> None:
        self.submits: list[tuple[dict, str]] = []
        self.partials: list[dict] = []
        self.fail_submit = fail_submit
        self.fail_partial = fail_partial

    async def on_submit(self, answers: dict, completion_status: str) -> dict:
        self.submits.append((answers, completion_status))
        if self.fail_submit:
            raise RuntimeError("network down")
        return {"id": "resp-1", "completion_status": completion_status}

    async def on_partial_save(self, answers: dict) -> None:
        self.partials.append(answers)
        if self.fail_partial:
            raise RuntimeError("autosave endpoint unavailable")


@pytest.fixture
def collaborators() -> RecordingCollaborators:
    return RecordingCollaborators()


@pytest.fixture
def failing_collaborators() -> RecordingCollaborators:
    return RecordingCollaborators(fail_submit=True, fail_partial=True)
