"""Functional tests for value-triggered hide effects."""

from __future__ import annotations

import pytest

from surveyflow.logic.conditional_logic import apply_conditional_logic
from surveyflow.models.survey import load_definition


@pytest.fixture
def gated_definition():
    return load_definition(
        {
            "id": "gated",
            "sections": [
                {
                    "id": "intro",
                    "questions": [
                        {
                            "id": "ran_analysis",
                            "type": "radio",
                            "options": [
                                {"value": "yes", "label": "Yes"},
                                {"value": "no", "label": "No"},
                            ],
                            "conditionalLogic": {
                                "no": {"hideQuestions": ["all_other_questions"], "showEncouragement": True}
                            },
                        },
                        {"id": "intro_note", "type": "text"},
                    ],
                },
                {
                    "id": "details",
                    "questions": [
                        {"id": "tool", "type": "text"},
                        {
                            "id": "score",
                            "type": "scale",
                            "scale": {"min": 1, "max": 5},
                            "conditionalLogic": {"1": {"hideQuestions": ["tool"]}},
                        },
                        {
                            "id": "consent",
                            "type": "radio",
                            "options": [{"value": True, "label": "Yes"}, {"value": False, "label": "No"}],
                            "conditionalLogic": {"false": {"hideQuestions": ["tool"]}},
                        },
                        {
                            "id": "role",
                            "type": "radio",
                            "options": [{"value": "other", "label": "Other"}],
                            "customInput": {"showWhen": "other"},
                            "conditionalLogic": {"other": {"hideQuestions": ["tool"]}},
                        },
                    ],
                },
            ],
        }
    )


def test_all_other_questions_clears_every_other_section(gated_definition):
    answers = {"ran_analysis": "no", "intro_note": "kept", "tool": "excel", "score": 4}

    updated = apply_conditional_logic(gated_definition, "ran_analysis", "no", answers)

    assert updated == {"ran_analysis": "no", "intro_note": "kept"}
    # input is left untouched
    assert "tool" in answers


def test_unmatched_value_is_a_no_op(gated_definition):
    answers = {"ran_analysis": "yes", "tool": "excel"}

    assert apply_conditional_logic(gated_definition, "ran_analysis", "yes", answers) == answers


def test_numeric_answer_matches_integral_key(gated_definition):
    answers = {"tool": "excel", "score": 1.0}

    assert apply_conditional_logic(gated_definition, "score", 1.0, answers) == {"score": 1.0}


def test_boolean_answer_matches_lowercase_key(gated_definition):
    answers = {"tool": "excel", "consent": False}

    assert apply_conditional_logic(gated_definition, "consent", False, answers) == {"consent": False}


def test_composite_answer_keys_on_main_value(gated_definition):
    composite = {"main": "other", "custom": "analyst"}
    answers = {"tool": "excel", "role": composite}

    assert apply_conditional_logic(gated_definition, "role", composite, answers) == {"role": composite}


def test_list_answer_never_triggers(gated_definition):
    answers = {"tool": "excel", "role": ["other"]}

    assert apply_conditional_logic(gated_definition, "role", ["other"], answers) == answers


def test_unknown_question_is_a_no_op(gated_definition):
    answers = {"tool": "excel"}

    assert apply_conditional_logic(gated_definition, "nope", "no", answers) == answers


@pytest.mark.parametrize(
    "question_id, value, answers",
    [
        ("score", 1, {"tool": "excel", "score": 1}),
        ("ran_analysis", "no", {"ran_analysis": "no", "intro_note": "kept", "tool": "excel", "score": 4}),
    ],
)
def test_apply_conditional_logic_is_idempotent(gated_definition, question_id, value, answers):
    once = apply_conditional_logic(gated_definition, question_id, value, answers)
    twice = apply_conditional_logic(gated_definition, question_id, value, once)

    assert twice == once
    assert once != answers
