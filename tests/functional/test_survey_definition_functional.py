"""Functional tests for survey definition parsing and integrity checks."""

from __future__ import annotations

import copy

import pytest

from surveyflow.logic.errors import SurveyDefinitionError
from surveyflow.models.survey import (
    HideAllOtherQuestions,
    HideQuestion,
    SurveyDefinition,
    load_definition,
)


def test_nested_template_shape_is_lifted_into_sections(branching_definition):
    definition = load_definition(branching_definition)

    assert [s.id for s in definition.sections] == ["s1", "s2"]
    assert definition.sections[1].show_when == {"q1": "yes"}
    assert definition.settings.save_partial is True
    assert definition.find_question("q2").required is True
    assert definition.section_of("q2").id == "s2"


def test_settings_default_when_absent(three_section_definition):
    payload = copy.deepcopy(three_section_definition)
    payload.pop("settings")
    definition = load_definition(payload)

    assert definition.settings.show_progress is True
    assert definition.settings.save_partial is True


def test_hide_targets_parse_into_closed_union():
    definition = load_definition(
        {
            "id": "s",
            "sections": [
                {
                    "id": "a",
                    "questions": [
                        {
                            "id": "gate",
                            "type": "radio",
                            "options": [{"value": "stop", "label": "Stop"}],
                            "conditionalLogic": {
                                "stop": {"hideQuestions": ["all_other_questions", "other"], "showEncouragement": True}
                            },
                        },
                        {"id": "other", "type": "text"},
                    ],
                }
            ],
        }
    )
    effect = definition.find_question("gate").conditional_logic["stop"]

    assert isinstance(effect.hide_questions[0], HideAllOtherQuestions)
    assert isinstance(effect.hide_questions[1], HideQuestion)
    assert effect.hide_questions[1].question_id == "other"
    # Presentation-only keys survive and the sentinel is written back on dump
    wire = definition.to_wire()
    dumped = wire["sections"][0]["questions"][0]["conditionalLogic"]["stop"]
    assert dumped["hideQuestions"] == ["all_other_questions", "other"]
    assert dumped["showEncouragement"] is True


def test_question_alias_and_camel_case_fields_are_accepted():
    definition = load_definition(
        {
            "id": "s",
            "sections": [
                {
                    "id": "a",
                    "questions": [
                        {
                            "id": "rate",
                            "type": "rating",
                            "question": "Rate us",
                            "scale": {"min": 0, "max": 10, "minLabel": "Never", "maxLabel": "Always"},
                        }
                    ],
                }
            ],
        }
    )
    q = definition.find_question("rate")

    assert q.text == "Rate us"
    assert q.scale.min_label == "Never"
    assert q.scale.max == 10


def test_boolean_conditional_keys_are_stringified():
    definition = SurveyDefinition.model_validate(
        {
            "id": "s",
            "sections": [
                {
                    "id": "a",
                    "questions": [
                        {"id": "flag", "type": "radio", "conditionalLogic": {True: {"hideQuestions": ["x"]}}},
                        {"id": "x", "type": "text"},
                    ],
                }
            ],
        }
    )

    assert list(definition.find_question("flag").conditional_logic) == ["true"]


@pytest.mark.parametrize(
    "mutate, fragment",
    [
        (lambda d: d["sections"][0]["questions"].append({"id": "role", "type": "text"}), "duplicate question id"),
        (lambda d: d["sections"].append({"id": "about", "questions": []}), "duplicate section id"),
        (lambda d: d["sections"][1].update({"showWhen": {"missing": "x"}}), "unknown question"),
        (lambda d: d["sections"][0]["questions"][0].update({"type": "slider"}), "unsupported question type"),
        (lambda d: d["sections"][1]["questions"][1].update({"scale": {"min": 5, "max": 5}}), "scale.min"),
        (
            lambda d: d["sections"][0]["questions"][0].update(
                {"conditionalLogic": {"ceo": {"hideQuestions": ["nope"]}}}
            ),
            "hides unknown question",
        ),
    ],
)
def test_invalid_definitions_raise_definition_error(three_section_definition, mutate, fragment):
    payload = copy.deepcopy(three_section_definition)
    mutate(payload)

    with pytest.raises(SurveyDefinitionError) as excinfo:
        load_definition(payload)

    assert excinfo.value.code == "SURVEY_DEFINITION_INVALID"
    assert any(fragment in e["msg"] for e in excinfo.value.context["errors"])
