"""Required-answer validation over the currently visible form.

Validation is synchronous and pure: it reads answers and returns a keyed
error map, it never mutates the answers. Invisible questions are never
validated.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from surveyflow.logic.answer_canonical import is_empty_answer
from surveyflow.logic.visibility_rules import visible_questions, visible_sections
from surveyflow.models.survey import Section, SurveyDefinition

REQUIRED_FIELD_MISSING = "requiredFieldMissing"


def validate_section(section: Section, answers: Mapping[str, Any]) -> Dict[str, str]:
    """Return {question_id: error_code} for visible required questions left empty."""
    errors: Dict[str, str] = {}
    for q in visible_questions(section, answers):
        if q.required and is_empty_answer(answers.get(q.id)):
            errors[q.id] = REQUIRED_FIELD_MISSING
    return errors


def validate_sections(sections: Iterable[Section], answers: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for section in sections:
        errors.update(validate_section(section, answers))
    return errors


def validate_all(definition: SurveyDefinition, answers: Mapping[str, Any]) -> Dict[str, str]:
    """Validate every visible section of the definition."""
    return validate_sections(visible_sections(definition, answers), answers)


def first_error_section_index(
    sections: list[Section],
    errors: Mapping[str, str],
) -> int:
    """Return the index of the first section holding an error, or -1."""
    for idx, section in enumerate(sections):
        if any(q.id in errors for q in section.questions):
            return idx
    return -1


__all__ = [
    "REQUIRED_FIELD_MISSING",
    "validate_section",
    "validate_sections",
    "validate_all",
    "first_error_section_index",
]
