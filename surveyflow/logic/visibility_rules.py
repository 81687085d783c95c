"""Visibility rule evaluation helpers.

Centralizes equality-based visibility checks and set computations used by
the form controller and the HTTP layer to avoid duplication and drift.
All functions are pure: they never mutate the answers they are given.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from surveyflow.models.survey import Question, Section, SurveyDefinition


class _Conditional(Protocol):
    show_when: Optional[dict]


def predicate_matches(predicate: Optional[Mapping[str, Any]], answers: Mapping[str, Any]) -> bool:
    """Return True if every (question_id, expected) pair equals the recorded answer.

    Equality is strict: no type coercion and no unwrapping of composite
    answers. A missing answer never matches. An absent or empty predicate
    always matches.
    """
    if not predicate:
        return True
    for question_id, expected in predicate.items():
        if question_id not in answers:
            return False
        actual = answers[question_id]
        # bool is an int subclass in Python; keep True distinct from 1
        if isinstance(actual, bool) != isinstance(expected, bool):
            return False
        if actual != expected:
            return False
    return True


def is_visible(element: _Conditional, answers: Mapping[str, Any]) -> bool:
    """Return True if a section or question is visible under the current answers."""
    return predicate_matches(getattr(element, "show_when", None), answers)


def visible_sections(definition: SurveyDefinition, answers: Mapping[str, Any]) -> list[Section]:
    """Return the sections whose predicate holds, in definition order."""
    return [s for s in definition.sections if is_visible(s, answers)]


def visible_questions(section: Section, answers: Mapping[str, Any]) -> list[Question]:
    """Return the questions of a section whose predicate holds, in order."""
    return [q for q in section.questions if is_visible(q, answers)]


def compute_visible_question_ids(definition: SurveyDefinition, answers: Mapping[str, Any]) -> set[str]:
    """Compute the set of question ids that are visible inside visible sections."""
    visible: set[str] = set()
    for section in visible_sections(definition, answers):
        for q in visible_questions(section, answers):
            visible.add(q.id)
    return visible


__all__ = [
    "predicate_matches",
    "is_visible",
    "visible_sections",
    "visible_questions",
    "compute_visible_question_ids",
]
