"""Canonicalization helpers for recorded answer values.

Answers are scalars, lists (multi-select) or composite dicts produced by a
custom-input augmentation: `{main, custom}` for single choice and
`{options, custom}` for multi-select. These helpers give the rest of the
engine one place to ask "is it empty", "what is its lookup key" and "what
did the respondent actually pick".
"""

from __future__ import annotations

from typing import Any, Optional

from surveyflow.models.question_kind import QuestionKind
from surveyflow.models.survey import Question

MAIN_KEY = "main"
OPTIONS_KEY = "options"
CUSTOM_KEY = "custom"


def is_composite(value: Any) -> bool:
    return isinstance(value, dict) and (MAIN_KEY in value or OPTIONS_KEY in value)


def main_value(value: Any) -> Any:
    """Return the selection part of an answer, unwrapping composites."""
    if isinstance(value, dict):
        if MAIN_KEY in value:
            return value.get(MAIN_KEY)
        if OPTIONS_KEY in value:
            return value.get(OPTIONS_KEY)
    return value


def is_empty_answer(value: Any) -> bool:
    """Return True for None, empty string, empty list, or an empty composite.

    Whitespace-only strings count as answered; numbers such as 0 and booleans
    such as False are real answers.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if is_composite(value):
        return is_empty_answer(main_value(value))
    return False


def canonical_scalar(value: Any) -> Optional[str]:
    """Return a stable string representation for a scalar answer.

    - Booleans -> "true" / "false"
    - Numbers  -> integer form when integral, else decimal string
    - Text     -> as-is string
    - None, lists and dicts -> None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        f = float(value)
        if f.is_integer():
            return str(int(f))
        return str(f)
    if isinstance(value, str):
        return value
    return None


def conditional_key(value: Any) -> Optional[str]:
    """Return the conditionalLogic lookup key for an answer.

    Single-choice composites key on their main value; multi-select answers
    have no scalar form and therefore never trigger an effect.
    """
    if isinstance(value, dict):
        if MAIN_KEY in value:
            return canonical_scalar(value.get(MAIN_KEY))
        return None
    return canonical_scalar(value)


def custom_input_triggered(question: Question, value: Any) -> bool:
    """Return True when the answer selects the question's custom-input trigger."""
    ci = question.custom_input
    if ci is None:
        return False
    picked = main_value(value)
    if isinstance(picked, (list, tuple)):
        return ci.show_when in picked
    return picked is not None and picked == ci.show_when


def attach_custom_input(question: Question, value: Any, custom_text: str) -> Any:
    """Return the composite answer carrying `custom_text` for a triggered question."""
    picked = main_value(value)
    if question.type in QuestionKind.MULTI_SELECT or isinstance(picked, (list, tuple)):
        return {OPTIONS_KEY: list(picked or []), CUSTOM_KEY: custom_text}
    return {MAIN_KEY: picked if picked is not None else question.custom_input.show_when, CUSTOM_KEY: custom_text}


def normalize_answer(question: Question, value: Any) -> Any:
    """Drop stale custom text when a new selection no longer triggers it.

    A composite whose selection still triggers the custom input is kept as-is;
    otherwise the bare selection is recorded.
    """
    if not is_composite(value):
        return value
    if custom_input_triggered(question, value):
        return value
    return main_value(value)


__all__ = [
    "MAIN_KEY",
    "OPTIONS_KEY",
    "CUSTOM_KEY",
    "is_composite",
    "main_value",
    "is_empty_answer",
    "canonical_scalar",
    "conditional_key",
    "custom_input_triggered",
    "attach_custom_input",
    "normalize_answer",
]
