"""QuestionKind enumeration for the question types a survey may declare.

Provides a simple constants container instead of an Enum to keep imports
lightweight and to compare directly against wire strings.
"""

from __future__ import annotations


class QuestionKind:
    RADIO = "radio"
    CHECKBOX = "checkbox"
    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    RATING = "rating"
    TEXTAREA = "textarea"
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"

    CHOICE = frozenset({RADIO, CHECKBOX, MULTIPLE_CHOICE})
    MULTI_SELECT = frozenset({CHECKBOX, MULTIPLE_CHOICE})
    SCALED = frozenset({SCALE, RATING})
    FREE_TEXT = frozenset({TEXTAREA, TEXT, EMAIL})
    ALL = frozenset({RADIO, CHECKBOX, MULTIPLE_CHOICE, SCALE, RATING, TEXTAREA, TEXT, NUMBER, EMAIL})


__all__ = ["QuestionKind"]
