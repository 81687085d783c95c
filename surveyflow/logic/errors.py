"""Error hierarchy for the survey engine and its mapping to problem+json.

User-input problems are never raised: they surface as per-question
validation errors. The exceptions here signal malformed definitions or
calls that the current form state does not allow.
"""

from __future__ import annotations

from typing import Any, Dict


class SurveyFlowError(Exception):
    """Base class for engine errors carrying a stable code token."""

    code = "SURVEYFLOW_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class SurveyDefinitionError(SurveyFlowError):
    code = "SURVEY_DEFINITION_INVALID"


class SurveyNotFoundError(SurveyFlowError):
    code = "SURVEY_NOT_FOUND"


class ResponseNotFoundError(SurveyFlowError):
    code = "RESPONSE_NOT_FOUND"


class SessionNotFoundError(SurveyFlowError):
    code = "SESSION_NOT_FOUND"


class UnknownQuestionError(SurveyFlowError):
    code = "QUESTION_NOT_FOUND"


class CustomInputNotActiveError(SurveyFlowError):
    code = "CUSTOM_INPUT_NOT_ACTIVE"


class FormStateError(SurveyFlowError):
    code = "FORM_STATE_CONFLICT"


# Single source of truth for HTTP status per error class
ERROR_STATUS_MAP: Dict[type, int] = {
    SurveyDefinitionError: 422,
    SurveyNotFoundError: 404,
    ResponseNotFoundError: 404,
    SessionNotFoundError: 404,
    UnknownQuestionError: 404,
    CustomInputNotActiveError: 409,
    FormStateError: 409,
}


def status_for(exc: SurveyFlowError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[cls]
    return 400


__all__ = [
    "SurveyFlowError",
    "SurveyDefinitionError",
    "SurveyNotFoundError",
    "ResponseNotFoundError",
    "SessionNotFoundError",
    "UnknownQuestionError",
    "CustomInputNotActiveError",
    "FormStateError",
    "ERROR_STATUS_MAP",
    "status_for",
]
