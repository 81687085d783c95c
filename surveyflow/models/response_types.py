"""Pydantic models for form-session views and action outcomes."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from surveyflow.models.visibility import VisibilityDelta

COMPLETED = "completed"
IN_PROGRESS = "in_progress"
STARTED = "started"
ABANDONED = "abandoned"
COMPLETION_STATUSES = (STARTED, IN_PROGRESS, COMPLETED, ABANDONED)

OutcomeStatus = Literal["completed", "saved", "invalid", "failed", "busy", "unavailable"]


class ActionOutcome(BaseModel):
    """Result of submit / save-draft.

    - completed: submit succeeded; the form is in the Submitted state
    - saved: draft stored
    - invalid: required answers missing; `errors` lists them
    - failed: the persistence collaborator raised; `error` carries the reason
    - busy: another submit or save was already in flight
    - unavailable: save draft is not offered for this form
    """

    status: OutcomeStatus
    errors: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    current_section_index: int = 0

    @property
    def ok(self) -> bool:
        return self.status in ("completed", "saved")


class QuestionView(BaseModel):
    question: Dict[str, Any]
    value: Any = None
    error: Optional[str] = None
    custom_input_active: bool = False


class SectionView(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    questions: List[QuestionView]


class FormView(BaseModel):
    survey_id: str
    survey_name: str
    current_section_index: int
    total_sections: int
    progress: Optional[float] = None
    section: Optional[SectionView] = None
    is_first_section: bool
    is_last_section: bool
    save_draft_available: bool
    submitting: bool
    autosaving: bool
    submitted: bool
    last_saved_at: Optional[str] = None
    last_error: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    answers: Dict[str, Any] = Field(default_factory=dict)


class AnswerResult(BaseModel):
    view: FormView
    visibility_delta: VisibilityDelta


class NavigationResult(BaseModel):
    moved: bool
    view: FormView


class SessionEnvelope(BaseModel):
    session_id: str
    response_id: Optional[str] = None
    resumed: bool = False
    view: FormView


class OutcomeEnvelope(BaseModel):
    outcome: ActionOutcome
    view: FormView


__all__ = [
    "COMPLETED",
    "IN_PROGRESS",
    "STARTED",
    "ABANDONED",
    "COMPLETION_STATUSES",
    "ActionOutcome",
    "QuestionView",
    "SectionView",
    "FormView",
    "AnswerResult",
    "NavigationResult",
    "SessionEnvelope",
    "OutcomeEnvelope",
]
