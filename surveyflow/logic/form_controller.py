"""Per-session survey form controller.

The controller owns one AnswerSet for the lifetime of a form session and
drives the section state machine:

    Section[0] -> Section[1] -> ... -> Section[N-1] -> Submitted

N counts only the currently visible sections, so it changes as branching
answers change. Visibility is derived from the answers after every mutation;
answers to questions that stop being visible are dropped on the spot so they
can never be submitted.

Persistence is delegated to two injected coroutine callables:
- on_submit(answers, completion_status) for submit ("completed") and save
  draft ("in_progress")
- on_partial_save(answers) for autosave; optional, and without it both
  autosave and save draft are disabled
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from surveyflow.logic.answer_canonical import (
    attach_custom_input,
    custom_input_triggered,
    normalize_answer,
)
from surveyflow.logic.autosave import DEFAULT_INTERVAL_SECONDS, AutosaveTimer
from surveyflow.logic.conditional_logic import apply_conditional_logic
from surveyflow.logic.errors import CustomInputNotActiveError, FormStateError, UnknownQuestionError
from surveyflow.logic.events import AUTOSAVE_FAILED, SESSION_CLOSED, SURVEY_SUBMITTED, publish
from surveyflow.logic.validation import first_error_section_index, validate_section, validate_sections
from surveyflow.logic.visibility_delta import compute_visibility_delta
from surveyflow.logic.visibility_rules import (
    compute_visible_question_ids,
    visible_questions,
    visible_sections,
)
from surveyflow.models.response_types import (
    COMPLETED,
    IN_PROGRESS,
    STARTED,
    ActionOutcome,
    FormView,
    QuestionView,
    SectionView,
)
from surveyflow.models.survey import Question, Section, SurveyDefinition, load_definition
from surveyflow.models.visibility import VisibilityDelta

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[Dict[str, Any], str], Awaitable[Any]]
PartialSaveCallback = Callable[[Dict[str, Any]], Awaitable[Any]]


class FormController:
    def __init__(
        self,
        definition: SurveyDefinition | dict,
        on_submit: SubmitCallback,
        on_partial_save: Optional[PartialSaveCallback] = None,
        initial_answers: Optional[Dict[str, Any]] = None,
        autosave_interval: float = DEFAULT_INTERVAL_SECONDS,
        session_id: Optional[str] = None,
    ) -> None:
        self.definition = load_definition(definition)
        self.session_id = session_id
        self._on_submit = on_submit
        self._on_partial_save = on_partial_save
        self._question_ids = {q.id for q in self.definition.iter_questions()}

        self.answers: Dict[str, Any] = dict(initial_answers or {})
        self.errors: Dict[str, str] = {}
        self.current_section_index = 0
        self.completion_status = STARTED
        self.submitting = False
        self.autosaving = False
        self.submitted = False
        self.closed = False
        self.last_saved_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        # Set while no partial save is in flight; submit and save draft wait on it
        self._autosave_idle = asyncio.Event()
        self._autosave_idle.set()

        self._timer = AutosaveTimer(
            self.autosave,
            interval=autosave_interval,
            name=f"autosave-{session_id or self.definition.id}",
        )

        # A resumed draft may hold answers to questions that are hidden now
        dropped = self._prune_invisible()
        if dropped:
            logger.info(
                "resumed_answers_pruned survey_id=%s dropped=%s",
                self.definition.id,
                sorted(dropped),
            )

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def visible_sections(self) -> List[Section]:
        return visible_sections(self.definition, self.answers)

    @property
    def total_sections(self) -> int:
        return len(self.visible_sections)

    @property
    def current_section(self) -> Optional[Section]:
        sections = self.visible_sections
        if 0 <= self.current_section_index < len(sections):
            return sections[self.current_section_index]
        return None

    @property
    def visible_questions(self) -> List[Question]:
        section = self.current_section
        return visible_questions(section, self.answers) if section is not None else []

    @property
    def is_first_section(self) -> bool:
        return self.current_section_index == 0

    @property
    def is_last_section(self) -> bool:
        return self.current_section_index == self.total_sections - 1

    @property
    def progress(self) -> float:
        total = self.total_sections
        if total == 0:
            return 0.0
        return (self.current_section_index + 1) / total * 100

    @property
    def autosave_enabled(self) -> bool:
        return self._on_partial_save is not None and self.definition.settings.save_partial

    @property
    def save_draft_available(self) -> bool:
        return self.autosave_enabled and not self.is_last_section and not self.submitted

    @property
    def autosave_running(self) -> bool:
        return self._timer.running

    # ------------------------------------------------------------------
    # Answer mutation
    # ------------------------------------------------------------------

    def set_answer(self, question_id: str, value: Any) -> VisibilityDelta:
        """Record an answer and re-derive everything that depends on it.

        Order matters: record, clear the question's error, apply the one-shot
        hide effect, drop answers of questions that are no longer visible,
        then drop stale errors and clamp the section index.
        """
        self._ensure_open()
        question = self._require_question(question_id)

        before = dict(self.answers)
        pre_visible = compute_visible_question_ids(self.definition, before)

        value = normalize_answer(question, value)
        updated = dict(before)
        updated[question_id] = value
        self.errors.pop(question_id, None)
        self.answers = apply_conditional_logic(self.definition, question_id, value, updated)

        dropped = self._prune_invisible()
        if question_id in dropped:
            logger.info(
                "answer_dropped_invisible survey_id=%s question_id=%s",
                self.definition.id,
                question_id,
            )

        post_visible = compute_visible_question_ids(self.definition, self.answers)
        now_visible, now_hidden, suppressed = compute_visibility_delta(
            pre_visible,
            post_visible,
            lambda qid: qid in before,
        )
        self.errors = {qid: code for qid, code in self.errors.items() if qid in post_visible}
        self._clamp_index()
        return VisibilityDelta(
            now_visible=now_visible,
            now_hidden=now_hidden,
            suppressed_answers=suppressed,
        )

    def set_custom_input(self, question_id: str, text: str) -> VisibilityDelta:
        """Attach free text to an answer whose selection triggers the custom input."""
        self._ensure_open()
        question = self._require_question(question_id)
        current = self.answers.get(question_id)
        if question.custom_input is None or not custom_input_triggered(question, current):
            raise CustomInputNotActiveError(
                f"custom input is not active for question {question_id!r}",
                question_id=question_id,
            )
        return self.set_answer(question_id, attach_custom_input(question, current, text))

    def clear_answer(self, question_id: str) -> VisibilityDelta:
        """Remove an answer; downstream answers that lose visibility go with it."""
        self._ensure_open()
        self._require_question(question_id)
        before = dict(self.answers)
        pre_visible = compute_visible_question_ids(self.definition, before)
        self.answers.pop(question_id, None)
        self._prune_invisible()
        post_visible = compute_visible_question_ids(self.definition, self.answers)
        now_visible, now_hidden, suppressed = compute_visibility_delta(
            pre_visible, post_visible, lambda qid: qid in before
        )
        self.errors = {qid: code for qid, code in self.errors.items() if qid in post_visible}
        self._clamp_index()
        return VisibilityDelta(now_visible=now_visible, now_hidden=now_hidden, suppressed_answers=suppressed)

    # ------------------------------------------------------------------
    # Validation and navigation
    # ------------------------------------------------------------------

    def validate_current_section(self) -> bool:
        section = self.current_section
        self.errors = validate_section(section, self.answers) if section is not None else {}
        return not self.errors

    def validate_all(self) -> Dict[str, str]:
        return validate_sections(self.visible_sections, self.answers)

    def next(self) -> bool:
        """Advance one section if the current one validates; return True if moved.

        A no-op on the last visible section: nothing is validated there.
        """
        self._ensure_open()
        if self.is_last_section:
            return False
        if not self.validate_current_section():
            logger.info(
                "next_blocked survey_id=%s section_index=%s errors=%s",
                self.definition.id,
                self.current_section_index,
                sorted(self.errors),
            )
            return False
        if self.current_section_index < self.total_sections - 1:
            self.current_section_index += 1
            return True
        return False

    def previous(self) -> bool:
        self._ensure_open()
        if self.current_section_index > 0:
            self.current_section_index -= 1
            return True
        return False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def submit(self) -> ActionOutcome:
        """Validate every visible section and hand the answers to on_submit.

        On validation failure the controller jumps to the first section with
        an error and on_submit is not called. On collaborator failure the
        answers are left exactly as entered so the respondent can retry.
        """
        self._ensure_open()
        if not self.is_last_section:
            raise FormStateError(
                "submit is only available from the last visible section",
                current_section_index=self.current_section_index,
                total_sections=self.total_sections,
            )
        if self.submitting:
            return self._outcome("busy")

        sections = self.visible_sections
        errors = validate_sections(sections, self.answers)
        if errors:
            self.errors = errors
            idx = first_error_section_index(sections, errors)
            if idx != -1:
                self.current_section_index = idx
            logger.info(
                "submit_blocked survey_id=%s first_error_section=%s errors=%s",
                self.definition.id,
                idx,
                sorted(errors),
            )
            return self._outcome("invalid", errors=dict(errors))

        self.submitting = True
        try:
            await self._wait_for_autosave()
            await self._on_submit(self._snapshot(), COMPLETED)
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            logger.error("submit_failed survey_id=%s session_id=%s", self.definition.id, self.session_id, exc_info=True)
            return self._outcome("failed", error=self.last_error)
        finally:
            self.submitting = False

        self.submitted = True
        self.completion_status = COMPLETED
        self.errors = {}
        self.last_error = None
        publish(SURVEY_SUBMITTED, {"survey_id": self.definition.id, "session_id": self.session_id})
        await self._timer.stop()
        return self._outcome("completed")

    async def save_draft(self) -> ActionOutcome:
        """Store the answers as an in-progress response without validating."""
        self._ensure_open()
        if not self.save_draft_available:
            return self._outcome("unavailable")
        if self.submitting:
            return self._outcome("busy")

        self.submitting = True
        try:
            await self._wait_for_autosave()
            await self._on_submit(self._snapshot(), IN_PROGRESS)
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            logger.error("save_draft_failed survey_id=%s session_id=%s", self.definition.id, self.session_id, exc_info=True)
            return self._outcome("failed", error=self.last_error)
        finally:
            self.submitting = False

        self.completion_status = IN_PROGRESS
        self.last_error = None
        self.last_saved_at = datetime.now(timezone.utc)
        return self._outcome("saved")

    async def autosave(self) -> bool:
        """Best-effort partial save; returns True only when a save happened.

        Skipped when autosave is disabled, the answers are empty, the form is
        submitted, a submit or save draft is in flight, or a previous autosave
        is still in flight. Failures are logged and swallowed.
        """
        if not self.autosave_enabled or self.submitted or self.closed:
            return False
        if not self.answers or self.autosaving or self.submitting:
            return False

        self.autosaving = True
        self._autosave_idle.clear()
        try:
            await self._on_partial_save(self._snapshot())
        except Exception:
            logger.warning("autosave_failed survey_id=%s session_id=%s", self.definition.id, self.session_id, exc_info=True)
            publish(AUTOSAVE_FAILED, {"survey_id": self.definition.id, "session_id": self.session_id})
            return False
        finally:
            self.autosaving = False
            self._autosave_idle.set()

        self.last_saved_at = datetime.now(timezone.utc)
        return True

    def start_autosave(self) -> bool:
        """Start the recurring autosave timer; must run inside an event loop."""
        if not self.autosave_enabled or self.closed or self.submitted:
            return False
        self._timer.start()
        return True

    async def close(self) -> None:
        """Stop the autosave timer and refuse further interaction."""
        if self.closed:
            return
        await self._timer.stop()
        self.closed = True
        publish(SESSION_CLOSED, {"survey_id": self.definition.id, "session_id": self.session_id})

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def view(self) -> FormView:
        section = self.current_section
        section_view = None
        if section is not None:
            section_view = SectionView(
                id=section.id,
                title=section.title,
                description=section.description,
                questions=[
                    QuestionView(
                        question=q.model_dump(by_alias=True, exclude_none=True),
                        value=self.answers.get(q.id),
                        error=self.errors.get(q.id),
                        custom_input_active=custom_input_triggered(q, self.answers.get(q.id)),
                    )
                    for q in visible_questions(section, self.answers)
                ],
            )
        return FormView(
            survey_id=self.definition.id,
            survey_name=self.definition.name,
            current_section_index=self.current_section_index,
            total_sections=self.total_sections,
            progress=self.progress if self.definition.settings.show_progress else None,
            section=section_view,
            is_first_section=self.is_first_section,
            is_last_section=self.is_last_section,
            save_draft_available=self.save_draft_available,
            submitting=self.submitting,
            autosaving=self.autosaving,
            submitted=self.submitted,
            last_saved_at=(
                self.last_saved_at.isoformat(timespec="seconds").replace("+00:00", "Z")
                if self.last_saved_at
                else None
            ),
            last_error=self.last_error,
            errors=dict(self.errors),
            answers=self._snapshot(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self.closed:
            raise FormStateError("form session is closed", session_id=self.session_id)
        if self.submitted:
            raise FormStateError("form has already been submitted", session_id=self.session_id)

    async def _wait_for_autosave(self) -> None:
        # A partial save must land before the final or draft write, never after
        if not self._autosave_idle.is_set():
            logger.info("autosave_wait survey_id=%s session_id=%s", self.definition.id, self.session_id)
            await self._autosave_idle.wait()

    def _require_question(self, question_id: str) -> Question:
        question = self.definition.find_question(question_id)
        if question is None:
            raise UnknownQuestionError(
                f"question {question_id!r} is not part of survey {self.definition.id!r}",
                question_id=question_id,
            )
        return question

    def _prune_invisible(self) -> List[str]:
        """Drop answers of known questions that are not visible, to a fixpoint.

        Dropping one answer can hide further questions whose predicates
        referenced it, hence the loop.
        """
        dropped: List[str] = []
        while True:
            visible = compute_visible_question_ids(self.definition, self.answers)
            stale = [qid for qid in self.answers if qid in self._question_ids and qid not in visible]
            if not stale:
                return dropped
            for qid in stale:
                del self.answers[qid]
            dropped.extend(stale)

    def _clamp_index(self) -> None:
        total = self.total_sections
        if total == 0:
            self.current_section_index = 0
        elif self.current_section_index > total - 1:
            self.current_section_index = total - 1

    def _snapshot(self) -> Dict[str, Any]:
        # Collaborators get a copy so they cannot mutate session state
        return {k: (list(v) if isinstance(v, list) else dict(v) if isinstance(v, dict) else v) for k, v in self.answers.items()}

    def _outcome(self, status: str, **kwargs: Any) -> ActionOutcome:
        return ActionOutcome(status=status, current_section_index=self.current_section_index, **kwargs)


__all__ = ["FormController", "SubmitCallback", "PartialSaveCallback"]
