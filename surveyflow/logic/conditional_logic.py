"""Value-triggered hide effects.

A question's `conditionalLogic` maps an answer value to an effect that
clears other answers. Effects fire once, at the transition that records the
triggering value; they are not re-derived when the respondent later changes
the answer back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from surveyflow.logic.answer_canonical import conditional_key
from surveyflow.models.survey import HideAllOtherQuestions, HideQuestion, SurveyDefinition

logger = logging.getLogger(__name__)


def apply_conditional_logic(
    definition: SurveyDefinition,
    question_id: str,
    new_value: Any,
    answers: Mapping[str, Any],
) -> Dict[str, Any]:
    """Return a copy of `answers` with the hide effect for `new_value` applied.

    - Unknown question, no conditionalLogic, or no entry for the value's lookup
      key: the copy is returned unchanged.
    - HideQuestion(id): that single answer is removed.
    - HideAllOtherQuestions: every answer belonging to a section other than
      the one containing `question_id` is removed.
    """
    updated = dict(answers)
    question = definition.find_question(question_id)
    if question is None or not question.conditional_logic:
        return updated

    key = conditional_key(new_value)
    if key is None:
        return updated
    effect = question.conditional_logic.get(key)
    if effect is None or not effect.hide_questions:
        return updated

    cleared: list[str] = []
    for target in effect.hide_questions:
        if isinstance(target, HideAllOtherQuestions):
            own = definition.section_of(question_id)
            for section in definition.sections:
                if own is not None and section.id == own.id:
                    continue
                for q in section.questions:
                    if q.id in updated:
                        updated.pop(q.id)
                        cleared.append(q.id)
        elif isinstance(target, HideQuestion):
            if target.question_id in updated:
                updated.pop(target.question_id)
                cleared.append(target.question_id)

    if cleared:
        logger.info(
            "conditional_logic_applied question_id=%s key=%s cleared=%s",
            question_id,
            key,
            sorted(set(cleared)),
        )
    return updated


__all__ = ["apply_conditional_logic"]
