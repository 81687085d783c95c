"""Helpers to compute visibility deltas and suppressed answers.

Exposes a single function that computes now_visible, now_hidden, and the list
of suppressed answers using a caller-provided probe for answer existence.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Tuple


def compute_visibility_delta(
    pre_visible: Iterable[str],
    post_visible: Iterable[str],
    has_answer: Callable[[str], bool],
) -> Tuple[List[str], List[str], List[str]]:
    """Compute visibility delta and suppressed answers.

    - now_visible: questions newly visible (in post but not in pre)
    - now_hidden: questions newly hidden (in pre but not in post)
    - suppressed_answers: subset of now_hidden that currently have answers

    The has_answer callable should return True if a given question_id currently
    has a recorded answer. Exceptions raised by the callable propagate.
    """
    pre_set = {str(q) for q in pre_visible if q}
    post_set = {str(q) for q in post_visible if q}

    now_visible = sorted(post_set - pre_set)
    now_hidden = sorted(pre_set - post_set)
    suppressed_answers = [qid for qid in now_hidden if has_answer(qid)]
    return now_visible, now_hidden, suppressed_answers


__all__ = ["compute_visibility_delta"]
