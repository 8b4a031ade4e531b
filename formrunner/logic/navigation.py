"""Branch resolution between questions.

Indices refer to positions in the form's question list; ``len(questions)`` is
the submit sentinel. Forward moves always land strictly after the current
index, so any sequence of `get_next_question_index` calls reaches the
sentinel in at most ``len(questions)`` steps.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel

from formrunner.logic.visibility_rules import evaluate_logic_rule, should_show_question
from formrunner.models.question import Question

logger = logging.getLogger(__name__)


class Progress(BaseModel):
    visible_index: int
    visible_count: int
    percent: int


def _index_of(questions: List[Question], question_id: str) -> int:
    for i, q in enumerate(questions):
        if q.id == question_id:
            return i
    return -1


def resolve_jump_target(current_index: int, questions: List[Question], answers: Mapping[str, Any]) -> Optional[int]:
    """Index of the first matching forward jump from the current question, if any."""
    if not 0 <= current_index < len(questions):
        return None
    current = questions[current_index]
    for rule in current.logic:
        if not rule.is_jump or not evaluate_logic_rule(rule, answers, questions):
            continue
        target = _index_of(questions, rule.jump_to_question_id or "")
        if target == -1:
            logger.warning(
                "jump_target_missing question_id=%s target=%s", current.id, rule.jump_to_question_id
            )
            continue
        if target <= current_index:
            logger.warning(
                "jump_ignored_not_forward question_id=%s target=%s", current.id, rule.jump_to_question_id
            )
            continue
        return target
    return None


def _first_visible_from(start: int, questions: List[Question], answers: Mapping[str, Any]) -> int:
    for i in range(start, len(questions)):
        if should_show_question(questions[i], answers, questions):
            return i
    return len(questions)


def get_next_question_index(current_index: int, questions: List[Question], answers: Mapping[str, Any]) -> int:
    """Next index to display, or ``len(questions)`` when the form should submit.

    A matching jump wins over sequential order. When the jump target is itself
    hidden, the scan continues forward from the target.
    """
    if current_index >= len(questions):
        return len(questions)
    target = resolve_jump_target(current_index, questions, answers)
    if target is not None:
        return _first_visible_from(target, questions, answers)
    return _first_visible_from(max(current_index, -1) + 1, questions, answers)


def get_previous_question_index(current_index: int, questions: List[Question], answers: Mapping[str, Any]) -> int:
    """Closest visible index before `current_index`, clamped at 0.

    Jumps are not retraced: going back from a jump target walks the visible
    questions that precede it.
    """
    for i in range(min(current_index, len(questions)) - 1, -1, -1):
        if should_show_question(questions[i], answers, questions):
            return i
    return 0


def get_progress(current_index: int, questions: List[Question], answers: Mapping[str, Any]) -> Progress:
    visible = [i for i, q in enumerate(questions) if should_show_question(q, answers, questions)]
    count = len(visible)
    if current_index >= len(questions):
        return Progress(visible_index=count, visible_count=count, percent=100)
    position = sum(1 for i in visible if i <= current_index)
    percent = int(round(position * 100 / count)) if count else 0
    return Progress(visible_index=position, visible_count=count, percent=percent)


def question_number(current_index: int, questions: List[Question], answers: Mapping[str, Any]) -> Optional[int]:
    """1-based number shown next to the question title; None for bookends."""
    if not 0 <= current_index < len(questions) or questions[current_index].is_structural:
        return None
    n = 0
    for i in range(current_index + 1):
        q = questions[i]
        if not q.is_structural and should_show_question(q, answers, questions):
            n += 1
    return n


__all__ = [
    "Progress",
    "resolve_jump_target",
    "get_next_question_index",
    "get_previous_question_index",
    "get_progress",
    "question_number",
]
