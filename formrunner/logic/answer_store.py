"""Mutable answers map owned by one response session."""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, Mapping, Optional

from formrunner.logic.answer_canonical import is_empty_answer
from formrunner.logic.answer_codec import decode_answer
from formrunner.models.question import Question


class AnswerStore:
    """Single source of truth for a session's answers.

    A missing key means "unanswered"; a key holding an empty value is an
    explicit empty answer. Both fail a required check, but only present keys
    take part in piping and formulas.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._answers: Dict[str, Any] = dict(initial or {})

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def set(self, question: Question, raw: Any) -> Any:
        value = decode_answer(question, raw)
        self._answers[question.id] = value
        return value

    def clear(self, question_id: str) -> None:
        self._answers.pop(question_id, None)

    def has(self, question_id: str) -> bool:
        return question_id in self._answers

    def is_answered(self, question_id: str) -> bool:
        return question_id in self._answers and not is_empty_answer(self._answers[question_id])

    def replace(self, answers: Mapping[str, Any]) -> None:
        self._answers = copy.deepcopy(dict(answers))

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._answers)

    def view(self) -> Mapping[str, Any]:
        """Live read-only access for evaluators that never mutate."""
        return self._answers

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)


__all__ = ["AnswerStore"]
