"""Answer piping: substitute `{{...}}` placeholders with formatted answers.

Supported references:
- ``{{question_id}}`` the formatted answer to a question
- ``{{question_id.property}}`` one matrix cell or address field
- ``{{#N}}`` the N-th answerable question as numbered for respondents

Substitution is a single left-to-right pass over the template; text produced
by a substitution is never scanned again.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from formrunner.logic.answer_canonical import format_number
from formrunner.models.answers import ADDRESS_FIELDS
from formrunner.models.question import Question, QuestionType

logger = logging.getLogger(__name__)


PIPING_RE = re.compile(r"\{\{([^}]+)\}\}")
_REFERENCE_RE = re.compile(r"\{\{\s*([^}.\s]+)")
_ORDINAL_RE = re.compile(r"^#(\d+)$")

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _format_date(value: Any) -> str:
    if not isinstance(value, str):
        return _to_text(value)
    try:
        d = date.fromisoformat(value.strip()[:10])
    except ValueError:
        return value
    return f"{_MONTHS[d.month - 1]} {d.day}, {d.year}"


def format_answer(question: Question, answer: Any, prop: Optional[str] = None) -> str:
    """Render one answer as display text for its question type."""
    qtype = question.type
    props = question.properties
    if qtype in QuestionType.CHOICE:
        return props.option_label(answer) if isinstance(answer, str) else _to_text(answer)
    if qtype == QuestionType.CHECKBOX:
        if isinstance(answer, list):
            return ", ".join(props.option_label(v) for v in answer)
        return _to_text(answer)
    if qtype == QuestionType.RANKING:
        if isinstance(answer, list):
            return ", ".join(f"{i}. {v}" for i, v in enumerate(answer, start=1))
        return _to_text(answer)
    if qtype == QuestionType.MATRIX:
        if isinstance(answer, dict) and prop:
            cell = answer.get(prop)
            return "" if cell is None else _to_text(cell)
        return _to_text(answer)
    if qtype == QuestionType.ADDRESS:
        if isinstance(answer, dict):
            if prop:
                return str(answer.get(prop) or "")
            return ", ".join(str(answer[f]) for f in ADDRESS_FIELDS if answer.get(f))
        return _to_text(answer)
    if qtype == QuestionType.YES_NO:
        return "Yes" if answer else "No"
    if qtype == QuestionType.RATING:
        return f"{_to_text(answer)}/{format_number(props.max or 5)}"
    if qtype == QuestionType.DATE:
        return _format_date(answer)
    if qtype == QuestionType.FILE_UPLOAD:
        if isinstance(answer, list):
            return ", ".join(str(f.get("name", "")) for f in answer if isinstance(f, dict))
        return _to_text(answer)
    return _to_text(answer)


def _ordinal_question(questions: List[Question], n: int) -> Optional[Question]:
    answerable = [q for q in questions if not q.is_structural]
    if 1 <= n <= len(answerable):
        return answerable[n - 1]
    return None


def _resolve(ref: str, by_id: Dict[str, Question], questions: List[Question], answers: Mapping[str, Any]) -> str:
    head, _, prop = ref.strip().partition(".")
    head = head.strip()
    m = _ORDINAL_RE.match(head)
    question = _ordinal_question(questions, int(m.group(1))) if m else by_id.get(head)
    if question is None:
        return ""
    answer = answers.get(question.id)
    if answer is None:
        return ""
    return format_answer(question, answer, prop.strip() or None)


def pipe_answers(text: Optional[str], questions: List[Question], answers: Mapping[str, Any]) -> str:
    """Replace every piping token in `text`; unknown or unanswered refs become ''."""
    if not text:
        return text or ""
    by_id = {q.id: q for q in questions}

    def _sub(match: re.Match[str]) -> str:
        try:
            return _resolve(match.group(1), by_id, questions, answers)
        except Exception:
            logger.warning("piping_token_failed token=%s", match.group(0), exc_info=True)
            return ""

    return PIPING_RE.sub(_sub, text)


def extract_field_references(text: Optional[str]) -> List[str]:
    """Distinct referenced ids in first-seen order (properties stripped)."""
    if not text:
        return []
    seen: Dict[str, None] = {}
    for m in _REFERENCE_RE.finditer(text):
        seen.setdefault(m.group(1), None)
    return list(seen)


def has_piping_references(question: Question) -> bool:
    return bool(PIPING_RE.search(question.title or "") or PIPING_RE.search(question.description or ""))


__all__ = [
    "PIPING_RE",
    "format_answer",
    "pipe_answers",
    "extract_field_references",
    "has_piping_references",
]
