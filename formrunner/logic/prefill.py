"""URL prefill: map query parameters onto initial answers."""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urljoin

from formrunner.logic.answer_canonical import leading_number
from formrunner.models.question import FormSettings, Question, QuestionType

logger = logging.getLogger(__name__)


Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def _sanitise(text: str) -> str:
    return _NON_ALNUM_RE.sub("", (text or "").lower())


def _iter_params(params: Params) -> Iterable[Tuple[str, str]]:
    if hasattr(params, "items"):
        return list(params.items())
    return list(params)


def _parse_date(value: str) -> Any:
    text = value.strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        return value


def parse_value_for_question(value: str, question: Question) -> Any:
    """Convert one query-string value to the answer shape `question` expects."""
    qtype = question.type
    if qtype in QuestionType.NUMERIC:
        num = leading_number(value)
        if num is None:
            return value
        return int(num) if num.is_integer() else num
    if qtype == QuestionType.YES_NO:
        return value.strip().lower() in {"yes", "true", "1"}
    if qtype in {QuestionType.CHECKBOX, QuestionType.RANKING}:
        return [v.strip() for v in value.split(",")] if "," in value else [value]
    if qtype in QuestionType.CHOICE:
        for option in question.properties.options:
            if option.value == value or option.label.lower() == value.lower():
                return option.value
        return value
    if qtype == QuestionType.DATE:
        return _parse_date(value)
    if qtype == QuestionType.ADDRESS:
        try:
            parsed = json.loads(value)
        except ValueError:
            return {"street": value}
        return parsed if isinstance(parsed, dict) else {"street": value}
    return value


def _find_question(key: str, questions: List[Question]) -> Question | None:
    for q in questions:
        if q.id == key:
            return q
    wanted = _sanitise(key)
    if not wanted:
        return None
    for q in questions:
        if _sanitise(q.title) == wanted:
            return q
    return None


def get_prefill_from_params(questions: List[Question], settings: FormSettings, params: Params) -> Dict[str, Any]:
    """Initial answers taken from URL parameters.

    Empty unless the form enables prefill. A `prefill_mapping` entry routes a
    parameter to a question id; other parameters match a question by id, then
    by sanitised title. Parameters that match nothing are dropped.
    """
    prefilled: Dict[str, Any] = {}
    if not settings.enable_prefill:
        return prefilled
    mapping = settings.prefill_mapping or {}
    for key, value in _iter_params(params):
        if key in mapping:
            question = next((q for q in questions if q.id == mapping[key]), None)
        else:
            question = _find_question(key, questions)
        if question is None or question.is_structural or question.type == QuestionType.CALCULATOR:
            logger.debug("prefill_param_unmatched key=%s", key)
            continue
        prefilled[question.id] = parse_value_for_question(str(value), question)
    return prefilled


def prefill_from_query_string(questions: List[Question], settings: FormSettings, query: str) -> Dict[str, Any]:
    return get_prefill_from_params(questions, settings, parse_qsl((query or "").lstrip("?"), keep_blank_values=False))


def generate_prefill_url(base_url: str, form_id: str, prefills: Mapping[str, Any]) -> str:
    url = urljoin(base_url, f"/f/{form_id}")
    if not prefills:
        return url
    pairs = [(k, _param_text(v)) for k, v in prefills.items()]
    return f"{url}?{urlencode(pairs)}"


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


_DOC_EXAMPLES = {
    QuestionType.SHORT_TEXT: "John Doe",
    QuestionType.LONG_TEXT: "John Doe",
    QuestionType.EMAIL: "john@example.com",
    QuestionType.NUMBER: "42",
    QuestionType.PHONE: "+1234567890",
    QuestionType.URL: "https://example.com",
    QuestionType.DATE: "2024-01-15",
    QuestionType.YES_NO: "yes",
    QuestionType.RATING: "5",
    QuestionType.SCALE: "5",
    QuestionType.NPS: "9",
    QuestionType.SLIDER: "50",
}
_NOT_PREFILLABLE = frozenset({QuestionType.WELCOME, QuestionType.THANK_YOU, QuestionType.CALCULATOR, QuestionType.SIGNATURE})


def get_prefill_documentation(questions: List[Question]) -> List[Dict[str, str]]:
    """Per-question parameter hints for share links."""
    docs: List[Dict[str, str]] = []
    for q in questions:
        if q.type in _NOT_PREFILLABLE:
            continue
        values = q.properties.option_values()
        if q.type in QuestionType.CHOICE:
            example = values[0] if values else "option_1"
        elif q.type == QuestionType.CHECKBOX:
            example = ",".join(values[:2]) if values else "option_1,option_2"
        else:
            example = _DOC_EXAMPLES.get(q.type, "value")
        docs.append({"id": q.id, "title": q.title or "Untitled", "type": q.type, "example": example})
    return docs


__all__ = [
    "parse_value_for_question",
    "get_prefill_from_params",
    "prefill_from_query_string",
    "generate_prefill_url",
    "get_prefill_documentation",
]
