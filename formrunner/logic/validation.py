"""Type-aware validation of respondent answers.

`validate_answer` is pure and never raises for user data: failures come back
as a ValidationResult so the caller can render an inline message and block
advancement without losing what was typed.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl, TypeAdapter, ValidationError as PydanticValidationError

from formrunner.logic.answer_canonical import coerce_number, format_number, is_empty_answer
from formrunner.models.question import Question, QuestionType


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None


class FormValidationResult(BaseModel):
    valid: bool
    errors: Dict[str, str] = Field(default_factory=dict)


REQUIRED_MESSAGE = "This field is required"

EMAIL_ADAPTER = TypeAdapter(EmailStr)
HTTP_URL_ADAPTER = TypeAdapter(HttpUrl)
# +1234567890, (123) 456-7890, 123-456-7890, 123.456.7890, +1 (123) 456-7890
PHONE_RE = re.compile(r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,4}[-\s.]?[0-9]{1,9}$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _ok() -> ValidationResult:
    return ValidationResult(valid=True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(valid=False, error=message)


def _range_message(lo: Optional[float], hi: Optional[float]) -> str:
    if lo is not None and hi is not None:
        return f"Please enter a number between {format_number(lo)} and {format_number(hi)}"
    if lo is not None:
        return f"Please enter a number greater than or equal to {format_number(lo)}"
    if hi is not None:
        return f"Please enter a number less than or equal to {format_number(hi)}"
    return "Please enter a valid number"


def _check_range(value: Any, lo: Optional[float], hi: Optional[float], message: str) -> ValidationResult:
    num = coerce_number(value)
    if num is None:
        return _fail(message)
    if lo is not None and num < lo:
        return _fail(message)
    if hi is not None and num > hi:
        return _fail(message)
    return _ok()


def _is_absolute_url(value: str) -> bool:
    try:
        url = HTTP_URL_ADAPTER.validate_python(value.strip())
    except PydanticValidationError:
        return False
    host = url.host or ""
    # localhost is the only single-label host accepted
    return "." in host or host == "localhost"


def _validate_email(q: Question, answer: Any) -> ValidationResult:
    if not isinstance(answer, str):
        return _fail("Please enter a valid email address")
    try:
        EMAIL_ADAPTER.validate_python(answer.strip())
    except PydanticValidationError:
        return _fail("Please enter a valid email address")
    return _ok()


def _validate_phone(q: Question, answer: Any) -> ValidationResult:
    text = str(answer)
    if len(re.sub(r"\D", "", text)) < 7 or not PHONE_RE.match(re.sub(r"\s", "", text)):
        return _fail("Please enter a valid phone number")
    return _ok()


def _validate_url(q: Question, answer: Any) -> ValidationResult:
    if not isinstance(answer, str) or not _is_absolute_url(answer):
        return _fail("Please enter a valid URL (e.g., https://example.com)")
    return _ok()


def _validate_number(q: Question, answer: Any) -> ValidationResult:
    lo, hi = q.properties.min, q.properties.max
    return _check_range(answer, lo, hi, _range_message(lo, hi))


def _validate_scale(q: Question, answer: Any) -> ValidationResult:
    lo = q.properties.min if q.properties.min is not None else 1
    hi = q.properties.max if q.properties.max is not None else 10
    return _check_range(answer, lo, hi, f"Please select a value between {format_number(lo)} and {format_number(hi)}")


def _validate_slider(q: Question, answer: Any) -> ValidationResult:
    lo, hi = q.properties.min, q.properties.max
    return _check_range(answer, lo, hi, _range_message(lo, hi))


def _validate_rating(q: Question, answer: Any) -> ValidationResult:
    hi = q.properties.max or 5
    return _check_range(answer, 1, hi, "Please select a rating")


def _validate_nps(q: Question, answer: Any) -> ValidationResult:
    return _check_range(answer, 0, 10, "Please select a score between 0 and 10")


def _validate_single_choice(q: Question, answer: Any) -> ValidationResult:
    if not isinstance(answer, str) or answer not in q.properties.option_values():
        return _fail("Please select a valid option")
    return _ok()


def _validate_checkbox(q: Question, answer: Any) -> ValidationResult:
    if not isinstance(answer, list) or not answer:
        return _fail("Please select at least one option")
    allowed = set(q.properties.option_values())
    if any(v not in allowed for v in answer):
        return _fail("Please select a valid option")
    return _ok()


def _validate_text(q: Question, answer: Any) -> ValidationResult:
    limit = q.properties.max_length
    if limit is not None and len(str(answer)) > limit:
        return _fail(f"Please enter no more than {limit} characters")
    return _ok()


def _validate_date(q: Question, answer: Any) -> ValidationResult:
    text = str(answer).strip()
    if not ISO_DATE_RE.match(text):
        return _fail("Please enter a valid date")
    try:
        date.fromisoformat(text)
    except ValueError:
        return _fail("Please enter a valid date")
    return _ok()


_TYPE_VALIDATORS = {
    QuestionType.EMAIL: _validate_email,
    QuestionType.PHONE: _validate_phone,
    QuestionType.URL: _validate_url,
    QuestionType.NUMBER: _validate_number,
    QuestionType.SCALE: _validate_scale,
    QuestionType.SLIDER: _validate_slider,
    QuestionType.RATING: _validate_rating,
    QuestionType.NPS: _validate_nps,
    QuestionType.MULTIPLE_CHOICE: _validate_single_choice,
    QuestionType.DROPDOWN: _validate_single_choice,
    QuestionType.CHECKBOX: _validate_checkbox,
    QuestionType.SHORT_TEXT: _validate_text,
    QuestionType.LONG_TEXT: _validate_text,
    QuestionType.DATE: _validate_date,
}

# Never block: bookends are not answered, calculators are computed
_ALWAYS_VALID = frozenset({QuestionType.WELCOME, QuestionType.THANK_YOU, QuestionType.CALCULATOR})


def validate_answer(question: Question, answer: Any) -> ValidationResult:
    """Decide whether `answer` is acceptable for `question`.

    Required-ness is the only gate for empty input: an empty answer to an
    optional question is valid without running type checks.
    """
    if question.type in _ALWAYS_VALID:
        return _ok()
    if is_empty_answer(answer):
        return _fail(REQUIRED_MESSAGE) if question.required else _ok()
    check = _TYPE_VALIDATORS.get(question.type)
    if check is None:
        return _ok()
    return check(question, answer)


def validate_form(questions: List[Question], answers: Mapping[str, Any]) -> FormValidationResult:
    """Validate every answerable question; errors are keyed by question id."""
    errors: Dict[str, str] = {}
    for question in questions:
        if question.is_structural:
            continue
        result = validate_answer(question, answers.get(question.id))
        if not result.valid:
            errors[question.id] = result.error or "Invalid input"
    return FormValidationResult(valid=not errors, errors=errors)


__all__ = [
    "ValidationResult",
    "FormValidationResult",
    "REQUIRED_MESSAGE",
    "validate_answer",
    "validate_form",
]
