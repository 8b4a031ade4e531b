"""Type-specific decoding of raw answer payloads.

Every write into the answers map passes through `decode_answer`, which
dispatches on the question type and returns the value in the shape that
type owns. Shapes that are structurally impossible for the type raise
AnswerShapeError; content problems a respondent can fix (a malformed email,
a number out of range, "abc" typed into a number field) are left for the
validator so they surface inline instead of as exceptions.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from formrunner.logic.answer_canonical import FALSE_TOKENS, TRUE_TOKENS, coerce_number
from formrunner.models.answers import AddressAnswer, PaymentAnswer, UploadedFile
from formrunner.models.question import Question, QuestionType


class AnswerShapeError(ValueError):
    def __init__(self, question_id: str, question_type: str, reason: str) -> None:
        super().__init__(f"answer for {question_id} ({question_type}): {reason}")
        self.question_id = question_id
        self.question_type = question_type
        self.reason = reason


_STR_LIST = TypeAdapter(List[str])
_MATRIX = TypeAdapter(Dict[str, str])
_FILES = TypeAdapter(List[UploadedFile])


def _text(raw: Any) -> Any:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise TypeError("expected text")
    return raw if isinstance(raw, str) else str(raw)


def _numeric(raw: Any) -> Any:
    if isinstance(raw, bool):
        raise TypeError("expected a number")
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        num = coerce_number(raw)
        if num is None:
            # Kept as typed so the validator can reject it inline
            return raw
        return int(num) if num.is_integer() and "." not in raw and "e" not in raw.lower() else num
    raise TypeError("expected a number")


def _yes_no(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    token = str(raw).strip().lower() if isinstance(raw, (str, int)) else None
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise TypeError("expected yes/no")


def _choice(raw: Any) -> str:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise TypeError("expected a single option value")
    return str(raw)


def _choice_list(raw: Any) -> List[str]:
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, (list, tuple)):
        raise TypeError("expected a list of option values")
    return _STR_LIST.validate_python([str(v) for v in raw])


def _matrix(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        raise TypeError("expected a row -> column mapping")
    return _MATRIX.validate_python({str(k): str(v) for k, v in raw.items()})


def _address(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, str):
        raw = {"street": raw}
    return AddressAnswer.model_validate(raw).model_dump(exclude_none=True)


def _files(raw: Any) -> List[Dict[str, Any]]:
    if isinstance(raw, dict):
        raw = [raw]
    return [f.model_dump(exclude_none=True) for f in _FILES.validate_python(raw)]


def _payment(raw: Any) -> Dict[str, Any]:
    return PaymentAnswer.model_validate(raw).model_dump(exclude_none=True)


def _no_answer(raw: Any) -> Any:
    raise TypeError("this question type does not take answers")


_DECODERS: Dict[str, Callable[[Any], Any]] = {
    QuestionType.WELCOME: _no_answer,
    QuestionType.THANK_YOU: _no_answer,
    QuestionType.SHORT_TEXT: _text,
    QuestionType.LONG_TEXT: _text,
    QuestionType.EMAIL: _text,
    QuestionType.PHONE: _text,
    QuestionType.URL: _text,
    QuestionType.DATE: _text,
    QuestionType.SIGNATURE: _text,
    QuestionType.NUMBER: _numeric,
    QuestionType.RATING: _numeric,
    QuestionType.SCALE: _numeric,
    QuestionType.NPS: _numeric,
    QuestionType.SLIDER: _numeric,
    QuestionType.CALCULATOR: _numeric,
    QuestionType.YES_NO: _yes_no,
    QuestionType.MULTIPLE_CHOICE: _choice,
    QuestionType.DROPDOWN: _choice,
    QuestionType.CHECKBOX: _choice_list,
    QuestionType.RANKING: _choice_list,
    QuestionType.MATRIX: _matrix,
    QuestionType.ADDRESS: _address,
    QuestionType.FILE_UPLOAD: _files,
    QuestionType.PAYMENT: _payment,
}


def decoder_types() -> frozenset[str]:
    return frozenset(_DECODERS)


def decode_answer(question: Question, raw: Any) -> Any:
    """Return `raw` converted to the answer shape of `question.type`.

    None is passed through for every type: it records an explicit empty
    answer, which is distinct from the key being absent.
    """
    if raw is None:
        return None
    decoder = _DECODERS[question.type]
    try:
        return decoder(raw)
    except (TypeError, ValueError, PydanticValidationError) as e:
        raise AnswerShapeError(question.id, question.type, str(e)) from e


def decode_answers(questions: List[Question], raw_answers: Dict[str, Any]) -> Dict[str, Any]:
    """Decode a whole answers map; entries for unknown question ids are dropped."""
    by_id = {q.id: q for q in questions}
    out: Dict[str, Any] = {}
    for qid, raw in (raw_answers or {}).items():
        question = by_id.get(qid)
        if question is None:
            continue
        out[qid] = decode_answer(question, raw)
    return out


__all__ = ["AnswerShapeError", "decode_answer", "decode_answers", "decoder_types"]
