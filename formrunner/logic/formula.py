"""Calculator formula evaluation.

Formulas are arithmetic over numeric literals and question references
(``{{question_id}}`` or a bare identifier naming a question). References are
resolved to numbers first, then the expression is parsed by a small
recursive-descent parser; nothing is ever handed to ``eval``.

Grammar::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | REF | "(" expr ")"
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, List, Mapping, Optional, Tuple

from formrunner.logic.answer_canonical import leading_number
from formrunner.models.question import Question, QuestionType

logger = logging.getLogger(__name__)


MAX_DEPTH = 64
EMPTY_VALUE = "—"

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|\{\{\s*(?P<ref>[^}]+?)\s*\}\}"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/()])"
    r")"
)


class FormulaError(ValueError):
    pass


def reference_value(answer: Any) -> float:
    """Numeric view of an answer for formula purposes; unusable values are 0."""
    if answer is None or isinstance(answer, bool):
        return 0.0
    if isinstance(answer, (int, float)):
        f = float(answer)
        return f if math.isfinite(f) else 0.0
    if isinstance(answer, str):
        return leading_number(answer) or 0.0
    if isinstance(answer, (list, tuple)):
        total = 0.0
        for item in answer:
            if isinstance(item, (int, float)) and not isinstance(item, bool):
                total += float(item)
            elif isinstance(item, str):
                total += leading_number(item) or 0.0
        return total or float(len(answer))
    return 0.0


def _tokenize(formula: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    pos = 0
    text = formula.rstrip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            raise FormulaError(f"unexpected character at {pos}: {text[pos]!r}")
        kind = m.lastgroup or ""
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[Tuple[str, str]], answers: Mapping[str, Any]) -> None:
        self._tokens = tokens
        self._answers = answers
        self._pos = 0
        self._depth = 0

    def parse(self) -> float:
        if not self._tokens:
            raise FormulaError("empty expression")
        value = self._expr()
        if self._pos != len(self._tokens):
            raise FormulaError(f"unexpected token {self._tokens[self._pos][1]!r}")
        return value

    def _peek(self) -> Optional[Tuple[str, str]]:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take_op(self, ops: str) -> Optional[str]:
        tok = self._peek()
        if tok is not None and tok[0] == "op" and tok[1] in ops:
            self._pos += 1
            return tok[1]
        return None

    def _enter(self) -> None:
        self._depth += 1
        if self._depth > MAX_DEPTH:
            raise FormulaError("expression nested too deeply")

    def _expr(self) -> float:
        self._enter()
        value = self._term()
        while (op := self._take_op("+-")) is not None:
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
        self._depth -= 1
        return value

    def _term(self) -> float:
        value = self._unary()
        while (op := self._take_op("*/")) is not None:
            rhs = self._unary()
            if op == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise FormulaError("division by zero")
                value = value / rhs
        return value

    def _unary(self) -> float:
        op = self._take_op("+-")
        if op is None:
            return self._primary()
        self._enter()
        value = self._unary()
        self._depth -= 1
        return -value if op == "-" else value

    def _primary(self) -> float:
        tok = self._peek()
        if tok is None:
            raise FormulaError("unexpected end of expression")
        kind, text = tok
        if kind == "num":
            self._pos += 1
            return float(text)
        if kind in {"ref", "ident"}:
            self._pos += 1
            return reference_value(self._answers.get(text.strip()))
        if self._take_op("(") is not None:
            value = self._expr()
            if self._take_op(")") is None:
                raise FormulaError("missing closing parenthesis")
            return value
        raise FormulaError(f"unexpected token {text!r}")


def evaluate_formula(
    formula: Optional[str],
    questions: List[Question],
    answers: Mapping[str, Any],
) -> Optional[float]:
    """Evaluate `formula` against `answers`; None when it cannot be computed."""
    if not formula or not formula.strip():
        return None
    try:
        result = _Parser(_tokenize(formula), answers).parse()
    except (FormulaError, OverflowError) as e:
        logger.warning("formula_evaluation_failed formula=%r reason=%s", formula, e)
        return None
    if not math.isfinite(result):
        logger.warning("formula_result_not_finite formula=%r", formula)
        return None
    return result


def format_calculated_value(
    value: Optional[float],
    decimal_places: Optional[int] = 2,
    prefix: Optional[str] = "",
    suffix: Optional[str] = "",
) -> str:
    if value is None:
        return EMPTY_VALUE
    places = 2 if decimal_places is None else max(0, int(decimal_places))
    return f"{prefix or ''}{value:.{places}f}{suffix or ''}"


def compute_calculated_values(questions: List[Question], answers: Mapping[str, Any]) -> dict[str, Optional[float]]:
    """Evaluate every calculator in form order.

    Each result is visible to later calculators, so a formula may build on an
    earlier computed value. `answers` itself is not modified.
    """
    working = dict(answers)
    out: dict[str, Optional[float]] = {}
    for q in questions:
        if q.type != QuestionType.CALCULATOR:
            continue
        value = evaluate_formula(q.properties.formula, questions, working)
        out[q.id] = value
        working[q.id] = value
    return out


__all__ = [
    "MAX_DEPTH",
    "EMPTY_VALUE",
    "FormulaError",
    "reference_value",
    "evaluate_formula",
    "format_calculated_value",
    "compute_calculated_values",
]
