"""Conditional visibility for form questions.

A question's `logic` is an ordered list of rules. Show/hide rules decide the
question's own visibility; jump rules only steer navigation away from it and
are handled in `navigation`.

Resolution for one question:
- welcome and thank_you questions are always visible;
- show/hide rules are tried in author order and the first matching rule wins;
- with no match the question is hidden if it has a show rule, else visible.

Rules that reference a question missing from the form never match and do not
count towards the hidden-by-default case, so a dangling reference cannot hide
a question permanently.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from formrunner.logic.answer_canonical import canonical_token, coerce_number, is_empty_answer
from formrunner.models.question import (
    LogicCondition,
    LogicOperator,
    LogicRule,
    Question,
    QuestionType,
    RuleAction,
)

logger = logging.getLogger(__name__)


def _tokens_equal(answer: Any, expected: Any) -> bool:
    a, b = coerce_number(answer), coerce_number(expected)
    if a is not None and b is not None:
        return a == b
    return canonical_token(answer) == canonical_token(expected)


def _equals(answer: Any, expected: Any) -> bool:
    if answer is None:
        return False
    if isinstance(answer, (list, tuple)):
        # Multi-select answers match when the expected value was selected
        return any(_tokens_equal(v, expected) for v in answer)
    return _tokens_equal(answer, expected)


def _contains(answer: Any, expected: Any) -> bool:
    if answer is None:
        return False
    needle = ("" if expected is None else str(expected)).lower()
    if isinstance(answer, (list, tuple)):
        return any(needle in str(v).lower() for v in answer)
    return needle in str(answer).lower()


def _compare(answer: Any, expected: Any) -> Optional[float]:
    a, b = coerce_number(answer), coerce_number(expected)
    if a is None or b is None:
        return None
    return a - b


def _known_ids(questions: Optional[List[Question]]) -> Optional[set[str]]:
    return None if questions is None else {q.id for q in questions}


def condition_references_known(condition: LogicCondition, known: Optional[set[str]]) -> bool:
    return known is None or condition.question_id in known


def evaluate_condition(
    condition: LogicCondition,
    answers: Mapping[str, Any],
    questions: Optional[List[Question]] = None,
) -> bool:
    """Evaluate one condition; conditions on unknown questions never match."""
    if not condition_references_known(condition, _known_ids(questions)):
        logger.debug("logic_condition_unknown_question question_id=%s", condition.question_id)
        return False
    answer = answers.get(condition.question_id)
    expected = condition.value
    op = condition.operator
    if op == LogicOperator.EQUALS:
        return _equals(answer, expected)
    if op == LogicOperator.NOT_EQUALS:
        return not _equals(answer, expected)
    if op == LogicOperator.CONTAINS:
        return _contains(answer, expected)
    if op == LogicOperator.NOT_CONTAINS:
        return not _contains(answer, expected)
    if op == LogicOperator.GREATER_THAN:
        diff = _compare(answer, expected)
        return diff is not None and diff > 0
    if op == LogicOperator.LESS_THAN:
        diff = _compare(answer, expected)
        return diff is not None and diff < 0
    if op == LogicOperator.IS_EMPTY:
        return is_empty_answer(answer)
    if op == LogicOperator.IS_NOT_EMPTY:
        return not is_empty_answer(answer)
    return False


def evaluate_logic_rule(
    rule: LogicRule,
    answers: Mapping[str, Any],
    questions: Optional[List[Question]] = None,
) -> bool:
    """Combine a rule's conditions with its and/or logic; no conditions matches."""
    if not rule.conditions:
        return True
    results = (evaluate_condition(c, answers, questions) for c in rule.conditions)
    if rule.condition_logic == "or":
        return any(results)
    return all(results)


def _rule_is_dangling(rule: LogicRule, known: Optional[set[str]]) -> bool:
    return any(not condition_references_known(c, known) for c in rule.conditions)


def visibility_rules(question: Question) -> List[LogicRule]:
    return [r for r in question.logic if r.affects_visibility and not r.is_jump]


def should_show_question(
    question: Question,
    answers: Mapping[str, Any],
    questions: Optional[List[Question]] = None,
) -> bool:
    """Whether `question` is shown for `answers`.

    Pass the form's `questions` so a show rule that references an unknown
    question id is treated as dangling and the question stays visible.
    Without them every reference counts as known, and an unmet show rule
    hides the question whatever it points at.
    """
    if question.is_structural:
        return True
    rules = visibility_rules(question)
    if not rules:
        return True
    known = _known_ids(questions)
    for rule in rules:
        if evaluate_logic_rule(rule, answers, questions):
            return rule.action == RuleAction.SHOW
    has_live_show_rule = any(
        r.action == RuleAction.SHOW and not _rule_is_dangling(r, known) for r in rules
    )
    return not has_live_show_rule


def get_visible_questions(questions: List[Question], answers: Mapping[str, Any]) -> List[Question]:
    """Order-preserving filter of the questions currently shown."""
    return [q for q in questions if should_show_question(q, answers, questions)]


_TEXT_OPERATORS = [
    {"value": LogicOperator.EQUALS, "label": "equals"},
    {"value": LogicOperator.NOT_EQUALS, "label": "does not equal"},
    {"value": LogicOperator.CONTAINS, "label": "contains"},
    {"value": LogicOperator.NOT_CONTAINS, "label": "does not contain"},
    {"value": LogicOperator.IS_EMPTY, "label": "is empty"},
    {"value": LogicOperator.IS_NOT_EMPTY, "label": "is not empty"},
]
_NUMBER_OPERATORS = [
    {"value": LogicOperator.EQUALS, "label": "equals"},
    {"value": LogicOperator.NOT_EQUALS, "label": "does not equal"},
    {"value": LogicOperator.GREATER_THAN, "label": "is greater than"},
    {"value": LogicOperator.LESS_THAN, "label": "is less than"},
    {"value": LogicOperator.IS_EMPTY, "label": "is empty"},
    {"value": LogicOperator.IS_NOT_EMPTY, "label": "is not empty"},
]
_CHOICE_OPERATORS = [
    {"value": LogicOperator.EQUALS, "label": "is"},
    {"value": LogicOperator.NOT_EQUALS, "label": "is not"},
    {"value": LogicOperator.IS_EMPTY, "label": "is empty"},
    {"value": LogicOperator.IS_NOT_EMPTY, "label": "is answered"},
]
_YES_NO_OPERATORS = [
    {"value": LogicOperator.EQUALS, "label": "is"},
    {"value": LogicOperator.NOT_EQUALS, "label": "is not"},
]

_OPERATORS_BY_TYPE: Dict[str, List[Dict[str, str]]] = {
    QuestionType.NUMBER: _NUMBER_OPERATORS,
    QuestionType.RATING: _NUMBER_OPERATORS,
    QuestionType.SCALE: _NUMBER_OPERATORS,
    QuestionType.NPS: _NUMBER_OPERATORS,
    QuestionType.SLIDER: _NUMBER_OPERATORS,
    QuestionType.MULTIPLE_CHOICE: _CHOICE_OPERATORS,
    QuestionType.CHECKBOX: _CHOICE_OPERATORS,
    QuestionType.DROPDOWN: _CHOICE_OPERATORS,
    QuestionType.DATE: _CHOICE_OPERATORS,
    QuestionType.YES_NO: _YES_NO_OPERATORS,
}


def get_operators_for_question_type(question_type: str) -> List[Dict[str, str]]:
    """Operators a rule may use against an answer of `question_type`."""
    return [dict(o) for o in _OPERATORS_BY_TYPE.get(question_type, _TEXT_OPERATORS)]


def operator_requires_value(operator: str) -> bool:
    return operator not in {LogicOperator.IS_EMPTY, LogicOperator.IS_NOT_EMPTY}


__all__ = [
    "evaluate_condition",
    "evaluate_logic_rule",
    "condition_references_known",
    "visibility_rules",
    "should_show_question",
    "get_visible_questions",
    "get_operators_for_question_type",
    "operator_requires_value",
]
