"""Condition evaluation and question visibility."""

from __future__ import annotations

import pytest

from formrunner.logic.visibility_rules import (
    evaluate_condition,
    evaluate_logic_rule,
    get_operators_for_question_type,
    get_visible_questions,
    operator_requires_value,
    should_show_question,
)
from formrunner.models.question import LogicCondition, LogicRule


def _cond(qid: str, op: str, value=None) -> LogicCondition:
    return LogicCondition.model_validate({"questionId": qid, "operator": op, "value": value})


@pytest.fixture
def base_questions(make_question):
    return [
        make_question("yn", "yes_no"),
        make_question("colours", "checkbox"),
        make_question("age", "number"),
        make_question("note", "short_text"),
    ]


def test_yes_no_answers_match_yes_no_tokens(base_questions):
    assert evaluate_condition(_cond("yn", "equals", "yes"), {"yn": True}, base_questions)
    assert evaluate_condition(_cond("yn", "equals", "no"), {"yn": False}, base_questions)
    assert evaluate_condition(_cond("yn", "not_equals", "yes"), {"yn": False}, base_questions)


def test_array_equality_is_membership(base_questions):
    answers = {"colours": ["red", "blue"]}
    assert evaluate_condition(_cond("colours", "equals", "blue"), answers, base_questions)
    assert not evaluate_condition(_cond("colours", "not_equals", "blue"), answers, base_questions)
    assert evaluate_condition(_cond("colours", "contains", "BL"), answers, base_questions)


def test_unanswered_semantics(base_questions):
    assert not evaluate_condition(_cond("note", "equals", "x"), {}, base_questions)
    assert evaluate_condition(_cond("note", "not_equals", "x"), {}, base_questions)
    assert evaluate_condition(_cond("note", "is_empty"), {}, base_questions)
    assert evaluate_condition(_cond("note", "is_empty"), {"note": "  "}, base_questions)
    assert not evaluate_condition(_cond("note", "is_not_empty"), {}, base_questions)
    assert evaluate_condition(_cond("note", "not_contains", "x"), {}, base_questions)


def test_numeric_comparisons(base_questions):
    assert evaluate_condition(_cond("age", "greater_than", "17"), {"age": 18}, base_questions)
    assert evaluate_condition(_cond("age", "less_than", 18), {"age": "17"}, base_questions)
    assert evaluate_condition(_cond("age", "equals", "18"), {"age": 18.0}, base_questions)
    assert not evaluate_condition(_cond("age", "greater_than", 1), {"age": "abc"}, base_questions)
    assert not evaluate_condition(_cond("age", "less_than", 1), {}, base_questions)


def test_unknown_question_never_matches(base_questions):
    assert not evaluate_condition(_cond("ghost", "is_empty"), {}, base_questions)


def test_rule_combination(base_questions):
    rule_and = LogicRule.model_validate(
        {"conditions": [{"questionId": "yn", "operator": "equals", "value": "yes"},
                        {"questionId": "age", "operator": "greater_than", "value": 17}]}
    )
    rule_or = rule_and.model_copy(update={"condition_logic": "or"})
    answers = {"yn": True, "age": 10}
    assert not evaluate_logic_rule(rule_and, answers, base_questions)
    assert evaluate_logic_rule(rule_or, answers, base_questions)
    assert evaluate_logic_rule(LogicRule(), {}, base_questions)


def test_show_rule_hides_until_matched(make_question, base_questions):
    follow_up = make_question(
        "why", "long_text",
        logic={"conditions": [{"questionId": "yn", "operator": "equals", "value": "no"}], "action": "show"},
    )
    questions = base_questions + [follow_up]
    assert not should_show_question(follow_up, {}, questions)
    assert should_show_question(follow_up, {"yn": False}, questions)
    assert not should_show_question(follow_up, {"yn": True}, questions)


def test_hide_rule_and_first_match_wins(make_question, base_questions):
    q = make_question(
        "extra", "short_text",
        logic=[
            {"conditions": [{"questionId": "age", "operator": "less_than", "value": 18}], "action": "hide"},
            {"conditions": [{"questionId": "age", "operator": "less_than", "value": 30}], "action": "show"},
        ],
    )
    questions = base_questions + [q]
    assert not should_show_question(q, {"age": 10}, questions)
    assert should_show_question(q, {"age": 20}, questions)
    # no rule matched and a show rule exists
    assert not should_show_question(q, {"age": 40}, questions)


def test_hide_only_rules_default_to_visible(make_question, base_questions):
    q = make_question(
        "extra", "short_text",
        logic={"conditions": [{"questionId": "yn", "operator": "equals", "value": "yes"}], "action": "skip"},
    )
    questions = base_questions + [q]
    assert should_show_question(q, {}, questions)
    assert not should_show_question(q, {"yn": True}, questions)


def test_dangling_show_rule_does_not_hide(make_question, base_questions):
    q = make_question(
        "extra", "short_text",
        logic={"conditions": [{"questionId": "ghost", "operator": "equals", "value": "x"}], "action": "show"},
    )
    assert should_show_question(q, {}, base_questions + [q])
    # without the question list a reference cannot be recognised as dangling
    assert not should_show_question(q, {})
    assert should_show_question(q, {"ghost": "x"})


def test_jump_rules_do_not_affect_own_visibility(make_question, base_questions):
    q = make_question(
        "gate", "yes_no",
        logic={"conditions": [{"questionId": "gate", "operator": "equals", "value": "yes"}],
               "action": "show", "jumpToQuestionId": "note"},
    )
    assert should_show_question(q, {}, base_questions + [q])


def test_bookends_always_visible_and_filter_keeps_order(make_question):
    hidden = make_question(
        "hidden", "short_text",
        logic={"conditions": [{"questionId": "a", "operator": "is_not_empty"}], "action": "show"},
    )
    questions = [make_question("w", "welcome"), make_question("a", "short_text"), hidden, make_question("t", "thank_you")]
    ids = [q.id for q in get_visible_questions(questions, {})]
    assert ids == ["w", "a", "t"]
    ids = [q.id for q in get_visible_questions(questions, {"a": "x"})]
    assert ids == ["w", "a", "hidden", "t"]


def test_operator_catalogue():
    assert [o["value"] for o in get_operators_for_question_type("yes_no")] == ["equals", "not_equals"]
    assert "greater_than" in [o["value"] for o in get_operators_for_question_type("number")]
    assert "contains" in [o["value"] for o in get_operators_for_question_type("signature")]
    assert not operator_requires_value("is_empty")
    assert operator_requires_value("contains")
