"""Form definition parsing and structural invariants."""

from __future__ import annotations

import pytest

from formrunner.models.question import (
    Form,
    FormDefinitionError,
    LogicRule,
    Question,
    RuleAction,
    parse_form,
)


def test_camel_and_snake_case_inputs_are_equivalent():
    camel = Question.model_validate(
        {"id": "q", "type": "number", "properties": {"maxLength": 5, "decimalPlaces": 1}}
    )
    snake = Question.model_validate(
        {"id": "q", "type": "number", "properties": {"max_length": 5, "decimal_places": 1}}
    )
    assert camel.properties.max_length == snake.properties.max_length == 5
    assert camel.properties.decimal_places == 1


def test_single_logic_rule_object_is_wrapped_in_a_list():
    q = Question.model_validate(
        {
            "id": "q2",
            "type": "short_text",
            "logic": {"conditions": [{"questionId": "q1", "operator": "is-not-empty"}], "action": "skip"},
        }
    )
    assert len(q.logic) == 1
    rule = q.logic[0]
    assert rule.action == RuleAction.HIDE
    assert rule.conditions[0].operator == "is_not_empty"
    assert rule.condition_logic == "and"


def test_rule_with_target_is_a_jump_rule_whatever_its_action():
    rule = LogicRule.model_validate({"action": "show", "jumpToQuestionId": "q9"})
    assert rule.is_jump


def test_jump_action_requires_target():
    with pytest.raises(ValueError):
        LogicRule.model_validate({"action": "jump"})


def test_unknown_operator_is_rejected():
    with pytest.raises(ValueError):
        Question.model_validate(
            {"id": "q", "type": "short_text", "logic": [{"conditions": [{"questionId": "a", "operator": "matches"}]}]}
        )


def test_unknown_question_type_is_rejected():
    with pytest.raises(FormDefinitionError):
        parse_form({"id": "f", "questions": [{"id": "q", "type": "hologram"}]})


def test_duplicate_question_ids_are_rejected():
    with pytest.raises(FormDefinitionError):
        parse_form(
            {"id": "f", "questions": [{"id": "q", "type": "short_text"}, {"id": "q", "type": "email"}]}
        )


def test_welcome_must_be_first_and_unique():
    with pytest.raises(FormDefinitionError):
        parse_form({"id": "f", "questions": [{"id": "a", "type": "short_text"}, {"id": "w", "type": "welcome"}]})
    with pytest.raises(FormDefinitionError):
        parse_form({"id": "f", "questions": [{"id": "w1", "type": "welcome"}, {"id": "w2", "type": "welcome"}]})


def test_at_most_one_thank_you():
    with pytest.raises(FormDefinitionError):
        parse_form({"id": "f", "questions": [{"id": "t1", "type": "thank_you"}, {"id": "t2", "type": "thank_you"}]})


def test_dangling_references_are_allowed(feedback_form_data):
    feedback_form_data["questions"][1]["logic"] = {
        "conditions": [{"questionId": "ghost", "operator": "equals", "value": "x"}],
        "action": "show",
    }
    form = parse_form(feedback_form_data)
    assert isinstance(form, Form)
    assert form.index_of("name") == 1
    assert form.question_by_id("ghost") is None


def test_settings_defaults_and_option_label_default():
    form = parse_form(
        {
            "id": "f",
            "questions": [
                {"id": "c", "type": "dropdown", "properties": {"options": [{"value": "red"}, {"value": "b", "label": "Blue"}]}}
            ],
        }
    )
    assert form.settings.show_progress_bar is True
    assert form.settings.enable_partial_submissions is False
    props = form.questions[0].properties
    assert props.option_values() == ["red", "b"]
    assert props.option_label("red") == "red"
    assert props.option_label("b") == "Blue"
