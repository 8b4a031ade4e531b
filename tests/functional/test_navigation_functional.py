"""Branch resolution, progress and numbering."""

from __future__ import annotations

import pytest

from formrunner.logic.navigation import (
    get_next_question_index,
    get_previous_question_index,
    get_progress,
    question_number,
    resolve_jump_target,
)


def test_sequential_advance_skips_hidden(feedback_form):
    qs = feedback_form.questions
    # welcome -> name -> satisfied
    assert get_next_question_index(0, qs, {}) == 1
    assert get_next_question_index(1, qs, {"name": "Ada"}) == 2
    # "problem" is shown only for an unhappy answer
    assert get_next_question_index(2, qs, {"satisfied": False}) == 3
    assert get_next_question_index(3, qs, {"satisfied": False}) == 4


def test_matching_jump_wins(feedback_form):
    qs = feedback_form.questions
    assert resolve_jump_target(2, qs, {"satisfied": True}) == 4
    assert get_next_question_index(2, qs, {"satisfied": True}) == 4
    assert resolve_jump_target(2, qs, {"satisfied": False}) is None


def test_last_question_returns_sentinel(make_question):
    qs = [make_question("a", "short_text"), make_question("b", "short_text")]
    assert get_next_question_index(1, qs, {}) == 2
    assert get_next_question_index(5, qs, {}) == 2


def test_backward_and_self_jumps_are_ignored(make_question):
    back = {"conditions": [], "action": "jump", "jumpToQuestionId": "a"}
    qs = [
        make_question("a", "short_text"),
        make_question("b", "short_text", logic=back),
        make_question("c", "short_text", logic={"conditions": [], "action": "jump", "jumpToQuestionId": "c"}),
    ]
    assert resolve_jump_target(1, qs, {}) is None
    assert get_next_question_index(1, qs, {}) == 2
    assert get_next_question_index(2, qs, {}) == 3


def test_jump_to_missing_target_falls_back(make_question):
    qs = [
        make_question("a", "short_text", logic={"conditions": [], "action": "jump", "jumpToQuestionId": "zzz"}),
        make_question("b", "short_text"),
    ]
    assert get_next_question_index(0, qs, {}) == 1


def test_hidden_jump_target_continues_forward(make_question):
    qs = [
        make_question("a", "short_text", logic={"conditions": [], "action": "jump", "jumpToQuestionId": "c"}),
        make_question("b", "short_text"),
        make_question(
            "c", "short_text",
            logic={"conditions": [{"questionId": "a", "operator": "equals", "value": "show-c"}], "action": "show"},
        ),
        make_question("d", "short_text"),
    ]
    assert get_next_question_index(0, qs, {"a": "x"}) == 3
    assert get_next_question_index(0, qs, {"a": "show-c"}) == 2


def test_forward_walk_always_terminates(make_question):
    always = {"conditions": [], "action": "jump"}
    qs = [
        make_question("a", "short_text", logic={**always, "jumpToQuestionId": "c"}),
        make_question("b", "short_text", logic={**always, "jumpToQuestionId": "a"}),
        make_question("c", "short_text", logic={**always, "jumpToQuestionId": "b"}),
    ]
    index, steps = 0, 0
    while index < len(qs):
        nxt = get_next_question_index(index, qs, {})
        assert nxt > index
        index, steps = nxt, steps + 1
    assert steps <= len(qs)


def test_previous_walks_visible_questions_and_clamps(feedback_form):
    qs = feedback_form.questions
    assert get_previous_question_index(4, qs, {"satisfied": True}) == 2
    assert get_previous_question_index(4, qs, {"satisfied": False}) == 3
    assert get_previous_question_index(0, qs, {}) == 0


def test_progress_and_numbers(feedback_form):
    qs = feedback_form.questions
    progress = get_progress(1, qs, {})
    # problem is hidden until answered unhappily
    assert progress.visible_count == 5
    assert progress.visible_index == 2
    assert progress.percent == 40
    assert get_progress(len(qs), qs, {}).percent == 100
    assert question_number(0, qs, {}) is None
    assert question_number(1, qs, {}) == 1
    assert question_number(4, qs, {}) == 3
    assert question_number(4, qs, {"satisfied": False}) == 4


@pytest.mark.parametrize(
    "answers",
    [
        {},
        {"name": "Ada"},
        {"name": "Ada", "satisfied": False},
        {"name": "Ada", "satisfied": False, "problem": "slow", "nps": 3},
    ],
)
def test_previous_undoes_next_without_jumps(feedback_form, answers):
    from formrunner.logic.visibility_rules import should_show_question

    qs = feedback_form.questions
    for i, q in enumerate(qs):
        if not should_show_question(q, answers, qs):
            continue
        nxt = get_next_question_index(i, qs, answers)
        if nxt >= len(qs):
            continue
        assert get_previous_question_index(nxt, qs, answers) == i, (i, nxt)
