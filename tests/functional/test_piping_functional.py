"""Answer piping into question text."""

from __future__ import annotations

from formrunner.logic.piping import extract_field_references, has_piping_references, pipe_answers


def _questions(make_question):
    options = {"options": [{"label": "Red", "value": "r"}, {"label": "Blue", "value": "b"}]}
    return [
        make_question("w", "welcome"),
        make_question("name", "short_text"),
        make_question("colour", "dropdown", properties=options),
        make_question("colours", "checkbox", properties=options),
        make_question("order", "ranking"),
        make_question("grid", "matrix"),
        make_question("home", "address"),
        make_question("ok", "yes_no"),
        make_question("stars", "rating", properties={"max": 10}),
        make_question("qty", "number"),
        make_question("born", "date"),
        make_question("docs", "file_upload"),
    ]


def test_type_aware_formatting(make_question):
    qs = _questions(make_question)
    answers = {
        "name": "Ada",
        "colour": "r",
        "colours": ["r", "b"],
        "order": ["x", "y"],
        "grid": {"speed": "fast"},
        "home": {"street": "1 Main St", "city": "Springfield", "zip": "12345"},
        "ok": False,
        "stars": 7,
        "qty": 3.0,
        "born": "2024-01-15",
        "docs": [{"name": "a.pdf"}, {"name": "b.png"}],
    }
    assert pipe_answers("Hi {{name}}", qs, answers) == "Hi Ada"
    assert pipe_answers("{{colour}}", qs, answers) == "Red"
    assert pipe_answers("{{colours}}", qs, answers) == "Red, Blue"
    assert pipe_answers("{{order}}", qs, answers) == "1. x, 2. y"
    assert pipe_answers("{{grid.speed}}", qs, answers) == "fast"
    assert pipe_answers("{{grid.missing}}", qs, answers) == ""
    assert pipe_answers("{{home}}", qs, answers) == "1 Main St, Springfield, 12345"
    assert pipe_answers("{{home.city}}", qs, answers) == "Springfield"
    assert pipe_answers("{{ok}}", qs, answers) == "No"
    assert pipe_answers("{{stars}}", qs, answers) == "7/10"
    assert pipe_answers("{{qty}}", qs, answers) == "3"
    assert pipe_answers("{{born}}", qs, answers) == "Jan 15, 2024"
    assert pipe_answers("{{docs}}", qs, answers) == "a.pdf, b.png"


def test_unknown_and_unanswered_references_become_empty(make_question):
    qs = _questions(make_question)
    assert pipe_answers("[{{ghost}}][{{name}}]", qs, {}) == "[][]"


def test_ordinal_reference_counts_answerable_questions(make_question):
    qs = _questions(make_question)
    assert pipe_answers("{{#1}} likes {{#2}}", qs, {"name": "Ada", "colour": "b"}) == "Ada likes Blue"
    assert pipe_answers("{{#99}}", qs, {"name": "Ada"}) == ""


def test_single_pass_no_resubstitution(make_question):
    qs = _questions(make_question)
    answers = {"name": "{{colour}}", "colour": "r"}
    assert pipe_answers("{{name}}", qs, answers) == "{{colour}}"


def test_idempotent_and_non_mutating(make_question):
    qs = _questions(make_question)
    answers = {"name": "Ada"}
    first = pipe_answers("Hello {{name}}", qs, answers)
    assert first == pipe_answers("Hello {{name}}", qs, answers)
    assert answers == {"name": "Ada"}
    assert pipe_answers("", qs, answers) == ""
    assert pipe_answers("plain", qs, answers) == "plain"


def test_reference_helpers(make_question):
    assert extract_field_references("{{a}} {{b.city}} {{a}}") == ["a", "b"]
    assert extract_field_references(None) == []
    assert has_piping_references(make_question("q", "short_text", title="Hi {{name}}"))
    assert not has_piping_references(make_question("q", "short_text", title="Hi"))
