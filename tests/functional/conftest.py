"""Functional test bootstrap for the form runtime.

Points local storage at a throwaway SQLite file under tmp/ before anything
imports the engine, and provides form fixtures plus a TestClient over an app
built from in-memory form definitions.
"""

import os
import pathlib
from typing import Any, Dict, List

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["FORMRUNNER_TEST_STORAGE_URL"] = f"sqlite+pysqlite:///{_DB_FILE}"


def _q(qid: str, qtype: str, title: str = "", **extra: Any) -> Dict[str, Any]:
    return {"id": qid, "type": qtype, "title": title or qid, **extra}


@pytest.fixture
def make_question():
    from formrunner.models.question import Question

    def _make(qid: str, qtype: str, **extra: Any) -> Question:
        return Question.model_validate(_q(qid, qtype, **extra))

    return _make


@pytest.fixture
def feedback_form_data() -> Dict[str, Any]:
    """Welcome, text, yes/no with a forward jump, a conditional follow-up, nps, thank you."""
    return {
        "id": "feedback",
        "title": "Feedback",
        "settings": {
            "showProgressBar": True,
            "showQuestionNumbers": True,
            "enablePartialSubmissions": True,
            "enablePrefill": True,
            "prefillMapping": {"n": "name"},
        },
        "questions": [
            _q("welcome", "welcome", "Hi"),
            _q("name", "short_text", "Your name?", required=True, properties={"maxLength": 20}),
            _q(
                "satisfied",
                "yes_no",
                "Happy, {{name}}?",
                required=True,
                logic={
                    "conditions": [{"questionId": "satisfied", "operator": "equals", "value": "yes"}],
                    "action": "show",
                    "jumpToQuestionId": "nps",
                },
            ),
            _q(
                "problem",
                "long_text",
                "What went wrong?",
                required=True,
                logic={
                    "conditions": [{"questionId": "satisfied", "operator": "equals", "value": "no"}],
                    "action": "show",
                },
            ),
            _q("nps", "nps", "Recommend us?", required=True),
            _q("thanks", "thank_you", "Thanks {{name}}"),
        ],
    }


@pytest.fixture
def feedback_form(feedback_form_data):
    from formrunner.models.question import parse_form

    return parse_form(feedback_form_data)


@pytest.fixture
def quote_form():
    from formrunner.models.question import parse_form

    return parse_form(
        {
            "id": "quote",
            "title": "Quote",
            "settings": {"showProgressBar": False},
            "questions": [
                _q("quantity", "number", required=True, properties={"min": 1, "max": 500}),
                _q("price", "number", required=True),
                _q(
                    "extras",
                    "checkbox",
                    properties={"options": [{"label": "Gift wrap", "value": "5"}, {"label": "Express", "value": "15"}]},
                ),
                _q(
                    "total",
                    "calculator",
                    "Total",
                    properties={"formula": "{{quantity}} * {{price}} + {{extras}}", "decimalPlaces": 2, "prefix": "$"},
                ),
                _q("summary", "thank_you", "Due: {{total}}"),
            ],
        }
    )


class RecordingSubmitter:
    """Submission boundary double that records payloads and replays outcomes."""

    def __init__(self, outcomes: List[bool] | None = None) -> None:
        self.payloads: list = []
        self._outcomes = list(outcomes or [True])

    def submit(self, payload):
        from formrunner.logic.submission import SubmissionOutcome

        self.payloads.append(payload)
        ok = self._outcomes.pop(0) if self._outcomes else True
        if ok:
            return SubmissionOutcome(ok=True, status_code=201)
        return SubmissionOutcome(ok=False, status_code=503, error="Service unavailable")


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def failing_then_ok_submitter() -> RecordingSubmitter:
    return RecordingSubmitter([False, True])


@pytest.fixture
def client(feedback_form, quote_form):
    from fastapi.testclient import TestClient

    from formrunner.config import AppConfig
    from formrunner.logic.repository_forms import FormRepository
    from formrunner.main import create_app

    app = create_app(config=AppConfig(), forms=FormRepository([feedback_form, quote_form]))
    return TestClient(app)
