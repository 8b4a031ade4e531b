"""Loading form definitions from disk and layered configuration."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from formrunner.config import AppConfig, load_config
from formrunner.logic.repository_forms import (
    FormNotFoundError,
    FormRepository,
    UnknownQuestionError,
    read_form_file,
)
from formrunner.models.question import FormDefinitionError

_YAML_FORM = """
id: contact
title: Contact
questions:
  - id: email
    type: email
    title: Email
    required: true
"""


@pytest.fixture
def forms_dir(tmp_path, feedback_form_data):
    (tmp_path / "feedback.json").write_text(json.dumps(feedback_form_data), encoding="utf-8")
    (tmp_path / "contact.yaml").write_text(_YAML_FORM, encoding="utf-8")
    (tmp_path / "broken.yml").write_text("id: [unclosed", encoding="utf-8")
    (tmp_path / "dupes.json").write_text(
        json.dumps({"id": "dupes", "questions": [{"id": "a", "type": "short_text"}, {"id": "a", "type": "email"}]}),
        encoding="utf-8",
    )
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    return tmp_path


def test_directory_load_skips_bad_definitions(forms_dir, caplog):
    repo = FormRepository.from_directory(forms_dir)
    assert repo.ids() == ["contact", "feedback"]
    assert len(repo) == 2
    assert "contact" in repo
    assert repo.get("contact").questions[0].required
    assert any("form_definition_skipped" in r.getMessage() for r in caplog.records)


def test_missing_directory_loads_nothing(tmp_path):
    assert len(FormRepository.from_directory(tmp_path / "absent")) == 0


def test_lookup_errors(feedback_form):
    repo = FormRepository([feedback_form])
    assert repo.get_question("feedback", "nps").type == "nps"
    with pytest.raises(FormNotFoundError) as e:
        repo.get("nope")
    assert e.value.form_id == "nope"
    with pytest.raises(UnknownQuestionError) as e:
        repo.get_question("feedback", "ghost")
    assert e.value.question_id == "ghost"


def test_read_form_file_rejects_non_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(FormDefinitionError):
        read_form_file(path)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in (
        "FORMRUNNER_AUTOSAVE_DEBOUNCE_SECONDS",
        "FORMRUNNER_PARTIAL_TTL_DAYS",
        "FORMRUNNER_STORAGE_URL",
        "FORMRUNNER_SUBMIT_URL",
        "FORMRUNNER_DROP_OFF_URL",
        "FORMRUNNER_ENDPOINT_TIMEOUT_SECONDS",
        "FORMRUNNER_FORMS_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults_without_overrides(clean_env):
    cfg = load_config()
    assert cfg == AppConfig()
    assert cfg.runtime.autosave_debounce_seconds == 2.0
    assert cfg.runtime.partial_ttl_days == 30
    assert cfg.endpoints.submit_url is None


def test_precedence_env_over_files_over_json(clean_env, monkeypatch):
    (clean_env / "formrunner_config.json").write_text(
        json.dumps({"runtime": {"autosave_debounce_seconds": 5, "partial_ttl_days": 7}, "forms": {"directory": "defs"}}),
        encoding="utf-8",
    )
    (clean_env / "config").mkdir()
    (clean_env / "config" / "runtime.partial_ttl_days").write_text("14\n", encoding="utf-8")
    monkeypatch.setenv("FORMRUNNER_AUTOSAVE_DEBOUNCE_SECONDS", "0.5")
    monkeypatch.setenv("FORMRUNNER_SUBMIT_URL", "https://api.example.com/submit")

    cfg = load_config()
    assert cfg.runtime.autosave_debounce_seconds == 0.5
    assert cfg.runtime.partial_ttl_days == 14
    assert cfg.forms.directory == "defs"
    assert cfg.endpoints.submit_url == "https://api.example.com/submit"


def test_invalid_values_raise(clean_env, monkeypatch):
    monkeypatch.setenv("FORMRUNNER_PARTIAL_TTL_DAYS", "0")
    with pytest.raises(ValidationError):
        load_config()


def test_endpoint_urls_must_be_http(clean_env, monkeypatch):
    monkeypatch.setenv("FORMRUNNER_DROP_OFF_URL", "ftp://example.com/x")
    with pytest.raises(ValidationError):
        load_config()


@pytest.fixture
def wired_config(clean_env, monkeypatch):
    from formrunner.db import reset_engine

    db_file = clean_env / "configured.db"
    monkeypatch.setenv("FORMRUNNER_STORAGE_URL", f"sqlite+pysqlite:///{db_file}")
    monkeypatch.setenv("FORMRUNNER_SUBMIT_URL", "https://api.example.com/submit")
    monkeypatch.setenv("FORMRUNNER_ENDPOINT_TIMEOUT_SECONDS", "3.5")
    reset_engine()
    yield load_config()
    reset_engine()


def test_sql_store_uses_configured_storage_url(wired_config):
    from formrunner.db import get_engine
    from formrunner.logic.repository_partial_submissions import SqlKeyValueStore

    store = SqlKeyValueStore.from_config(wired_config)
    store.set("k", '{"a": 1}')
    assert str(get_engine(wired_config.storage.url).url).endswith("configured.db")
    assert SqlKeyValueStore.from_config(wired_config).get("k") == '{"a": 1}'


def test_submission_client_uses_configured_endpoint_and_timeout(wired_config):
    import httpx

    from formrunner.logic.submission import HttpSubmissionClient, SubmissionPayload

    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(201)

    client = HttpSubmissionClient.from_config(wired_config, transport=httpx.MockTransport(handler))
    assert client.submit(SubmissionPayload(form_id="f1")).ok
    assert seen["url"] == "https://api.example.com/submit"
    assert client._timeout == 3.5


def test_submission_client_requires_submit_url(clean_env):
    from formrunner.logic.submission import HttpSubmissionClient

    with pytest.raises(ValueError):
        HttpSubmissionClient.from_config(load_config())


def test_runtime_from_config_autosaves_to_configured_store(wired_config, feedback_form):
    from formrunner.logic.form_runtime import FormRuntime
    from formrunner.logic.repository_partial_submissions import SqlKeyValueStore, partial_key
    from formrunner.logic.scheduler import ManualDebounceScheduler

    scheduler = ManualDebounceScheduler()
    rt = FormRuntime.from_config(feedback_form, wired_config, scheduler=scheduler)
    assert rt._submitter.url == "https://api.example.com/submit"
    rt.start()
    rt.handle_next()
    rt.set_answer("name", "Ada")
    assert scheduler.fire()
    saved = json.loads(SqlKeyValueStore.from_config(wired_config).get(partial_key("feedback")))
    assert saved["answers"] == {"name": "Ada"}
