"""
Tests for the HTTP endpoints.
Covers:
  - GET / ack
  - POST /ask happy path, validation, upstream failure
  - POST /select-option happy path, missing history, upstream failure
  - /health and /stats
"""

import re

import pytest
from unittest.mock import patch

from compass.backends.base import CompletionError, SchemaValidationError
from compass.coach import extract_now_then

from conftest import FakeBackend

UUID4_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")

PROJECT_KEYS = {"projectName", "projectDescription", "options"}
OPTION_KEYS = {"title", "description", "percentageOfSuccess", "pros", "cons"}
ISSUES_KEYS = {"projectName", "projectDescription", "actionItems"}
ISSUE_KEYS = {"task", "description", "priority", "deadline", "potentialBlockers"}


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    """Test client with the model backend replaced by a fake."""
    from fastapi.testclient import TestClient
    from compass import config as cfg_mod

    cfg_data = {
        "server": {"host": "127.0.0.1", "port": 3000},
        "backend": {"url": "http://fake", "api_key": "sk-fake", "model": "fake-model", "timeout": 5},
        "logging": {"level": "WARNING"},
    }
    orig_config = cfg_mod._config
    cfg_mod._config = cfg_data

    import compass.main  # ensure module is imported before patching

    with patch("compass.main.OpenAICompatibleBackend") as MockBackend:
        MockBackend.from_config.return_value = backend
        from compass.main import app
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c

    cfg_mod._config = orig_config


def _ask(c, now="in debt", then="debt free"):
    return c.post("/ask", json={"now": now, "then": then})


# ── GET / ─────────────────────────────────────────────────────────────────────

class TestRoot:
    def test_ack(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    def test_ack_is_stateless(self, client):
        _ask(client)
        assert client.get("/").json() == {"ok": True}
        assert client.get("/").json() == {"ok": True}


# ── POST /ask ─────────────────────────────────────────────────────────────────

class TestAsk:
    def test_returns_project_and_session_id(self, client):
        r = _ask(client)
        assert r.status_code == 200
        body = r.json()["data"]
        assert UUID4_RE.match(body["id"])
        assert set(body["data"]) == PROJECT_KEYS
        for option in body["data"]["options"]:
            assert set(option) == OPTION_KEYS
            assert isinstance(option["percentageOfSuccess"], int)
            assert isinstance(option["pros"], list)
            assert isinstance(option["cons"], list)

    def test_distinct_ids(self, client):
        a = _ask(client).json()["data"]["id"]
        b = _ask(client).json()["data"]["id"]
        assert a != b

    def test_sends_project_schema(self, client, backend):
        _ask(client)
        assert backend.calls[0]["name"] == "Project"

    @pytest.mark.parametrize("payload", [
        {"now": "x"},
        {"then": "y"},
        {"now": "", "then": "y"},
        {"now": "x", "then": ""},
        {"now": 1, "then": "y"},
        ["now", "then"],
    ])
    def test_bad_body_is_client_error(self, client, backend, payload):
        r = client.post("/ask", json=payload)
        assert r.status_code == 400
        assert backend.calls == []

    def test_non_json_body(self, client):
        r = client.post("/ask", content=b"now=x", headers={"Content-Type": "text/plain"})
        assert r.status_code == 400

    def test_upstream_failure_is_500(self, client, backend):
        backend.fail = CompletionError("HTTP 401: bad key")
        r = _ask(client)
        assert r.status_code == 500
        assert r.text == "Failed to create chat completions"

    def test_schema_failure_is_500(self, client, backend):
        backend.fail = SchemaValidationError("options missing")
        r = _ask(client)
        assert r.status_code == 500
        assert client.get("/stats").json()["sessions"] == 0


# ── POST /select-option ───────────────────────────────────────────────────────

class TestSelectOption:
    def test_returns_issues(self, client, backend):
        chat_id = _ask(client).json()["data"]["id"]
        r = client.post("/select-option", json={"selectedOption": "Side hustle", "chatId": chat_id})
        assert r.status_code == 200
        body = r.json()["data"]
        assert body["id"] == chat_id
        assert set(body["data"]) == ISSUES_KEYS
        for item in body["data"]["actionItems"]:
            assert set(item) == ISSUE_KEYS
        assert backend.calls[-1]["name"] == "Issues"

    def test_recovers_exact_now_then(self, client, backend):
        chat_id = _ask(client, now="renting, 2 kids", then="own a 3-bed house").json()["data"]["id"]
        client.post("/select-option", json={"selectedOption": "Save", "chatId": chat_id})
        sent = backend.calls[-1]["messages"]
        assert extract_now_then(sent) == ("renting, 2 kids", "own a 3-bed house")

    @pytest.mark.parametrize("chat_id", ["", "00000000-0000-4000-8000-000000000000"])
    def test_unknown_chat_is_400(self, client, backend, chat_id):
        r = client.post("/select-option", json={"selectedOption": "x", "chatId": chat_id})
        assert r.status_code == 400
        assert r.text == "Missing 'now' or 'then' in chat history."
        assert backend.calls == []

    def test_whitespace_selection_is_accepted(self, client, backend):
        chat_id = _ask(client).json()["data"]["id"]
        r = client.post("/select-option", json={"selectedOption": " ", "chatId": chat_id})
        assert r.status_code == 200
        assert set(r.json()["data"]["data"]) == ISSUES_KEYS
        assert backend.calls[-1]["messages"][-1].content == "[SELECTED_OPTION]  "

    def test_empty_selection_is_400(self, client, backend):
        chat_id = _ask(client).json()["data"]["id"]
        r = client.post("/select-option", json={"selectedOption": "", "chatId": chat_id})
        assert r.status_code == 400
        assert len(backend.calls) == 1

    def test_missing_chat_id_is_400(self, client):
        r = client.post("/select-option", json={"selectedOption": "x"})
        assert r.status_code == 400

    def test_missing_selection_is_400(self, client):
        chat_id = _ask(client).json()["data"]["id"]
        r = client.post("/select-option", json={"chatId": chat_id})
        assert r.status_code == 400

    def test_upstream_failure_is_500(self, client, backend):
        chat_id = _ask(client).json()["data"]["id"]
        backend.fail = CompletionError("timeout")
        r = client.post("/select-option", json={"selectedOption": "x", "chatId": chat_id})
        assert r.status_code == 500
        assert r.text == "Failed to create chat completions with selected option"

    def test_repeat_selection_gives_another_breakdown(self, client):
        chat_id = _ask(client).json()["data"]["id"]
        client.post("/select-option", json={"selectedOption": "one", "chatId": chat_id})
        r = client.post("/select-option", json={"selectedOption": "two", "chatId": chat_id})
        assert r.status_code == 200
        assert set(r.json()["data"]["data"]) == ISSUES_KEYS


# ── Service endpoints ─────────────────────────────────────────────────────────

class TestServiceEndpoints:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["model"] == "fake-model"

    def test_stats_count_sessions(self, client):
        chat_id = _ask(client).json()["data"]["id"]
        client.post("/select-option", json={"selectedOption": "x", "chatId": chat_id})
        stats = client.get("/stats").json()
        assert stats["sessions"] == 1
        assert stats["messages"] == 5
        assert stats["assistant_messages"] == 1
