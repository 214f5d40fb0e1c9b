from __future__ import annotations

import logging
from types import SimpleNamespace

from google.api_core.exceptions import DeadlineExceeded, ResourceExhausted

from tasklens import gemini_client
from tasklens.completion import CompletionOptions, CompletionStatus
from tasklens.config import GeminiSettings

log = logging.getLogger("tests.gemini")


class StubModel:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def generate_content(self, contents, generation_config=None, request_options=None):
        self.calls.append({"contents": contents, "config": generation_config, "options": request_options})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


def _client(monkeypatch, model: StubModel) -> gemini_client.GeminiCompletion:
    monkeypatch.setattr(gemini_client.genai, "configure", lambda api_key: None)
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", lambda name: model)
    settings = GeminiSettings(api_key="key", model="gemini-test", max_tokens=256, temperature=0.4, max_retries=2)
    return gemini_client.GeminiCompletion(settings, log, timeout_seconds=7)


def test_complete_sends_json_config_and_timeout(monkeypatch):
    model = StubModel('{"sameTask": true}')
    client = _client(monkeypatch, model)

    result = client.complete([], "Same task?", CompletionOptions(temperature=0.3, expect_json=True))

    assert result.ok
    assert result.text == '{"sameTask": true}'
    call = model.calls[0]
    assert call["contents"] == ["Same task?"]
    assert call["config"]["response_mime_type"] == "application/json"
    assert call["config"]["temperature"] == 0.3
    assert call["options"] == {"timeout": 7}


def test_rate_limit_is_retried(monkeypatch):
    sleeps = []
    monkeypatch.setattr(gemini_client.time, "sleep", sleeps.append)
    model = StubModel(ResourceExhausted("Quota exceeded. Please retry in 2s"), "Budget review")
    client = _client(monkeypatch, model)

    result = client.complete([], "Name this task", CompletionOptions())

    assert result.text == "Budget review"
    assert sleeps == [2.5]


def test_deadline_maps_to_timeout_and_errors_to_failure(monkeypatch):
    client = _client(monkeypatch, StubModel(DeadlineExceeded("too slow"), ValueError("bad request")))

    assert client.complete([], "p", CompletionOptions()).status is CompletionStatus.TIMEOUT
    failed = client.complete([], "p", CompletionOptions())
    assert failed.status is CompletionStatus.FAILED
    assert "bad request" in failed.error
