from __future__ import annotations

import pytest

from tasklens.config import get_settings
from tasklens.models import DetectionConfig


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    for key in (
        "COMPLETION_BACKEND",
        "GEMINI_API_KEY",
        "IDLE_THRESHOLD_SECONDS",
        "APP_SWITCH_DEBOUNCE_SECONDS",
        "MIN_TASK_DURATION_SECONDS",
        "CONTEXT_WINDOW",
        "LOCAL_LLM_BASE_URL",
        "COMPLETION_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_local_backend_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("COMPLETION_BACKEND", "local")
    monkeypatch.setenv("LOCAL_LLM_BASE_URL", "http://127.0.0.1:1234/v1/")

    settings = get_settings()

    assert settings.detection == DetectionConfig()
    assert settings.gemini is None
    assert settings.local_llm.base_url == "http://127.0.0.1:1234/v1"
    assert settings.local_llm.timeout_seconds == 30.0
    assert settings.database_path == (tmp_path / "data").resolve() / "tasklens.db"


def test_detection_overrides(monkeypatch):
    monkeypatch.setenv("COMPLETION_BACKEND", "local")
    monkeypatch.setenv("IDLE_THRESHOLD_SECONDS", "120")
    monkeypatch.setenv("APP_SWITCH_DEBOUNCE_SECONDS", "15")

    detection = get_settings().detection

    assert detection.idle_threshold == 120
    assert detection.app_switch_debounce == 15


def test_gemini_backend_requires_api_key():
    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        get_settings()


def test_gemini_backend_with_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setenv("COMPLETION_TIMEOUT_SECONDS", "12.5")
    settings = get_settings()
    assert settings.gemini.api_key == "key"
    assert settings.completion.timeout_seconds == 12.5


def test_unknown_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("COMPLETION_BACKEND", "openai")
    with pytest.raises(RuntimeError, match="COMPLETION_BACKEND"):
        get_settings()
