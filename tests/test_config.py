# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from todocan.config import ConfigurationError, Settings, require_gemini_api_key


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TODOCAN_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GEMINI_API_KEY", "plain-key")
    monkeypatch.setenv("TODOCAN_API_TOKENS", "t1:alice, t2:bob, broken, :nobody")
    monkeypatch.setenv("TODOCAN_ADMIN_USERS", "alice")
    monkeypatch.setenv("TODOCAN_HTTP_PORT", "not-a-number")
    monkeypatch.delenv("TODOCAN_GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("TODOCAN_TASKS_DB_PATH", raising=False)
    monkeypatch.delenv("TODOCAN_GEMINI_FALLBACK_MODELS", raising=False)

    s = Settings.from_env()

    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.gemini_api_key == "plain-key"
    assert s.api_tokens == {"t1": "alice", "t2": "bob"}
    assert s.admin_users == ["alice"]
    assert s.http_port == 8000
    assert s.gemini_fallback_models == ["models/gemini-2.0-flash", "models/gemini-1.5-flash"]


def test_prefixed_key_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "plain-key")
    monkeypatch.setenv("TODOCAN_GEMINI_API_KEY", "prefixed-key")
    assert Settings.from_env().gemini_api_key == "prefixed-key"


def test_missing_key_fails_only_when_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("TODOCAN_GEMINI_API_KEY", raising=False)

    s = Settings.from_env()
    assert s.gemini_api_key is None
    with pytest.raises(ConfigurationError):
        require_gemini_api_key(s)
