from __future__ import annotations

from pathlib import Path

import allure
import pytest

from cura.config import LlmSettings, QueueSettings, RateLimitSettings, Settings

pytestmark = [
    allure.epic("Task Queue"),
    allure.feature("Configuration"),
]


def test_from_env_defaults(monkeypatch) -> None:
    for name in (
        "CURA_DB_PATH",
        "CURA_POLL_INTERVAL_SECONDS",
        "CURA_RATE_LIMIT_AI_CALLS",
        "CURA_AI_PROVIDER",
        "CURA_BUILD_MAX_EXPERIENCES",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".cura.db")
    assert settings.queue.poll_interval_seconds == 3.0
    assert settings.queue.max_concurrent_tasks == 8
    assert settings.rate_limits.limits() == {
        "ai_analyze": 30,
        "ai_build": 30,
        "pdf_import": 100,
    }
    assert settings.build.max_experiences == 3
    assert settings.build.max_projects == 2
    assert settings.build.max_bullets_per_experience == 3
    assert settings.build.max_bullets_per_project == 3
    assert settings.llm.provider == "anthropic"


def test_from_env_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CURA_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("CURA_RATE_LIMIT_AI_CALLS", "5")
    monkeypatch.setenv("CURA_AI_PROVIDER", " Gemini ")
    monkeypatch.setenv("GOOGLE_AI_API_KEY", "g-key")
    monkeypatch.setenv("CURA_USER_ID", "user-42")
    monkeypatch.setenv("CURA_VERBOSE", "yes")

    settings = Settings.from_env(db_path=tmp_path / "explicit.db")

    assert settings.db_path == tmp_path / "explicit.db"
    assert settings.queue.poll_interval_seconds == 0.5
    assert settings.rate_limits.limits()["ai_build"] == 5
    assert settings.llm.provider == "gemini"
    assert settings.llm.gemini_api_key == "g-key"
    assert settings.user_context.user_id == "user-42"
    assert settings.verbose is True


def test_from_env_rejects_invalid_boolean(monkeypatch) -> None:
    monkeypatch.setenv("CURA_VERBOSE", "sometimes")

    with pytest.raises(ValueError, match="Invalid boolean value for CURA_VERBOSE"):
        Settings.from_env()


def test_validate_rejects_non_positive_poll_interval() -> None:
    settings = Settings(queue=QueueSettings(poll_interval_seconds=0))

    with pytest.raises(ValueError, match="CURA_POLL_INTERVAL_SECONDS"):
        settings.validate()


def test_validate_rejects_non_positive_rate_limit() -> None:
    settings = Settings(rate_limits=RateLimitSettings(pdf_imports_per_month=0))

    with pytest.raises(ValueError, match="pdf_import"):
        settings.validate()


def test_validate_rejects_unknown_provider() -> None:
    settings = Settings(llm=LlmSettings(provider="openai"))

    with pytest.raises(ValueError, match="Unsupported CURA_AI_PROVIDER"):
        settings.validate()


def test_validate_accepts_defaults() -> None:
    Settings().validate()
