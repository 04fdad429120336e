import pytest
from pydantic import ValidationError

from academic_bot.config import Settings, get_settings
from academic_bot.core.errors import ConfigurationError


@pytest.fixture
def clean_settings_cache(monkeypatch, tmp_path):
    # No stray .env from the working tree
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch, tmp_path):
    for name in ["HISTORY_BACKEND", "DATABASE_URL", "PLAGIARISM_THRESHOLD", "MAX_DRAFT_RETRIES"]:
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None, telegram_bot_token="123:abc", data_dir=tmp_path)

    assert settings.history_backend == "sql"
    assert settings.plagiarism_threshold == 0.10
    assert settings.max_draft_retries == 2
    assert settings.db_url.startswith("sqlite+aiosqlite:///")
    assert settings.drafts_dir == tmp_path / "drafts"


def test_empty_token_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, telegram_bot_token="")


@pytest.mark.usefixtures("clean_settings_cache")
def test_empty_token_in_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "")

    with pytest.raises(ConfigurationError) as exc_info:
        get_settings()
    assert "telegram_bot_token" in str(exc_info.value)


@pytest.mark.usefixtures("clean_settings_cache")
def test_missing_token(monkeypatch):
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)

    with pytest.raises(ConfigurationError):
        get_settings()
