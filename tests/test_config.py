"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from config import Config

REQUIRED_ENV = {
    "TELEGRAM_BOT_TOKEN": "123:ABC",
    "TELEGRAM_CHANNEL_ID": "@trends",
    "OPENROUTER_API_KEY": "sk-or-key",
    "SOURCE_URL": "https://raw.githubusercontent.com/org/repo/main/latest_report_en.md",
}


OPTIONAL_ENV = (
    "SOURCE_URL", "GITHUB_RAW_URL", "LANGUAGE", "MESSAGE_MODE", "MESSAGE_LIMIT",
    "SUMMARY_MODEL", "SUMMARY_TEMPERATURE", "SUMMARY_MAX_TOKENS", "SUMMARY_TOP_N",
    "CONVERT_MARKDOWN", "SEND_DELAY_SECONDS", "STATE_DB_PATH", "TELEGRAM_API_BASE",
    "LOG_LEVEL", "LOG_FORMAT",
)


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch):
    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


class TestConfigLoad:
    def test_defaults(self, env):
        config = Config.load()

        assert config.validate() is None
        assert config.language == "ru"
        assert config.message_mode == "split"
        assert config.message_limit == 4096
        assert config.summary_model == "google/gemini-2.5-flash"
        assert config.summary_temperature == 0.3
        assert config.summary_max_tokens == 4000
        assert config.summary_top_n == 5
        assert config.send_delay_seconds == 1.0
        assert config.state_db_path == Path("state.db")

    def test_overrides(self, env):
        env.setenv("LANGUAGE", "EN")
        env.setenv("MESSAGE_MODE", "truncate")
        env.setenv("SUMMARY_TOP_N", "3")
        env.setenv("CONVERT_MARKDOWN", "off")
        env.setenv("TELEGRAM_API_BASE", "http://localhost:8081/")

        config = Config.load()

        assert config.language == "en"
        assert config.message_mode == "truncate"
        assert config.summary_top_n == 3
        assert config.convert_markdown is False
        assert config.telegram_api_base == "http://localhost:8081"

    def test_github_raw_url_fallback(self, env):
        env.delenv("SOURCE_URL")
        env.setenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com/x/y/main/r.md")
        assert Config.load().source_url == "https://raw.githubusercontent.com/x/y/main/r.md"

    def test_invalid_integer(self, env):
        env.setenv("SUMMARY_TOP_N", "five")
        with pytest.raises(ValueError, match="SUMMARY_TOP_N"):
            Config.load()


class TestConfigValidate:
    def test_reports_all_missing_settings(self):
        config = Config()
        assert config.missing_required() == [
            "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHANNEL_ID", "OPENROUTER_API_KEY", "SOURCE_URL",
        ]
        assert "TELEGRAM_BOT_TOKEN" in config.validate()

    @pytest.mark.parametrize(
        "field, value, expected",
        [
            ("language", "de", "LANGUAGE"),
            ("message_mode", "stream", "MESSAGE_MODE"),
            ("message_limit", 5000, "MESSAGE_LIMIT"),
            ("summary_top_n", 0, "SUMMARY_TOP_N"),
            ("send_delay_seconds", -1, "SEND_DELAY_SECONDS"),
            ("log_format", "xml", "LOG_FORMAT"),
        ],
    )
    def test_rejects_invalid_values(self, config: Config, field: str, value, expected: str):
        setattr(config, field, value)
        assert expected in config.validate()

    @pytest.mark.parametrize(
        "mode, limit, valid",
        [
            ("split", 24, False),
            ("split", 25, True),
            ("truncate", len("\n\n... [truncated]"), False),
            ("truncate", len("\n\n... [truncated]") + 1, True),
        ],
    )
    def test_message_limit_floor_depends_on_mode(self, config: Config, mode: str, limit: int, valid: bool):
        config.message_mode = mode
        config.message_limit = limit
        error = config.validate()
        if valid:
            assert error is None
        else:
            assert "MESSAGE_LIMIT" in error
