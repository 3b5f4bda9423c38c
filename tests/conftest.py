"""Shared fixtures for the relay test suite."""

from pathlib import Path

import pytest

from config import Config
from tests.fakes import RecordingChannel, StubSummarizer


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Fully populated configuration pointing at unroutable endpoints."""
    return Config(
        telegram_bot_token="123456:TEST-TOKEN",
        telegram_channel_id="@trendwire_test",
        openrouter_api_key="sk-or-test",
        source_url="https://example.invalid/latest_report_en.md",
        language="en",
        send_delay_seconds=0,
        state_db_path=tmp_path / "state.db",
        log_dir=tmp_path / "log",
    )


@pytest.fixture
def stub_summarizer() -> StubSummarizer:
    return StubSummarizer()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()
