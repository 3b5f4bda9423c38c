"""Configuration management for the Trendwire digest relay.

This module provides centralized configuration for all relay components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Required:
        TELEGRAM_BOT_TOKEN: Bot API token used for delivery and probes
        TELEGRAM_CHANNEL_ID: Target channel/chat id
        OPENROUTER_API_KEY: API key for the summarization service
        SOURCE_URL: Raw markdown feed URL (GITHUB_RAW_URL is also accepted)

    Endpoints:
        TELEGRAM_API_BASE: Bot API base URL
        OPENROUTER_BASE_URL: OpenAI-compatible API base URL

    Summary:
        SUMMARY_MODEL: Model identifier on the summarization service
        SUMMARY_TEMPERATURE: Sampling temperature
        SUMMARY_MAX_TOKENS: Completion token cap
        SUMMARY_TOP_N: Number of ranked items requested from the model
        SUMMARY_MAX_CHARS: Soft length budget stated in the instruction
        LANGUAGE: Output language ('ru' or 'en')

    Delivery:
        MESSAGE_MODE: 'split' (multi-message) or 'truncate' (single message)
        MESSAGE_LIMIT: Per-message character ceiling
        CONVERT_MARKDOWN: Convert markdown digest to Telegram HTML
        SEND_DELAY_SECONDS: Pause between consecutive chunk sends
        HTTP_TIMEOUT_SECONDS: Per-request transport timeout

    State:
        STATE_DB_PATH: SQLite file holding the last committed digest
        POLL_INTERVAL_SECONDS: Delay between runs in continuous mode

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from models.message import PART_HEADER_RESERVE


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


# Settings without which the relay cannot talk to one of its dependencies.
# Maps the environment variable name to the Config attribute.
REQUIRED_SETTINGS = {
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "TELEGRAM_CHANNEL_ID": "telegram_channel_id",
    "OPENROUTER_API_KEY": "openrouter_api_key",
    "SOURCE_URL": "source_url",
}

SUPPORTED_LANGUAGES = ("ru", "en")
MESSAGE_MODES = ("split", "truncate")

# Telegram rejects sendMessage text longer than this
TELEGRAM_MESSAGE_LIMIT = 4096


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    telegram_bot_token: str = ""  # TELEGRAM_BOT_TOKEN
    telegram_channel_id: str = ""  # TELEGRAM_CHANNEL_ID
    openrouter_api_key: str = ""  # OPENROUTER_API_KEY
    source_url: str = ""  # SOURCE_URL / GITHUB_RAW_URL - markdown feed

    # === Endpoints ===
    telegram_api_base: str = "https://api.telegram.org"  # TELEGRAM_API_BASE
    openrouter_base_url: str = "https://openrouter.ai/api/v1"  # OPENROUTER_BASE_URL

    # === Summary ===
    language: str = "ru"  # LANGUAGE - 'ru' (Russian) or 'en' (English)
    summary_model: str = "google/gemini-2.5-flash"  # SUMMARY_MODEL
    summary_temperature: float = 0.3  # SUMMARY_TEMPERATURE
    summary_max_tokens: int = 4000  # SUMMARY_MAX_TOKENS
    summary_top_n: int = 5  # SUMMARY_TOP_N - ranked items in the digest
    summary_max_chars: int = 3500  # SUMMARY_MAX_CHARS - soft budget in prompt

    # === Delivery ===
    message_mode: str = "split"  # MESSAGE_MODE - 'split' or 'truncate'
    message_limit: int = TELEGRAM_MESSAGE_LIMIT  # MESSAGE_LIMIT
    convert_markdown: bool = True  # CONVERT_MARKDOWN - markdown to Telegram HTML
    send_delay_seconds: float = 1.0  # SEND_DELAY_SECONDS - pacing between chunks
    http_timeout_seconds: int = 30  # HTTP_TIMEOUT_SECONDS

    # === State ===
    state_db_path: Path = field(default_factory=lambda: Path("state.db"))  # STATE_DB_PATH
    poll_interval_seconds: int = 86400  # POLL_INTERVAL_SECONDS - continuous mode

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
            telegram_channel_id=_env("TELEGRAM_CHANNEL_ID"),
            openrouter_api_key=_env("OPENROUTER_API_KEY"),
            source_url=_env("SOURCE_URL") or _env("GITHUB_RAW_URL"),
            telegram_api_base=_env("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/"),
            openrouter_base_url=_env("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
            language=_env("LANGUAGE", "ru").lower(),
            summary_model=_env("SUMMARY_MODEL", "google/gemini-2.5-flash"),
            summary_temperature=_env_float("SUMMARY_TEMPERATURE", 0.3),
            summary_max_tokens=_env_int("SUMMARY_MAX_TOKENS", 4000),
            summary_top_n=_env_int("SUMMARY_TOP_N", 5),
            summary_max_chars=_env_int("SUMMARY_MAX_CHARS", 3500),
            message_mode=_env("MESSAGE_MODE", "split").lower(),
            message_limit=_env_int("MESSAGE_LIMIT", TELEGRAM_MESSAGE_LIMIT),
            convert_markdown=_env_bool("CONVERT_MARKDOWN", True),
            send_delay_seconds=_env_float("SEND_DELAY_SECONDS", 1.0),
            http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
            state_db_path=Path(_env("STATE_DB_PATH", "state.db")),
            poll_interval_seconds=_env_int("POLL_INTERVAL_SECONDS", 86400),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def missing_required(self) -> list[str]:
        """Return the names of required environment variables that are unset."""
        return [env for env, attr in REQUIRED_SETTINGS.items() if not getattr(self, attr)]

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Checks:
            - All required credentials and the source URL are set
            - Language and message mode are supported
            - Numeric values are in range

        Returns:
            Error message string if invalid, None if valid.
        """
        missing = self.missing_required()
        if missing:
            return f"Missing required environment variables: {', '.join(missing)}"
        if self.language not in SUPPORTED_LANGUAGES:
            return f"Invalid LANGUAGE '{self.language}' - must be 'ru' or 'en'"
        if self.message_mode not in MESSAGE_MODES:
            return f"Invalid MESSAGE_MODE '{self.message_mode}' - must be 'split' or 'truncate'"
        if self.message_mode == "split":
            floor = PART_HEADER_RESERVE + 1
        else:
            from formatter import TRUNCATION_MARKERS

            floor = len(TRUNCATION_MARKERS.get(self.language, TRUNCATION_MARKERS["en"])) + 1
        if not floor <= self.message_limit <= TELEGRAM_MESSAGE_LIMIT:
            return f"MESSAGE_LIMIT must be between {floor} and {TELEGRAM_MESSAGE_LIMIT} in {self.message_mode} mode"
        if self.summary_top_n <= 0:
            return "SUMMARY_TOP_N must be positive"
        if self.summary_max_tokens <= 0:
            return "SUMMARY_MAX_TOKENS must be positive"
        if self.send_delay_seconds < 0:
            return "SEND_DELAY_SECONDS must be non-negative"
        if self.http_timeout_seconds <= 0:
            return "HTTP_TIMEOUT_SECONDS must be positive"
        if self.poll_interval_seconds <= 0:
            return "POLL_INTERVAL_SECONDS must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
