"""Logging setup with run context propagation.

Every log line emitted during a pipeline run carries the run id and the
stage currently executing, so a single delivery can be followed through
fetch, analysis, formatting, and dispatch:

    12:00:01 [INFO] [a1b2c3d4:analyze] agents.summarizer: Digest generated | ...

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context(run_id="a1b2c3d4")
    >>> logger.info("Run started")  # Includes run_id automatically
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

LOG_FILE_NAME = "trendwire.log"

run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
stage_var: contextvars.ContextVar[str] = contextvars.ContextVar("stage", default="-")

# Attributes every LogRecord has; anything else was passed via ``extra``
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "run_id", "stage", "message",
))


def set_run_context(run_id: str) -> None:
    """Set the current run id for log context propagation."""
    run_id_var.set(run_id)
    stage_var.set("-")


def set_stage_context(stage: str) -> None:
    """Set the pipeline stage currently executing."""
    stage_var.set(stage)


def clear_context() -> None:
    """Reset run and stage context to their defaults."""
    run_id_var.set("-")
    stage_var.set("-")


class ContextFilter(logging.Filter):
    """Injects run_id and stage into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        record.stage = stage_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log aggregation.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...",
         "run_id": "...", "stage": "...", ...extra fields}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }

        stage = getattr(record, "stage", "-")
        if stage != "-":
            log_data["stage"] = stage

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable format: TIMESTAMP [LEVEL] [run_id:stage] logger: message"""

    def __init__(self, include_date: bool = False):
        datefmt = "%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S"
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s:%(stage)s] %(name)s: %(message)s",
            datefmt=datefmt,
        )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure console and rotating file logging.

    Falls back to console-only logging when the log directory is not
    writable.

    Args:
        config: Application configuration with logging settings
        verbose: Force DEBUG level on the console

    Returns:
        True if file logging is enabled, False if console-only
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    context_filter = ContextFilter()

    if config.log_format == "json":
        console_fmt: logging.Formatter = JsonFormatter()
        file_fmt: logging.Formatter = JsonFormatter()
    else:
        console_fmt = TextFormatter(include_date=False)
        file_fmt = TextFormatter(include_date=True)

    # Console goes to stderr so command output on stdout stays parseable
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(console)

    file_logging_enabled = False
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / LOG_FILE_NAME

        if config.log_max_bytes > 0:
            file_handler: logging.Handler = RotatingFileHandler(
                log_file,
                maxBytes=config.log_max_bytes,
                backupCount=config.log_backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = TimedRotatingFileHandler(
                log_file,
                when="midnight",
                interval=1,
                backupCount=config.log_backup_count,
                encoding="utf-8",
            )

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_fmt)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)
        file_logging_enabled = True

    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )

    # Reduce noise from third-party libraries
    for lib in ("aiohttp", "httpx", "httpcore", "openai", "asyncio"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return file_logging_enabled
