"""Run record model for pipeline observability.

A RunRecord is created at the start of every pipeline run and updated as
stages complete. It is returned to the caller (or attached to the raised
error) and written to the logs; the pipeline never reads it back to make
control decisions.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    FETCH = "fetch"
    CHECK_CHANGED = "check_changed"
    ANALYZE = "analyze"
    FORMAT = "format"
    DISPATCH = "dispatch"
    COMMIT_DIGEST = "commit_digest"


class RunOutcome(str, Enum):
    RUNNING = "running"
    DONE_NO_CHANGE = "done_no_change"
    DONE_SUCCESS = "done_success"
    DONE_FAILURE = "done_failure"


def new_run_id(forced: bool = False) -> str:
    """Generate a short run id; manual runs are prefixed for log grepping."""
    prefix = "manual_" if forced else ""
    return prefix + uuid.uuid4().hex[:8]


class RunRecord(BaseModel):
    """Observability record for one pipeline run.

    Attributes:
        run_id: Short unique id, also injected into every log line
        started_at: Run start (UTC)
        forced: True when the change check was bypassed (manual trigger)
        stage: Last stage entered
        stage_timings: Seconds spent per completed or failed stage
        outcome: Terminal state, or RUNNING while in progress
        digest: Digest of the fetched snapshot
        source_chars: Length of the fetched text
        summary_chars: Length of the summarizer output
        chunks: Number of chunks produced by the formatter
        delivered: Chunks delivered to the channel
        message_id: Last delivered message id
        error: Message of the causing error on failure
        error_type: Class name of the causing error on failure
    """

    run_id: str = Field(default_factory=new_run_id)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    forced: bool = False
    stage: Stage | None = None
    stage_timings: dict[str, float] = Field(default_factory=dict)
    outcome: RunOutcome = RunOutcome.RUNNING
    digest: str = ""
    source_chars: int = 0
    summary_chars: int = 0
    chunks: int = 0
    delivered: int = 0
    message_id: int | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def duration(self) -> float:
        return round(sum(self.stage_timings.values()), 3)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = self.model_dump(mode="json")
        d["duration"] = self.duration
        return d
