"""Pydantic models for the Trendwire digest relay.

This package contains all data models used throughout the relay:

ContentSnapshot:
    Fetched markdown text plus its SHA-256 digest (see compute_digest).

AnalysisResult:
    Text returned by the summarizer.

Chunk:
    One bounded-length segment of a formatted digest, numbered index/total.

DeliveryReport:
    Result of a fully successful dispatch.

ProbeResult / HealthReport:
    Outcome of one health probe, and the aggregate of all of them.

RunRecord:
    Per-run observability record (stages, timings, outcome).

Example:
    >>> from models import ContentSnapshot
    >>> snapshot = ContentSnapshot.from_text("# Trends")
"""

from models.content import AnalysisResult, ContentSnapshot, compute_digest
from models.health import HealthReport, OverallStatus, ProbeResult, ProbeStatus
from models.message import PART_HEADER_RESERVE, Chunk, DeliveryReport
from models.run import RunOutcome, RunRecord, Stage

__all__ = [
    "AnalysisResult",
    "ContentSnapshot",
    "compute_digest",
    "HealthReport",
    "OverallStatus",
    "ProbeResult",
    "ProbeStatus",
    "PART_HEADER_RESERVE",
    "Chunk",
    "DeliveryReport",
    "RunOutcome",
    "RunRecord",
    "Stage",
]
