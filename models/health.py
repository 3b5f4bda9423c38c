"""Health check models.

ProbeResult:
    Outcome of one connectivity/configuration probe.

HealthReport:
    Aggregate of every probe, with a composite status that is ``ok`` only
    when all probes are ``ok``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ProbeStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class OverallStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"


class ProbeResult(BaseModel):
    """Result of a single probe.

    Attributes:
        status: ok or error
        message: Human-readable outcome
        detail: Optional payload extracted from the probed service
        duration_ms: Probe wall-clock time
    """

    status: ProbeStatus = Field(description="ok or error")
    message: str = Field(description="Human-readable outcome")
    detail: dict[str, Any] | None = Field(default=None, description="Extra probe data")
    duration_ms: int = Field(default=0, description="Probe duration in milliseconds")

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.OK

    @classmethod
    def success(cls, message: str, detail: dict[str, Any] | None = None) -> "ProbeResult":
        return cls(status=ProbeStatus.OK, message=message, detail=detail)

    @classmethod
    def failure(cls, message: str, detail: dict[str, Any] | None = None) -> "ProbeResult":
        return cls(status=ProbeStatus.ERROR, message=message, detail=detail)


class HealthReport(BaseModel):
    """Composite health of all external dependencies.

    Example:
        >>> report = HealthReport.from_probes({"bot": ProbeResult.success("up")})
        >>> report.overall
        <OverallStatus.OK: 'ok'>
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    probes: dict[str, ProbeResult] = Field(default_factory=dict)
    overall: OverallStatus = Field(description="ok iff every probe is ok")
    duration_ms: int = Field(default=0, description="Total check time (diagnostics only)")

    @classmethod
    def from_probes(cls, probes: dict[str, ProbeResult], duration_ms: int = 0) -> "HealthReport":
        """Build a report, deriving the overall status from the probe results."""
        overall = OverallStatus.OK
        if not all(result.ok for result in probes.values()):
            overall = OverallStatus.DEGRADED
        return cls(probes=probes, overall=overall, duration_ms=duration_ms)

    @property
    def failed(self) -> list[str]:
        """Names of probes that did not pass."""
        return [name for name, result in self.probes.items() if not result.ok]
