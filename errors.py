"""Error taxonomy for the digest relay.

Every failure the relay can report belongs to one of these classes:

ConfigError:
    A required endpoint or credential is missing. Raised before any
    network call is attempted.

FetchError:
    The content source answered with a non-success status or the
    request failed at the network level.

AnalysisError:
    The summarization service failed (transport) or answered without
    generated text (malformed response).

DispatchError:
    A chunk could not be delivered to the channel. Carries the 1-based
    index of the failed chunk and how many chunks were delivered before it.

ProbeError:
    A health probe failed. Never escapes the probe boundary; the
    aggregator converts it into a ProbeResult.

Pipeline stage errors are not retried and are re-raised to the caller
with the failing run's record attached as ``run_record``.
"""

from typing import Any


class TrendwireError(Exception):
    """Base class for all relay errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.run_record: Any = None  # RunRecord of the failing pipeline run


class ConfigError(TrendwireError):
    """Raised when a required setting is missing."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class FetchError(TrendwireError):
    """Raised when the content source cannot be read."""

    def __init__(self, message: str, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class AnalysisError(TrendwireError):
    """Raised when the summarizer call fails or returns no text."""

    def __init__(self, message: str, model: str = "", malformed: bool = False):
        super().__init__(message)
        self.model = model
        self.malformed = malformed


class ChannelError(TrendwireError):
    """Raised by the channel client when a single Bot API call fails."""

    def __init__(self, message: str, status: int | None = None, description: str = ""):
        super().__init__(message)
        self.status = status
        self.description = description


class DispatchError(TrendwireError):
    """Raised when delivery aborts on a failed chunk.

    Attributes:
        chunk_index: 1-based index of the chunk that failed
        delivered: Chunks delivered before the failure
        total: Total chunks in the batch
    """

    def __init__(self, message: str, chunk_index: int, delivered: int, total: int):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.delivered = delivered
        self.total = total


class ProbeError(TrendwireError):
    """Raised inside a health probe; converted to data by the probe."""

    def __init__(self, message: str, detail: dict | None = None):
        super().__init__(message)
        self.detail = detail
