"""Content models for the markdown feed and its summary.

This module defines the data flowing through one pipeline run:

ContentSnapshot:
    The raw markdown text fetched from the source, together with its digest.

AnalysisResult:
    The text produced by the summarizer for that snapshot.

Change Detection Strategy:
    A snapshot is fingerprinted with SHA-256 over the exact UTF-8 bytes of
    the text. No normalization is applied: any byte difference in the feed
    (including whitespace) is treated as a new revision, and identical bytes
    always produce the same 64-character hex digest.
"""

from datetime import datetime, timezone
from hashlib import sha256

from pydantic import BaseModel, ConfigDict, Field


def compute_digest(text: str) -> str:
    """Return the SHA-256 hex digest of the UTF-8 encoded text.

    Args:
        text: Content to fingerprint

    Returns:
        64-character lowercase hex string
    """
    return sha256(text.encode("utf-8")).hexdigest()


class ContentSnapshot(BaseModel):
    """An immutable revision of the markdown feed.

    Attributes:
        text: Raw feed body as returned by the source
        digest: SHA-256 hex digest of ``text``
        source_url: Where the text was fetched from (diagnostic only)
        fetched_at: Fetch timestamp in UTC (diagnostic only)

    Example:
        >>> snapshot = ContentSnapshot.from_text("hello world")
        >>> snapshot.digest[:16]
        'b94d27b9934d3e08'
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Raw markdown body")
    digest: str = Field(description="SHA-256 hex digest of text")
    source_url: str = Field(default="", description="Feed URL")
    fetched_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Fetch timestamp (UTC)",
    )

    @classmethod
    def from_text(cls, text: str, source_url: str = "") -> "ContentSnapshot":
        """Build a snapshot, computing the digest from the text."""
        return cls(text=text, digest=compute_digest(text), source_url=source_url)

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"ContentSnapshot({self.digest[:12]}..., chars={len(self.text)})"


class AnalysisResult(BaseModel):
    """Summarizer output for one snapshot.

    Only ``text`` is consumed by the rest of the pipeline; the other fields
    are recorded for diagnostics.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Generated digest text")
    model: str = Field(default="", description="Model that produced the text")
    input_tokens: int = Field(default=0, description="Prompt tokens reported by the service")
    output_tokens: int = Field(default=0, description="Completion tokens reported by the service")
    duration: float = Field(default=0.0, description="Call duration in seconds")
