"""Outgoing message models."""

from pydantic import BaseModel, ConfigDict, Field

# Room kept free in every chunk for the index/total annotation added by render()
PART_HEADER_RESERVE = 24


class Chunk(BaseModel):
    """One bounded-length segment of a formatted digest.

    Chunks are numbered from 1. Concatenating ``text`` over all chunks of a
    batch in index order yields the formatted digest, apart from tags closed
    and reopened around a cut inside an oversized line.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Segment text")
    index: int = Field(ge=1, description="1-based position in the batch")
    total: int = Field(ge=1, description="Number of chunks in the batch")

    @property
    def label(self) -> str:
        return f"{self.index}/{self.total}"

    def render(self) -> str:
        """Return the text to send, annotated with its position when split."""
        if self.total == 1:
            return self.text
        return f"<b>[{self.label}]</b>\n{self.text}"


class DeliveryReport(BaseModel):
    """Outcome of a fully successful delivery."""

    delivered: int = Field(description="Chunks delivered")
    total: int = Field(description="Chunks in the batch")
    last_message_id: int | None = Field(
        default=None,
        description="Channel id of the last message sent (diagnostics only)",
    )
