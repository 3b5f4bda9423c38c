"""Sequential chunk delivery with inter-chunk pacing.

Chunks go out one request at a time, in index order, with a fixed pause
between consecutive sends. The first failure stops the batch: chunks sent
before it stay delivered and the rest are never attempted.
"""

import asyncio
import logging
from typing import Any, Protocol

from errors import ConfigError, DispatchError, TrendwireError
from models.message import Chunk, DeliveryReport

logger = logging.getLogger(__name__)


class MessageChannel(Protocol):
    async def send_message(self, text: str) -> dict[str, Any]: ...


class Dispatcher:
    """Delivers an ordered batch of chunks to a channel.

    Example:
        >>> dispatcher = Dispatcher(TelegramChannel.from_config(config), delay=1.0)
        >>> report = await dispatcher.deliver(chunks)
        >>> report.delivered
        3
    """

    def __init__(self, channel: MessageChannel, delay: float = 1.0):
        self.channel = channel
        self.delay = delay

    async def deliver(self, chunks: list[Chunk]) -> DeliveryReport:
        """Send every chunk, stopping at the first failure.

        Raises:
            DispatchError: With the failed chunk's index and the count delivered
        """
        total = len(chunks)
        delivered = 0
        last_message_id = None

        for position, chunk in enumerate(chunks):
            if position > 0 and self.delay > 0:
                await asyncio.sleep(self.delay)
            try:
                message = await self.channel.send_message(chunk.render())
            except ConfigError:
                raise
            except TrendwireError as e:
                logger.error(
                    "Chunk delivery failed | chunk=%s delivered=%d error=%s",
                    chunk.label,
                    delivered,
                    e.message,
                )
                raise DispatchError(
                    f"Failed to deliver chunk {chunk.index}/{total}: {e.message}",
                    chunk_index=chunk.index,
                    delivered=delivered,
                    total=total,
                ) from e
            delivered += 1
            last_message_id = message.get("message_id", last_message_id)
            logger.debug("Chunk delivered | chunk=%s message_id=%s", chunk.label, last_message_id)

        return DeliveryReport(delivered=delivered, total=total, last_message_id=last_message_id)
