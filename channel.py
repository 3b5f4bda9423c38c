"""Telegram Bot API channel client.

Thin aiohttp wrapper over the three Bot API methods the relay uses:

    sendMessage: Deliver one message to the channel
    getMe:       Bot identity (health probe)
    getChat:     Channel metadata (health probe)

Every Bot API response has the shape ``{"ok": bool, "result": ...}`` or
``{"ok": false, "description": str}``. Anything that is not ``ok``
becomes a ChannelError carrying the description.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from errors import ChannelError, ConfigError
from transport import client_timeout, create_ssl_context, redact

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.telegram.org"


class TelegramChannel:
    """Bot API client bound to one bot token and one channel.

    Example:
        >>> channel = TelegramChannel(token, "@ai_trends")
        >>> message = await channel.send_message("<b>Hello</b>")
        >>> message["message_id"]
        42
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: int = 30,
        parse_mode: str = "HTML",
    ):
        self.token = token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.parse_mode = parse_mode

    @classmethod
    def from_config(cls, config) -> "TelegramChannel":
        return cls(
            token=config.telegram_bot_token,
            chat_id=config.telegram_channel_id,
            api_base=config.telegram_api_base,
            timeout=config.http_timeout_seconds,
        )

    def _require(self, chat: bool = True) -> None:
        missing = []
        if not self.token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if chat and not self.chat_id:
            missing.append("TELEGRAM_CHANNEL_ID")
        if missing:
            raise ConfigError(f"Telegram not configured: missing {', '.join(missing)}", missing=missing)

    async def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        """Invoke a Bot API method and return its ``result`` field.

        Raises:
            ChannelError: On transport failure or a response that is not ok
        """
        url = f"{self.api_base}/bot{self.token}/{method}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    json=payload or {},
                    timeout=client_timeout(self.timeout),
                    ssl=create_ssl_context(True),
                ) as resp:
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError:
                        data = None
                    if not isinstance(data, dict):
                        raise ChannelError(
                            f"Malformed response from {method}: HTTP {resp.status}",
                            status=resp.status,
                        )
                    if not data.get("ok"):
                        description = data.get("description") or f"HTTP {resp.status}"
                        logger.warning("Bot API error | method=%s status=%d description=%s", method, resp.status, description)
                        raise ChannelError(
                            f"Telegram API error: {description}",
                            status=resp.status,
                            description=description,
                        )
                    return data.get("result")
        except asyncio.TimeoutError as e:
            raise ChannelError(f"{method} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            logger.debug("Bot API transport error | url=%s", redact(url, self.token))
            raise ChannelError(f"{method} failed: {type(e).__name__}: {redact(str(e), self.token)}") from e

    async def send_message(self, text: str) -> dict[str, Any]:
        """Send one HTML message to the channel with link previews disabled.

        Returns:
            The sent Message object
        """
        self._require()
        result = await self._call(
            "sendMessage",
            {
                "chat_id": self.chat_id,
                "text": text,
                "parse_mode": self.parse_mode,
                "disable_web_page_preview": True,
            },
        )
        return result if isinstance(result, dict) else {}

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's User object."""
        self._require(chat=False)
        return await self._call("getMe") or {}

    async def get_chat(self) -> dict[str, Any]:
        """Return the Chat object of the configured channel."""
        self._require()
        return await self._call("getChat", {"chat_id": self.chat_id}) or {}
