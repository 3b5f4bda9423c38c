"""Async markdown feed source.

This module fetches the raw markdown feed that the relay summarizes and
wraps it into a ContentSnapshot.

Features:
    - SSL certificate handling with a single unverified retry
    - Per-request total timeout
    - HEAD requests for cheap reachability checks (used by health probes)

Error Handling Strategy:
    - Missing URL raises ConfigError before any request is made
    - Non-2xx responses, timeouts, and network faults raise FetchError
    - SSL errors trigger one retry without verification
"""

import asyncio
import logging
from typing import Any

import aiohttp

from errors import ConfigError, FetchError
from models.content import ContentSnapshot
from transport import USER_AGENT, client_timeout, create_ssl_context

logger = logging.getLogger(__name__)


async def _fetch_text(
    session: aiohttp.ClientSession,
    url: str,
    timeout: int,
    verify_ssl: bool = True,
) -> str:
    """Fetch the feed body, retrying once without SSL verification.

    Raises:
        FetchError: On non-2xx status, timeout, or network failure
    """
    try:
        async with session.get(
            url,
            timeout=client_timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            ssl=create_ssl_context(verify_ssl),
        ) as resp:
            if resp.status >= 300:
                if resp.status >= 500:
                    logger.warning("Source %s: server error HTTP %d", url, resp.status)
                else:
                    logger.debug("Source %s: HTTP %d", url, resp.status)
                raise FetchError(
                    f"Failed to fetch content: HTTP {resp.status} {resp.reason or ''}".strip(),
                    url=url,
                    status=resp.status,
                )
            return await resp.text()
    except aiohttp.ClientSSLError as e:
        if verify_ssl:
            logger.debug("Source %s: SSL error, retrying without verification", url)
            return await _fetch_text(session, url, timeout, verify_ssl=False)
        raise FetchError(f"SSL verification failed after retry: {e}", url=url) from e
    except asyncio.TimeoutError as e:
        raise FetchError(f"Request timed out after {timeout}s", url=url) from e
    except aiohttp.ClientError as e:
        raise FetchError(f"{type(e).__name__}: {e}", url=url) from e


class ContentSource:
    """Markdown feed reachable over HTTP(S).

    Example:
        >>> source = ContentSource("https://raw.githubusercontent.com/.../latest_report_en.md")
        >>> snapshot = await source.fetch()
        >>> snapshot.digest[:8]
        '3f2a9c1b'
    """

    def __init__(self, url: str, timeout: int = 30):
        """Initialize the source.

        Args:
            url: Raw markdown URL
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    def _require_url(self) -> None:
        if not self.url:
            raise ConfigError("SOURCE_URL not configured", missing=["SOURCE_URL"])

    async def fetch(self) -> ContentSnapshot:
        """Fetch the current feed revision.

        Returns:
            ContentSnapshot with text and digest

        Raises:
            ConfigError: If no URL is configured
            FetchError: If the feed cannot be read
        """
        self._require_url()
        async with aiohttp.ClientSession() as session:
            text = await _fetch_text(session, self.url, self.timeout)

        snapshot = ContentSnapshot.from_text(text, source_url=self.url)
        logger.info("Source fetched | chars=%d digest=%s", len(text), snapshot.digest[:12])
        return snapshot

    async def head(self) -> dict[str, Any]:
        """Issue a HEAD request and return status plus selected headers.

        Raises:
            ConfigError: If no URL is configured
            FetchError: On network failure (HTTP status is returned, not raised)
        """
        self._require_url()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.head(
                    self.url,
                    timeout=client_timeout(self.timeout),
                    headers={"User-Agent": USER_AGENT},
                    ssl=create_ssl_context(True),
                    allow_redirects=True,
                ) as resp:
                    return {
                        "status": resp.status,
                        "content_length": resp.headers.get("Content-Length"),
                        "last_modified": resp.headers.get("Last-Modified"),
                    }
        except asyncio.TimeoutError as e:
            raise FetchError(f"HEAD timed out after {self.timeout}s", url=self.url) from e
        except aiohttp.ClientError as e:
            raise FetchError(f"{type(e).__name__}: {e}", url=self.url) from e
