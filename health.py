"""Health aggregation over the relay's external dependencies.

Probes:
    bot:        Telegram getMe (token valid, Bot API reachable)
    channel:    Telegram getChat (bot can see the target channel)
    summarizer: GET {OPENROUTER_BASE_URL}/models (service reachable, key accepted)
    source:     HEAD on the feed URL
    config:     Every required setting is present and valid

All probes run concurrently and every one of them settles before the
report is built. A probe never raises: whatever goes wrong inside it is
turned into a ProbeResult with status ``error`` at the probe boundary, so
one failing dependency cannot hide the state of the others.
"""

import asyncio
import logging
import time

import aiohttp

from channel import TelegramChannel
from config import Config
from errors import ConfigError, ProbeError, TrendwireError
from models.health import HealthReport, ProbeResult
from source import ContentSource
from transport import client_timeout, create_ssl_context

logger = logging.getLogger(__name__)


class Probe:
    """Base class for a single named connectivity or configuration check.

    Subclasses implement ``check()``; callers use ``run()``, which converts
    every exception into a failed ProbeResult and records the duration.
    """

    name = "probe"

    async def check(self) -> ProbeResult:
        raise NotImplementedError

    async def run(self) -> ProbeResult:
        start = time.perf_counter()
        try:
            result = await self.check()
        except ProbeError as e:
            result = ProbeResult.failure(e.message, e.detail)
        except TrendwireError as e:
            result = ProbeResult.failure(e.message)
        except Exception as e:
            logger.debug("Probe raised | probe=%s", self.name, exc_info=True)
            result = ProbeResult.failure(f"{type(e).__name__}: {e}")
        duration_ms = int((time.perf_counter() - start) * 1000)
        return result.model_copy(update={"duration_ms": duration_ms})


class BotIdentityProbe(Probe):
    name = "bot"

    def __init__(self, channel: TelegramChannel):
        self.channel = channel

    async def check(self) -> ProbeResult:
        me = await self.channel.get_me()
        username = me.get("username", "")
        return ProbeResult.success(
            f"Bot @{username} is reachable",
            {"id": me.get("id"), "username": username, "first_name": me.get("first_name")},
        )


class ChannelAccessProbe(Probe):
    name = "channel"

    def __init__(self, channel: TelegramChannel):
        self.channel = channel

    async def check(self) -> ProbeResult:
        chat = await self.channel.get_chat()
        title = chat.get("title") or chat.get("username") or str(chat.get("id", ""))
        return ProbeResult.success(
            f"Channel '{title}' is accessible",
            {"id": chat.get("id"), "title": chat.get("title"), "type": chat.get("type")},
        )


class SummarizerProbe(Probe):
    """Lists models on the OpenAI-compatible service."""

    name = "summarizer"

    def __init__(self, api_key: str, base_url: str, timeout: int = 30):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def check(self) -> ProbeResult:
        if not self.api_key:
            raise ConfigError("OPENROUTER_API_KEY not configured", missing=["OPENROUTER_API_KEY"])

        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{self.base_url}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=client_timeout(self.timeout),
                ssl=create_ssl_context(True),
            ) as resp:
                if resp.status != 200:
                    raise ProbeError(f"Model listing failed: HTTP {resp.status}", {"status": resp.status})
                try:
                    payload = await resp.json(content_type=None)
                except ValueError as e:
                    raise ProbeError("Model listing returned invalid JSON") from e

        models = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            raise ProbeError("Model listing has unexpected shape")
        return ProbeResult.success("Summarizer service is reachable", {"models": len(models)})


class SourceProbe(Probe):
    name = "source"

    def __init__(self, source: ContentSource):
        self.source = source

    async def check(self) -> ProbeResult:
        info = await self.source.head()
        if info["status"] >= 400:
            raise ProbeError(f"Source answered HTTP {info['status']}", info)
        return ProbeResult.success("Source is reachable", info)


class ConfigProbe(Probe):
    name = "config"

    def __init__(self, config: Config):
        self.config = config

    async def check(self) -> ProbeResult:
        missing = self.config.missing_required()
        if missing:
            raise ProbeError(f"Missing settings: {', '.join(missing)}", {"missing": missing})
        if error := self.config.validate():
            raise ProbeError(error)
        return ProbeResult.success(
            "All required settings present",
            {"language": self.config.language, "mode": self.config.message_mode},
        )


class HealthAggregator:
    """Runs all probes concurrently and reduces them to one HealthReport.

    Example:
        >>> report = await HealthAggregator(build_probes(config)).check_all()
        >>> report.overall
        <OverallStatus.DEGRADED: 'degraded'>
        >>> report.failed
        ['source']
    """

    def __init__(self, probes: list[Probe]):
        self.probes = probes

    async def check_all(self) -> HealthReport:
        start = time.perf_counter()
        results = await asyncio.gather(*(probe.run() for probe in self.probes), return_exceptions=True)

        probes: dict[str, ProbeResult] = {}
        for probe, result in zip(self.probes, results):
            if isinstance(result, BaseException):
                result = ProbeResult.failure(f"{type(result).__name__}: {result}")
            probes[probe.name] = result

        report = HealthReport.from_probes(probes, duration_ms=int((time.perf_counter() - start) * 1000))
        logger.info(
            "Health checked | overall=%s failed=%s duration=%dms",
            report.overall.value,
            ",".join(report.failed) or "-",
            report.duration_ms,
        )
        return report


def build_probes(config: Config) -> list[Probe]:
    """Create the standard probe set from configuration."""
    channel = TelegramChannel.from_config(config)
    return [
        BotIdentityProbe(channel),
        ChannelAccessProbe(channel),
        SummarizerProbe(config.openrouter_api_key, config.openrouter_base_url, config.http_timeout_seconds),
        SourceProbe(ContentSource(config.source_url, timeout=config.http_timeout_seconds)),
        ConfigProbe(config),
    ]
