"""HTTP-level tests for the content source and the Telegram channel."""

import pytest
from aiohttp import web

from channel import TelegramChannel
from errors import ChannelError, ConfigError, FetchError
from models.content import compute_digest
from source import ContentSource
from tests.fakes import serve

REPORT = "# Top posts\n\n1. New open-weights model\n2. GPU prices\n"


class TestContentSource:
    @pytest.mark.asyncio
    async def test_fetch_returns_snapshot(self):
        async def report(request: web.Request) -> web.Response:
            return web.Response(text=REPORT, content_type="text/markdown")

        async with serve([web.get("/latest_report_en.md", report)]) as server:
            url = str(server.make_url("/latest_report_en.md"))
            snapshot = await ContentSource(url).fetch()

        assert snapshot.text == REPORT
        assert snapshot.digest == compute_digest(REPORT)
        assert snapshot.source_url == url

    @pytest.mark.asyncio
    async def test_non_success_status_is_fetch_error(self):
        async with serve([]) as server:
            url = str(server.make_url("/missing.md"))
            with pytest.raises(FetchError) as exc_info:
                await ContentSource(url).fetch()

        assert exc_info.value.status == 404
        assert exc_info.value.url == url

    @pytest.mark.asyncio
    async def test_network_failure_is_fetch_error(self):
        with pytest.raises(FetchError):
            await ContentSource("http://127.0.0.1:1/report.md", timeout=5).fetch()

    @pytest.mark.asyncio
    async def test_missing_url_is_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            await ContentSource("").fetch()
        assert exc_info.value.missing == ["SOURCE_URL"]


class TestTelegramChannel:
    @pytest.mark.asyncio
    async def test_send_message_payload(self):
        received = []

        async def send_message(request: web.Request) -> web.Response:
            received.append(await request.json())
            return web.json_response({"ok": True, "result": {"message_id": 77, "chat": {"id": -100}}})

        async with serve([web.post("/bot123:ABC/sendMessage", send_message)]) as server:
            channel = TelegramChannel("123:ABC", "@trends", api_base=str(server.make_url("/")))
            message = await channel.send_message("<b>Hello</b>")

        assert message["message_id"] == 77
        assert received == [{
            "chat_id": "@trends",
            "text": "<b>Hello</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }]

    @pytest.mark.asyncio
    async def test_api_error_carries_description(self):
        async def send_message(request: web.Request) -> web.Response:
            return web.json_response(
                {"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"},
                status=400,
            )

        async with serve([web.post("/botT/sendMessage", send_message)]) as server:
            channel = TelegramChannel("T", "@trends", api_base=str(server.make_url("/")))
            with pytest.raises(ChannelError) as exc_info:
                await channel.send_message("<b>broken")

        assert exc_info.value.status == 400
        assert exc_info.value.description == "Bad Request: can't parse entities"

    @pytest.mark.asyncio
    async def test_non_json_response_is_channel_error(self):
        async def send_message(request: web.Request) -> web.Response:
            return web.Response(text="<html>Bad Gateway</html>", status=502, content_type="text/html")

        async with serve([web.post("/botT/sendMessage", send_message)]) as server:
            channel = TelegramChannel("T", "@trends", api_base=str(server.make_url("/")))
            with pytest.raises(ChannelError) as exc_info:
                await channel.send_message("hi")

        assert exc_info.value.status == 502
        assert "Malformed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_before_request(self):
        with pytest.raises(ConfigError) as exc_info:
            await TelegramChannel("", "").send_message("hi")
        assert exc_info.value.missing == ["TELEGRAM_BOT_TOKEN", "TELEGRAM_CHANNEL_ID"]

    @pytest.mark.asyncio
    async def test_get_me_needs_only_token(self):
        async def get_me(request: web.Request) -> web.Response:
            return web.json_response({"ok": True, "result": {"id": 5, "username": "bot"}})

        async with serve([web.post("/botT/getMe", get_me)]) as server:
            me = await TelegramChannel("T", "", api_base=str(server.make_url("/"))).get_me()

        assert me["username"] == "bot"
