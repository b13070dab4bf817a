from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

from aiohttp import test_utils

from devbadge.bot.core.control_server import SECRET_HEADER, ControlServer

SECRET = "s3cret"


class _FakeGuild:
    def __init__(self, guild_id: int, name: str) -> None:
        self.id = guild_id
        self.name = name
        self.member_count = 10
        self.icon = None
        self.owner_id = 7
        self.created_at = datetime(2024, 1, 1, tzinfo=UTC)
        self.channels = [object(), object()]
        self.roles = [object()]
        self.text_channels = [SimpleNamespace(id=500, name="general")]
        self.left = False

    async def leave(self) -> None:
        self.left = True


class _FakeMonitor:
    def __init__(self) -> None:
        self.reloads = 0

    def reload(self) -> int:
        self.reloads += 1
        return 3

    async def check(self) -> int:
        return 2


class _FakeBot:
    def __init__(self, ready: bool = True) -> None:
        self.ready = ready
        self.user = SimpleNamespace(
            id=99,
            name="devbadge",
            display_avatar=SimpleNamespace(url="https://cdn.example/avatar.png"),
        )
        self.guilds = [_FakeGuild(1, "Alpha"), _FakeGuild(2, "Beta")]
        self.latency = 0.042
        self.scheduler = None
        self.twitch_monitor: _FakeMonitor | None = _FakeMonitor()
        self.tracking = SimpleNamespace(reload=lambda: 5)

    def is_ready(self) -> bool:
        return self.ready

    def get_guild(self, guild_id: int) -> _FakeGuild | None:
        return next((g for g in self.guilds if g.id == guild_id), None)


async def _json(client: test_utils.TestClient, method: str, path: str, **kwargs: Any) -> tuple[int, Any]:
    response = await client.request(method, path, **kwargs)
    if response.content_type == "application/json":
        return response.status, await response.json()
    return response.status, await response.text()


def _serve(server: ControlServer, scenario: Callable[[test_utils.TestClient], Awaitable[None]]) -> None:
    async def run() -> None:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            await scenario(client)

    asyncio.run(run())


AUTH = {SECRET_HEADER: SECRET}


def test_liveness_routes_need_no_secret() -> None:
    async def scenario(client: test_utils.TestClient) -> None:
        assert await _json(client, "GET", "/ping") == (200, "pong")
        assert await _json(client, "GET", "/health") == (200, {"status": "starting", "ready": False})
        status, body = await _json(client, "GET", "/status")
        assert status == 200
        assert body["guilds"] == 0

    _serve(ControlServer(_FakeBot(ready=False), secret=SECRET), scenario)


def test_control_routes_reject_missing_or_wrong_secret() -> None:
    async def scenario(client: test_utils.TestClient) -> None:
        assert await _json(client, "GET", "/control/guilds") == (401, {"error": "Unauthorized"})
        status, _ = await _json(client, "GET", "/control/guilds", headers={SECRET_HEADER: "wrong"})
        assert status == 401

    _serve(ControlServer(_FakeBot(), secret=SECRET), scenario)


def test_control_routes_unavailable_without_secret() -> None:
    async def scenario(client: test_utils.TestClient) -> None:
        status, body = await _json(client, "GET", "/control/bot-info", headers={SECRET_HEADER: ""})
        assert status == 503
        assert body == {"error": "Control API is not configured"}

    _serve(ControlServer(_FakeBot(), secret=""), scenario)


def test_bot_info_and_guild_list() -> None:
    async def scenario(client: test_utils.TestClient) -> None:
        status, info = await _json(client, "GET", "/control/bot-info", headers=AUTH)
        assert status == 200
        assert info["id"] == "99"
        assert info["guildCount"] == 2
        assert info["userCount"] == 20
        assert info["latencyMs"] == 42
        assert info["autoExecution"] is None

        status, body = await _json(client, "GET", "/control/guilds", headers=AUTH)
        assert status == 200
        assert [g["id"] for g in body["guilds"]] == ["1", "2"]

    _serve(ControlServer(_FakeBot(), secret=SECRET), scenario)


def test_bot_info_when_not_ready() -> None:
    async def scenario(client: test_utils.TestClient) -> None:
        status, body = await _json(client, "GET", "/control/bot-info", headers=AUTH)
        assert status == 503
        assert body == {"error": "Bot is not ready"}

    _serve(ControlServer(_FakeBot(ready=False), secret=SECRET), scenario)


def test_guild_info_and_leave() -> None:
    bot = _FakeBot()

    async def scenario(client: test_utils.TestClient) -> None:
        status, info = await _json(client, "GET", "/control/guild/2", headers=AUTH)
        assert status == 200
        assert info["name"] == "Beta"
        assert info["channelCount"] == 2
        assert info["textChannels"] == [{"id": "500", "name": "general"}]

        assert (await _json(client, "GET", "/control/guild/3", headers=AUTH))[0] == 404
        assert (await _json(client, "GET", "/control/guild/abc", headers=AUTH))[0] == 404

        status, body = await _json(client, "POST", "/control/guild/1/leave", headers=AUTH)
        assert (status, body) == (200, {"success": True})

    _serve(ControlServer(bot, secret=SECRET), scenario)
    assert bot.guilds[0].left is True


def test_reload_and_check_routes() -> None:
    bot = _FakeBot()

    async def scenario(client: test_utils.TestClient) -> None:
        assert await _json(client, "POST", "/control/reload-twitch", headers=AUTH) == (
            200,
            {"success": True, "guilds": 3},
        )
        assert await _json(client, "POST", "/control/reload-tracking", headers=AUTH) == (
            200,
            {"success": True, "guilds": 5},
        )
        assert await _json(client, "POST", "/control/check-twitch", headers=AUTH) == (
            200,
            {"success": True, "notified": 2},
        )

        bot.twitch_monitor = None
        status, body = await _json(client, "POST", "/control/reload-twitch", headers=AUTH)
        assert status == 503
        assert body == {"error": "Twitch notifications are not configured"}

    _serve(ControlServer(bot, secret=SECRET), scenario)
