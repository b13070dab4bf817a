from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from devbadge.bot.core.twitch_api import StreamInfo, TwitchAPIClient, TwitchAPIError
from devbadge.bot.core.twitch_monitor import TwitchMonitor
from devbadge.shared.repositories import TwitchConfigRepository
from devbadge.shared.storage import JsonFileStore

GUILD_A = "100"
GUILD_B = "200"


def _stream(login: str, stream_id: str) -> StreamInfo:
    return StreamInfo(
        id=stream_id,
        user_login=login,
        user_name=login.title(),
        title="Building things",
        game_name="Software and Game Development",
        viewer_count=12,
        started_at=None,
        thumbnail_url="",
    )


class _FakeTwitchAPI:
    def __init__(self) -> None:
        self.live: dict[str, StreamInfo] = {}
        self.error: Exception | None = None
        self.requested: list[list[str]] = []
        self.closed = False

    async def get_streams(self, logins: list[str]) -> dict[str, StreamInfo]:
        self.requested.append(list(logins))
        if self.error is not None:
            raise self.error
        return {login: stream for login, stream in self.live.items() if login in logins}

    async def close(self) -> None:
        self.closed = True


class _Notifier:
    def __init__(self, succeed: bool = True) -> None:
        self.sent: list[tuple[str, str]] = []
        self.succeed = succeed

    async def __call__(self, channel_id: str, stream: StreamInfo) -> bool:
        if self.succeed:
            self.sent.append((channel_id, stream.id))
        return self.succeed


def _make_monitor(
    tmp_path: Path, api: _FakeTwitchAPI, notifier: _Notifier, *, allow_duplicates: bool = False
) -> TwitchMonitor:
    repo = TwitchConfigRepository(JsonFileStore(tmp_path))
    repo.add_streamer(GUILD_A, "ninja", "1")
    repo.update(GUILD_A, allow_duplicates=allow_duplicates)
    monitor = TwitchMonitor(api, repo, notifier)  # type: ignore[arg-type]
    monitor.reload()
    return monitor


def test_announces_offline_to_live_transition_once(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)

    assert asyncio.run(monitor.check()) == 0
    api.live["ninja"] = _stream("ninja", "s1")
    assert asyncio.run(monitor.check()) == 1
    assert asyncio.run(monitor.check()) == 0
    assert notifier.sent == [("1", "s1")]


def test_same_stream_id_not_reannounced_after_flap(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)

    api.live["ninja"] = _stream("ninja", "s1")
    asyncio.run(monitor.check())
    api.live.clear()
    asyncio.run(monitor.check())
    api.live["ninja"] = _stream("ninja", "s1")
    asyncio.run(monitor.check())

    assert notifier.sent == [("1", "s1")]


def test_allow_duplicates_reannounces_after_flap(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier, allow_duplicates=True)

    api.live["ninja"] = _stream("ninja", "s1")
    asyncio.run(monitor.check())
    api.live.clear()
    asyncio.run(monitor.check())
    api.live["ninja"] = _stream("ninja", "s1")
    asyncio.run(monitor.check())

    assert notifier.sent == [("1", "s1"), ("1", "s1")]


def test_new_broadcast_is_announced(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)

    api.live["ninja"] = _stream("ninja", "s1")
    asyncio.run(monitor.check())
    api.live["ninja"] = _stream("ninja", "s2")
    asyncio.run(monitor.check())

    assert notifier.sent == [("1", "s1"), ("1", "s2")]


def test_failed_notification_is_retried(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier(succeed=False)
    monitor = _make_monitor(tmp_path, api, notifier)

    api.live["ninja"] = _stream("ninja", "s1")
    assert asyncio.run(monitor.check()) == 0
    notifier.succeed = True
    assert asyncio.run(monitor.check()) == 1


def test_each_guild_is_notified_independently(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)
    TwitchConfigRepository(JsonFileStore(tmp_path)).add_streamer(GUILD_B, "ninja", "2")
    monitor.reload()

    api.live["ninja"] = _stream("ninja", "s1")
    assert asyncio.run(monitor.check()) == 2
    assert sorted(notifier.sent) == [("1", "s1"), ("2", "s1")]
    assert api.requested[-1] == ["ninja"]


def test_guild_without_channel_is_skipped(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    repo = TwitchConfigRepository(JsonFileStore(tmp_path))
    repo.add_streamer(GUILD_A, "ninja")
    monitor = TwitchMonitor(api, repo, notifier)  # type: ignore[arg-type]
    monitor.reload()

    api.live["ninja"] = _stream("ninja", "s1")
    assert asyncio.run(monitor.check()) == 0
    assert api.requested == []


def test_api_failure_sends_nothing(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)

    api.live["ninja"] = _stream("ninja", "s1")
    api.error = TwitchAPIError("Helix GET /streams returned HTTP 500")
    assert asyncio.run(monitor.check()) == 0
    assert notifier.sent == []


def test_poll_loop_survives_unexpected_errors(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    notifier = _Notifier()
    monitor = _make_monitor(tmp_path, api, notifier)
    monitor.interval = 0.01
    api.error = RuntimeError("boom")

    async def scenario() -> bool:
        task = monitor.start()
        await asyncio.sleep(0.05)
        api.error = None
        api.live["ninja"] = _stream("ninja", "s1")
        await asyncio.sleep(0.05)
        alive = not task.done()
        await monitor.stop()
        return alive

    assert asyncio.run(scenario()) is True
    assert len(api.requested) >= 2
    assert notifier.sent == [("1", "s1")]


def test_stop_closes_api(tmp_path: Path) -> None:
    api = _FakeTwitchAPI()
    monitor = _make_monitor(tmp_path, api, _Notifier())
    asyncio.run(monitor.stop())
    assert api.closed is True


def test_client_fetches_token_and_parses_streams() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "app-token", "expires_in": 3600})
        assert request.headers["Authorization"] == "Bearer app-token"
        assert request.headers["Client-Id"] == "cid"
        return httpx.Response(
            200,
            json={
                "data": [
                    {
                        "id": "s9",
                        "user_login": "Ninja",
                        "user_name": "Ninja",
                        "title": "Fortnite",
                        "game_name": "Fortnite",
                        "viewer_count": 1000,
                        "started_at": "2025-01-01T10:00:00Z",
                        "thumbnail_url": "https://static-cdn.example/{width}x{height}.jpg",
                    }
                ]
            },
        )

    async def scenario() -> dict[str, StreamInfo]:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TwitchAPIClient("cid", "secret", http=http)
        try:
            return await client.get_streams(["NINJA", "ninja", "shroud"])
        finally:
            await client.close()

    live = asyncio.run(scenario())
    stream = live["ninja"]
    assert stream.id == "s9"
    assert stream.url == "https://twitch.tv/ninja"
    assert stream.thumbnail(1280, 720) == "https://static-cdn.example/1280x720.jpg"
    assert stream.started_at is not None and stream.started_at.year == 2025
    assert requests[1].url.params.get_list("user_login") == ["ninja", "shroud"]


def test_client_http_error_becomes_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async def scenario() -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TwitchAPIClient("cid", access_token="static", http=http)
        try:
            await client.get_user("ninja")
        finally:
            await client.close()

    with pytest.raises(TwitchAPIError, match="HTTP 500"):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>upstream maintenance</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"data": "nope"}),
        httpx.Response(200, json={"data": [{"id": "s1", "user_login": "ninja", "started_at": "yesterday"}]}),
    ],
)
def test_client_malformed_body_becomes_api_error(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    async def scenario() -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TwitchAPIClient("cid", access_token="static", http=http)
        try:
            await client.get_streams(["ninja"])
        finally:
            await client.close()

    with pytest.raises(TwitchAPIError):
        asyncio.run(scenario())


def test_client_non_json_token_reply_becomes_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>upstream maintenance</html>")

    async def scenario() -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TwitchAPIClient("cid", "secret", http=http)
        try:
            await client.get_streams(["ninja"])
        finally:
            await client.close()

    with pytest.raises(TwitchAPIError, match="non-JSON"):
        asyncio.run(scenario())
