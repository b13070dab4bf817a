from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from fastapi.testclient import TestClient

from devbadge.api.app import create_app
from devbadge.api.core.config import Settings, get_settings
from devbadge.api.core.dependencies import (
    get_bot_control,
    get_current_user,
    get_discord_api,
    get_manageable_guilds,
    get_store,
)
from devbadge.api.services import AuthService, BotControlError, DiscordAPIError
from devbadge.shared.storage import JsonFileStore

GUILD = "111111111111111111"
OTHER_GUILD = "222222222222222222"
ADMIN_ID = "42"
USER = {"sub": ADMIN_ID, "username": "tester", "global_name": "Tester", "avatar": None, "dat": "discord-token"}


class _FakeBotControl:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def _call(self, name: str, result: Any) -> Any:
        self.calls.append(name)
        if self.fail:
            raise BotControlError("Bot control API is unreachable")
        return result

    async def reload_twitch(self) -> dict[str, Any]:
        return await self._call("reload_twitch", {"success": True})

    async def reload_tracking(self) -> dict[str, Any]:
        return await self._call("reload_tracking", {"success": True})

    async def check_twitch(self) -> dict[str, Any]:
        return await self._call("check_twitch", {"success": True, "notified": 1})

    async def guild_ids(self) -> set[str]:
        return await self._call("guild_ids", {GUILD})

    async def guild_info(self, guild_id: str) -> dict[str, Any]:
        return await self._call("guild_info", {"id": guild_id, "name": "Alpha"})

    async def leave_guild(self, guild_id: str) -> dict[str, Any]:
        return await self._call("leave_guild", {"success": True})

    async def bot_info(self) -> dict[str, Any]:
        return await self._call("bot_info", {"id": "99"})


class _FakeDiscordAPI:
    def __init__(self) -> None:
        self.deleted: list[str] = []

    async def list_commands(self) -> list[dict[str, Any]]:
        return [
            {"id": "2", "name": "translate", "description": "Translate text"},
            {"id": "1", "name": "ping", "description": "Latency"},
        ]

    async def delete_command(self, command_id: str) -> bool:
        if command_id == "404":
            return False
        if command_id == "500":
            raise DiscordAPIError("Discord API error", 500)
        self.deleted.append(command_id)
        return True

    def invite_url(self) -> str:
        return "https://discord.com/oauth2/authorize?client_id=1"


def _make_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret_key="test-secret",
        data_dir=str(tmp_path),
        dashboard_admin_ids=ADMIN_ID,
        control_secret="control",
    )


def _make_client(
    tmp_path: Path,
    bot_control: _FakeBotControl | None = None,
    *,
    authenticated: bool = True,
) -> TestClient:
    app = create_app()
    settings = _make_settings(tmp_path)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: JsonFileStore(tmp_path)
    app.dependency_overrides[get_bot_control] = lambda: bot_control or _FakeBotControl()
    app.dependency_overrides[get_discord_api] = _FakeDiscordAPI
    if authenticated:
        app.dependency_overrides[get_current_user] = lambda: dict(USER)
        app.dependency_overrides[get_manageable_guilds] = lambda: [
            {"id": GUILD, "name": "Alpha", "icon": None, "owner": True, "permissions": "8"}
        ]
    return TestClient(app)


def _saved(tmp_path: Path, filename: str) -> dict[str, Any]:
    return json.loads((tmp_path / "servers" / GUILD / filename).read_text(encoding="utf-8"))


def test_unauthenticated_requests_get_401(tmp_path: Path) -> None:
    client = _make_client(tmp_path, authenticated=False)

    response = client.get("/api/user")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}

    client.cookies.set("auth_token", "garbage")
    assert client.get("/api/user").status_code == 401


def test_cookie_session_identifies_user(tmp_path: Path) -> None:
    client = _make_client(tmp_path, authenticated=False)
    token = AuthService("test-secret").create_access_token(
        {"id": 42, "username": "tester", "global_name": "Tester"}, "discord-token"
    )
    client.cookies.set("auth_token", token)

    response = client.get("/api/user")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "42"
    assert body["globalName"] == "Tester"
    assert body["avatarUrl"].startswith("https://cdn.discordapp.com/")


def test_index_redirects_when_logged_in(tmp_path: Path) -> None:
    client = _make_client(tmp_path, authenticated=False)
    assert client.get("/dashboard", follow_redirects=False).headers["location"] == "/"

    client.cookies.set("auth_token", "anything")
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"


def test_health_and_meta(tmp_path: Path) -> None:
    client = _make_client(tmp_path, authenticated=False)

    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/ping").text == "pong"
    assert client.get("/api/meta").json()["botName"] == "aB0T Dashboard"


def test_guild_list_flags_bot_presence(tmp_path: Path) -> None:
    client = _make_client(tmp_path)
    assert client.get("/api/guilds").json()[0]["botPresent"] is True

    offline = _make_client(tmp_path, _FakeBotControl(fail=True))
    assert offline.get("/api/guilds").json()[0]["botPresent"] is None


def test_guild_routes_require_manage_permission(tmp_path: Path) -> None:
    client = _make_client(tmp_path)

    response = client.get(f"/api/guild/{OTHER_GUILD}/config")
    assert response.status_code == 403
    assert response.json() == {"error": "No permission to manage this server"}
    assert client.get("/api/guild/not-a-guild/config").status_code == 400


def test_translation_config_default_and_partial_update(tmp_path: Path) -> None:
    client = _make_client(tmp_path)

    assert client.get(f"/api/guild/{GUILD}/config").json() == {
        "channels": [],
        "displayMode": "reply",
        "targetLanguages": ["en"],
        "outputChannelId": None,
    }

    response = client.post(
        f"/api/guild/{GUILD}/config",
        json={"channels": ["10", "20"], "targetLanguages": ["en", "es"], "outputChannelId": "30"},
    )
    assert response.json() == {"success": True, "message": "Configuration updated successfully!"}

    client.post(f"/api/guild/{GUILD}/config", json={"displayMode": "thread", "outputChannelId": None})
    saved = _saved(tmp_path, "translation-config.json")
    assert saved == {
        "channels": ["10", "20"],
        "displayMode": "thread",
        "targetLanguages": ["en", "es"],
        "outputChannelId": None,
    }


def test_translation_invalid_values_are_rejected(tmp_path: Path) -> None:
    client = _make_client(tmp_path)

    response = client.post(f"/api/guild/{GUILD}/config", json={"displayMode": "popup"})
    assert response.status_code == 400
    assert "Invalid display mode" in response.json()["error"]

    response = client.post(f"/api/guild/{GUILD}/config", json={"channels": "10"})
    assert response.status_code == 422
    assert "error" in response.json()


def test_removing_last_language_is_refused(tmp_path: Path) -> None:
    client = _make_client(tmp_path)

    response = client.delete(f"/api/guild/{GUILD}/config/languages/en")
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot remove the last language. At least one language is required."}


def test_translation_stats_default(tmp_path: Path) -> None:
    client = _make_client(tmp_path)
    assert client.get(f"/api/guild/{GUILD}/stats").json() == {"total": 0, "byLanguagePair": {}, "byChannel": {}}


def test_twitch_streamers_and_reload(tmp_path: Path) -> None:
    bot_control = _FakeBotControl()
    client = _make_client(tmp_path, bot_control)

    response = client.post(f"/api/guild/{GUILD}/twitch/streamers", json={"username": "Ninja", "channelId": "55"})
    assert response.json()["streamers"] == ["ninja"]
    response = client.post(f"/api/guild/{GUILD}/twitch/streamers", json={"username": "ninja"})
    assert response.status_code == 200
    assert response.json()["message"] == "ninja is already being monitored"
    assert bot_control.calls == ["reload_twitch"]

    assert client.delete(f"/api/guild/{GUILD}/twitch/streamers/shroud").status_code == 404
    assert client.delete(f"/api/guild/{GUILD}/twitch/streamers/ninja").json()["streamers"] == []
    assert _saved(tmp_path, "twitch-config.json") == {"streamers": [], "channelId": "55", "allowDuplicates": False}


def test_twitch_save_reports_reload_failure(tmp_path: Path) -> None:
    client = _make_client(tmp_path, _FakeBotControl(fail=True))

    response = client.post(f"/api/guild/{GUILD}/twitch", json={"allowDuplicates": True})
    assert response.status_code == 502
    assert _saved(tmp_path, "twitch-config.json")["allowDuplicates"] is True


def test_tracking_update_and_unknown_event(tmp_path: Path) -> None:
    bot_control = _FakeBotControl()
    client = _make_client(tmp_path, bot_control)

    response = client.post(
        f"/api/guild/{GUILD}/tracking",
        json={"enabled": True, "channelId": "77", "events": {"voice": False}},
    )
    assert response.status_code == 200
    body = client.get(f"/api/guild/{GUILD}/tracking").json()
    assert body["enabled"] is True
    assert body["events"]["voice"] is False
    assert body["events"]["messages"] is True
    assert bot_control.calls == ["reload_tracking"]

    response = client.post(f"/api/guild/{GUILD}/tracking", json={"events": {"typing": True}})
    assert response.status_code == 400


def test_commands_admin_routes(tmp_path: Path) -> None:
    client = _make_client(tmp_path)

    commands = client.get("/api/commands").json()
    assert [c["name"] for c in commands] == ["ping", "translate"]
    assert all(c["enabled"] for c in commands)

    assert client.post("/api/commands/ping/toggle", json={"enabled": False}).json()["enabled"] is False
    assert client.get("/api/commands").json()[0]["enabled"] is False
    assert client.post("/api/commands/ping/toggle").json()["enabled"] is True

    assert client.delete("/api/commands/1").json()["success"] is True
    assert client.delete("/api/commands/404").status_code == 404
    assert client.delete("/api/commands/500").status_code == 502
    assert client.delete("/api/commands/abc").status_code == 400


def test_commands_require_admin(tmp_path: Path) -> None:
    client = _make_client(tmp_path)
    client.app.dependency_overrides[get_current_user] = lambda: {**USER, "sub": "7"}

    response = client.get("/api/commands")
    assert response.status_code == 403
