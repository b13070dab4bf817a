from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import discord
import pytest

from devbadge.bot.cogs.twitch import TWITCH_PURPLE, build_live_embed
from devbadge.bot.core.formatting import days_until, format_remaining, format_uptime, truncate
from devbadge.bot.core.presence import DEFAULT_ROTATION, PresenceEntry, PresenceRotator
from devbadge.bot.core.twitch_api import StreamInfo


class _FakeClient:
    def __init__(self, error: Exception | None = None) -> None:
        self.presences: list[tuple[discord.Status, discord.Activity]] = []
        self.error = error

    async def change_presence(self, *, status: discord.Status, activity: discord.Activity) -> None:
        if self.error is not None:
            raise self.error
        self.presences.append((status, activity))


def test_presence_rotation_cycles_and_wraps() -> None:
    rotator = PresenceRotator(server_count=lambda: 1, uptime=lambda: "2h 5m")

    names = [rotator.next_activity().name for _ in range(len(DEFAULT_ROTATION) + 1)]
    assert names[0] == "Developer tutorials"
    assert names[3] == "1 server"
    assert names[5] == "Uptime: 2h 5m"
    assert names[-1] == names[0]


def test_presence_pluralizes_server_count() -> None:
    entry = PresenceEntry(discord.ActivityType.watching, "{servers}")
    rotator = PresenceRotator(server_count=lambda: 3, uptime=lambda: "", entries=(entry,))
    activity = rotator.next_activity()
    assert activity.name == "3 servers"
    assert activity.type is discord.ActivityType.watching


def test_presence_rotate_survives_connection_errors() -> None:
    rotator = PresenceRotator(server_count=lambda: 0, uptime=lambda: "0m")
    client = _FakeClient(error=ConnectionError("gateway closed"))

    asyncio.run(rotator.rotate(client))  # type: ignore[arg-type]
    assert rotator.index == 1

    ok = _FakeClient()
    asyncio.run(rotator.rotate(ok, discord.Status.idle))  # type: ignore[arg-type]
    assert ok.presences[0][0] is discord.Status.idle


def test_presence_needs_entries() -> None:
    with pytest.raises(ValueError):
        PresenceRotator(server_count=lambda: 0, uptime=lambda: "", entries=())


def test_format_uptime() -> None:
    assert format_uptime(59) == "0m"
    assert format_uptime(3 * 3600 + 300) == "3h 5m"
    assert format_uptime(2 * 86400 + 3600) == "2d 1h 0m"


def test_format_remaining_rounds_hours_up() -> None:
    assert format_remaining(86400 * 12 + 3600 * 4 + 1) == "12d 5h"
    assert format_remaining(86400 - 1) == "1d 0h"
    assert format_remaining(-5) == "0d 0h"
    assert days_until(86400 * 29 + 1) == 30
    assert days_until(0) == 0


def test_truncate() -> None:
    assert truncate("short", 10) == "short"
    assert truncate("a" * 20, 10) == "aaaaaaa..."


def test_live_embed() -> None:
    stream = StreamInfo(
        id="s1",
        user_login="ninja",
        user_name="Ninja",
        title="Late night build",
        game_name="",
        viewer_count=321,
        started_at=datetime(2025, 1, 1, tzinfo=UTC),
        thumbnail_url="https://static-cdn.example/{width}x{height}.jpg",
    )
    embed = build_live_embed(stream)

    assert embed.title == "🔴 Ninja is now LIVE on Twitch!"
    assert embed.url == "https://twitch.tv/ninja"
    assert embed.color is not None and embed.color.value == TWITCH_PURPLE
    fields = {f.name: f.value for f in embed.fields}
    assert fields["🎮 Game"] == "Unknown"
    assert fields["👥 Viewers"] == "321"
    assert embed.image.url == "https://static-cdn.example/1280x720.jpg"
