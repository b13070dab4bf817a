"""Rotating rich presence"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import discord

logger = logging.getLogger("discord_bot.presence")


@dataclass(frozen=True)
class PresenceEntry:
    type: discord.ActivityType
    name: str


# "{servers}" and "{uptime}" are filled in when the entry is shown
DEFAULT_ROTATION: tuple[PresenceEntry, ...] = (
    PresenceEntry(discord.ActivityType.watching, "Developer tutorials"),
    PresenceEntry(discord.ActivityType.playing, "with Discord API"),
    PresenceEntry(discord.ActivityType.listening, "to user commands"),
    PresenceEntry(discord.ActivityType.watching, "{servers}"),
    PresenceEntry(discord.ActivityType.playing, "Auto-Maintenance Mode"),
    PresenceEntry(discord.ActivityType.competing, "Uptime: {uptime}"),
)


class PresenceRotator:
    """Cycles through *entries*, one per call to :meth:`next_activity`."""

    def __init__(
        self,
        server_count: Callable[[], int],
        uptime: Callable[[], str],
        entries: tuple[PresenceEntry, ...] = DEFAULT_ROTATION,
    ) -> None:
        if not entries:
            raise ValueError("Presence rotation needs at least one entry")
        self.server_count = server_count
        self.uptime = uptime
        self.entries = entries
        self.index = 0

    def render(self, entry: PresenceEntry) -> str:
        count = self.server_count()
        servers = f"{count} server{'s' if count != 1 else ''}"
        return entry.name.format(servers=servers, uptime=self.uptime())

    def next_activity(self) -> discord.Activity:
        entry = self.entries[self.index]
        self.index = (self.index + 1) % len(self.entries)
        return discord.Activity(type=entry.type, name=self.render(entry))

    async def rotate(self, client: discord.Client, status: discord.Status = discord.Status.online) -> None:
        activity = self.next_activity()
        try:
            await client.change_presence(status=status, activity=activity)
        except (discord.HTTPException, ConnectionError) as e:
            logger.error(f"Error updating rich presence: {e}")
