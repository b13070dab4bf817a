"""Twitch live-notification monitor"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from devbadge.bot.core.twitch_api import StreamInfo, TwitchAPIClient, TwitchAPIError
from devbadge.shared.models.twitch_config import TwitchConfig
from devbadge.shared.repositories.twitch_config import TwitchConfigRepository

logger = logging.getLogger("discord_bot.twitch_monitor")

# (notification channel id, stream) -> True when the announcement was sent
Notifier = Callable[[str, StreamInfo], Awaitable[bool]]


class TwitchMonitor:
    """Polls Helix for every monitored streamer and announces offline -> live
    transitions to each guild's notification channel.

    Live state is tracked per guild. Without ``allowDuplicates`` a stream id
    is announced at most once per guild.
    """

    def __init__(
        self,
        api: TwitchAPIClient,
        repository: TwitchConfigRepository,
        notify: Notifier,
        interval: float = 300.0,
    ) -> None:
        self.api = api
        self.repository = repository
        self.notify = notify
        self.interval = interval
        self.configs: dict[str, TwitchConfig] = {}
        # guild id -> login -> stream id currently live
        self._live: dict[str, dict[str, str]] = {}
        # guild id -> stream ids already announced
        self._announced: dict[str, set[str]] = {}
        self._task: asyncio.Task | None = None

    def reload(self) -> int:
        """Re-read every guild's config from disk. Returns the number of guilds loaded."""
        self.configs = self.repository.load_all()
        for guild_id in list(self._live):
            if guild_id not in self.configs:
                del self._live[guild_id]
        total = sum(len(c.streamers) for c in self.configs.values())
        logger.info(f"Loaded Twitch config for {len(self.configs)} guild(s), {total} streamer(s)")
        return len(self.configs)

    def update_config(self, guild_id: str, config: TwitchConfig) -> None:
        self.configs[guild_id] = config

    def monitored_logins(self) -> list[str]:
        logins: dict[str, None] = {}
        for config in self.configs.values():
            if config.channel_id:
                logins.update(dict.fromkeys(config.streamers))
        return list(logins)

    async def check(self) -> int:
        """Run one check now. Returns the number of announcements sent."""
        logins = self.monitored_logins()
        if not logins:
            return 0

        try:
            live = await self.api.get_streams(logins)
        except TwitchAPIError as e:
            logger.error(f"Twitch stream check failed: {e}")
            return 0

        notified = 0
        for guild_id, config in list(self.configs.items()):
            if not config.channel_id:
                continue
            try:
                notified += await self._check_guild(guild_id, config, live)
            except Exception as e:
                logger.exception(f"Error checking Twitch streamers for guild {guild_id}: {e}")
        return notified

    async def _check_guild(self, guild_id: str, config: TwitchConfig, live: dict[str, StreamInfo]) -> int:
        guild_live = self._live.setdefault(guild_id, {})
        announced = self._announced.setdefault(guild_id, set())
        notified = 0

        for login in config.streamers:
            stream = live.get(login)
            if stream is None:
                guild_live.pop(login, None)
                continue
            if guild_live.get(login) == stream.id:
                continue  # still the same broadcast

            if not config.allow_duplicates and stream.id in announced:
                guild_live[login] = stream.id
                continue

            if await self.notify(config.channel_id, stream):  # type: ignore[arg-type]
                guild_live[login] = stream.id
                announced.add(stream.id)
                notified += 1
                logger.info(f"Sent live notification for {stream.user_name} in guild {guild_id}")
        return notified

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll_loop(), name="twitch-monitor")
            logger.info(f"Twitch monitor started (every {self.interval:.0f}s)")
        return self._task

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.check()
            except Exception as e:
                logger.exception(f"Twitch stream check crashed, retrying next interval: {e}")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            self._task = None
        await self.api.close()
