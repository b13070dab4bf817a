"""Repository for servers/<guild>/twitch-config.json."""

from __future__ import annotations

from devbadge.shared.models.twitch_config import TwitchConfig
from devbadge.shared.repositories.base import _UNSET, GuildConfigRepository
from devbadge.shared.validation import normalize_channel_id, normalize_streamer, normalize_streamers


class TwitchConfigRepository(GuildConfigRepository[TwitchConfig]):
    """Per-guild monitored streamers and notification channel."""

    filename = "twitch-config.json"
    feature = "Twitch configuration"
    model = TwitchConfig

    def update(
        self,
        guild_id: str | int,
        *,
        streamers: object = _UNSET,
        channel_id: object = _UNSET,
        allow_duplicates: object = _UNSET,
    ) -> TwitchConfig:
        config = self.get(guild_id)
        if streamers is not _UNSET:
            config.streamers = normalize_streamers(streamers or [])  # type: ignore[arg-type]
        if channel_id is not _UNSET:
            config.channel_id = normalize_channel_id(channel_id)
        if allow_duplicates is not _UNSET:
            config.allow_duplicates = bool(allow_duplicates)
        self.save(guild_id, config)
        return config

    def add_streamer(
        self, guild_id: str | int, username: str, channel_id: str | int | None = None
    ) -> tuple[TwitchConfig, bool]:
        """Returns (config, added). A case-insensitive duplicate is a no-op."""
        config = self.get(guild_id)
        name = normalize_streamer(username)
        added = name not in config.streamers
        if added:
            config.streamers.append(name)
        if channel_id is not None:
            config.channel_id = normalize_channel_id(channel_id)
        if added or channel_id is not None:
            self.save(guild_id, config)
        return config, added

    def remove_streamer(self, guild_id: str | int, username: str) -> tuple[TwitchConfig, bool]:
        config = self.get(guild_id)
        name = normalize_streamer(username)
        if name not in config.streamers:
            return config, False
        config.streamers.remove(name)
        self.save(guild_id, config)
        return config, True
