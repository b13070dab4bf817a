"""Repository for servers/<guild>/tracking-config.json."""

from __future__ import annotations

from collections.abc import Mapping

from devbadge.shared.models.tracking_config import TRACKING_EVENTS, TrackingConfig
from devbadge.shared.repositories.base import _UNSET, GuildConfigRepository
from devbadge.shared.validation import (
    ConfigValidationError,
    normalize_channel_id,
    normalize_channel_ids,
)


class TrackingConfigRepository(GuildConfigRepository[TrackingConfig]):
    """Per-guild activity tracking settings."""

    filename = "tracking-config.json"
    feature = "tracking configuration"
    model = TrackingConfig

    def update(
        self,
        guild_id: str | int,
        *,
        enabled: object = _UNSET,
        channel_id: object = _UNSET,
        ignored_channels: object = _UNSET,
        events: object = _UNSET,
    ) -> TrackingConfig:
        config = self.get(guild_id)
        if events is not _UNSET:
            # Validate first so an unknown event name leaves the file untouched
            config.events.update(_validate_events(events))
        if enabled is not _UNSET:
            config.enabled = bool(enabled)
        if channel_id is not _UNSET:
            config.channel_id = normalize_channel_id(channel_id)
        if ignored_channels is not _UNSET:
            config.ignored_channels = normalize_channel_ids(ignored_channels or [])  # type: ignore[arg-type]
        self.save(guild_id, config)
        return config

    def toggle_ignored_channel(
        self, guild_id: str | int, channel_id: str | int
    ) -> tuple[TrackingConfig, bool]:
        """Returns (config, now_ignored)"""
        config = self.get(guild_id)
        channel = normalize_channel_id(channel_id)
        if channel is None:
            raise ConfigValidationError("A channel is required")
        if channel in config.ignored_channels:
            config.ignored_channels.remove(channel)
            now_ignored = False
        else:
            config.ignored_channels.append(channel)
            now_ignored = True
        self.save(guild_id, config)
        return config, now_ignored


def _validate_events(events: object) -> dict[str, bool]:
    if not isinstance(events, Mapping):
        raise ConfigValidationError("events must be an object of event name to boolean")
    unknown = [name for name in events if name not in TRACKING_EVENTS]
    if unknown:
        raise ConfigValidationError(f"Unknown tracking event(s): {', '.join(sorted(unknown))}")
    return {name: bool(value) for name, value in events.items()}
