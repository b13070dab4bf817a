"""Data model for tracking-config.json."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Event-type switches, in display order. All default to enabled.
TRACKING_EVENTS: tuple[str, ...] = (
    "messages",
    "members",
    "voice",
    "reactions",
    "channels",
    "userUpdates",
    "channelUpdates",
    "roles",
    "guild",
    "threads",
    "scheduledEvents",
    "stickers",
    "webhooks",
    "integrations",
    "invites",
    "stageInstances",
    "moderationRules",
    "interactions",
)


def default_events() -> dict[str, bool]:
    return {event: True for event in TRACKING_EVENTS}


@dataclass
class TrackingConfig:
    """Activity-tracking settings for one guild."""

    enabled: bool = False
    channel_id: str | None = None
    ignored_channels: list[str] = field(default_factory=list)
    events: dict[str, bool] = field(default_factory=default_events)

    def allows(self, event: str | None, channel_id: str | int | None = None) -> bool:
        """Whether an event of this type from this channel should be logged"""
        if not self.enabled:
            return False
        if event is not None and not self.events.get(event, True):
            return False
        if channel_id is not None and str(channel_id) in self.ignored_channels:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "channelId": self.channel_id,
            "ignoredChannels": list(self.ignored_channels),
            "events": {event: self.events.get(event, True) for event in TRACKING_EVENTS},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TrackingConfig:
        if not data:
            return cls()
        stored_events = data.get("events") or {}
        channel_id = data.get("channelId")
        return cls(
            enabled=bool(data.get("enabled", False)),
            channel_id=str(channel_id) if channel_id else None,
            ignored_channels=[str(c) for c in data.get("ignoredChannels") or [] if c],
            # Anything not explicitly false stays on
            events={event: stored_events.get(event) is not False for event in TRACKING_EVENTS},
        )
