"""Data model for twitch-config.json."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TwitchConfig:
    """Twitch live-notification settings for one guild."""

    streamers: list[str] = field(default_factory=list)
    channel_id: str | None = None
    allow_duplicates: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "streamers": list(self.streamers),
            "channelId": self.channel_id,
            "allowDuplicates": self.allow_duplicates,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TwitchConfig:
        if not data:
            return cls()
        channel_id = data.get("channelId")
        return cls(
            streamers=[str(s).lower() for s in data.get("streamers") or [] if s],
            channel_id=str(channel_id) if channel_id else None,
            allow_duplicates=bool(data.get("allowDuplicates", False)),
        )
