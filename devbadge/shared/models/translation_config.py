"""Data model for translation-config.json."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DISPLAY_MODES = ("reply", "embed", "thread")
DEFAULT_LANGUAGE = "en"


@dataclass
class TranslationConfig:
    """Auto-translation settings for one guild."""

    channels: list[str] = field(default_factory=list)
    display_mode: str = "reply"  # 'reply' | 'embed' | 'thread'
    target_languages: list[str] = field(default_factory=lambda: [DEFAULT_LANGUAGE])
    output_channel_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": list(self.channels),
            "displayMode": self.display_mode,
            "targetLanguages": list(self.target_languages),
            "outputChannelId": self.output_channel_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TranslationConfig:
        if not data:
            return cls()
        display_mode = data.get("displayMode") or "reply"
        languages = data.get("targetLanguages") or [DEFAULT_LANGUAGE]
        output = data.get("outputChannelId")
        return cls(
            channels=[str(c) for c in data.get("channels") or [] if c],
            display_mode=display_mode if display_mode in DISPLAY_MODES else "reply",
            target_languages=[str(lang) for lang in languages],
            output_channel_id=str(output) if output else None,
        )
