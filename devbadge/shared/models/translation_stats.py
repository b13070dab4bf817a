"""Data model for translation-stats.json."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TranslationStats:
    total: int = 0
    by_language_pair: dict[str, int] = field(default_factory=dict)
    by_channel: dict[str, int] = field(default_factory=dict)

    def record(self, source: str, target: str, channel_id: str) -> None:
        pair = f"{source}→{target}"
        self.total += 1
        self.by_language_pair[pair] = self.by_language_pair.get(pair, 0) + 1
        self.by_channel[channel_id] = self.by_channel.get(channel_id, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byLanguagePair": dict(self.by_language_pair),
            "byChannel": dict(self.by_channel),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TranslationStats:
        if not data:
            return cls()
        return cls(
            total=int(data.get("total", 0)),
            by_language_pair={k: int(v) for k, v in (data.get("byLanguagePair") or {}).items()},
            by_channel={str(k): int(v) for k, v in (data.get("byChannel") or {}).items()},
        )
