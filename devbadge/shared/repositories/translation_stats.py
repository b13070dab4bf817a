"""Repository for servers/<guild>/translation-stats.json."""

from __future__ import annotations

from devbadge.shared.models.translation_stats import TranslationStats
from devbadge.shared.repositories.base import GuildConfigRepository


class TranslationStatsRepository(GuildConfigRepository[TranslationStats]):
    filename = "translation-stats.json"
    feature = "translation stats"
    model = TranslationStats

    def record(self, guild_id: str | int, source: str, target: str, channel_id: str | int) -> None:
        stats = self.get(guild_id)
        stats.record(source, target, str(channel_id))
        self.store.write_guild(guild_id, self.filename, stats.to_dict())
