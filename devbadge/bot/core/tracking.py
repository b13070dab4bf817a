"""Per-guild activity tracking settings, cached in memory"""

from __future__ import annotations

import logging

from devbadge.shared.models.tracking_config import TrackingConfig
from devbadge.shared.repositories.tracking_config import TrackingConfigRepository

logger = logging.getLogger("discord_bot.tracking")


class TrackingService:
    """Answers "should this event be logged?" without touching disk.

    The cache is refreshed by :meth:`reload` (control API) and by
    :meth:`refresh` after a slash command changes a guild's settings.
    """

    def __init__(self, repository: TrackingConfigRepository) -> None:
        self.repository = repository
        self._configs: dict[str, TrackingConfig] = {}

    def reload(self) -> int:
        self._configs = self.repository.load_all()
        enabled = sum(1 for c in self._configs.values() if c.enabled)
        logger.info(f"Loaded tracking config for {len(self._configs)} guild(s), {enabled} enabled")
        return len(self._configs)

    def refresh(self, guild_id: str | int, config: TrackingConfig | None = None) -> TrackingConfig:
        config = config or self.repository.get(guild_id)
        self._configs[str(guild_id)] = config
        return config

    def config_for(self, guild_id: str | int) -> TrackingConfig:
        return self._configs.get(str(guild_id)) or TrackingConfig()

    def should_log(self, guild_id: str | int | None, event: str, channel_id: str | int | None = None) -> bool:
        if guild_id is None:
            return False
        return self.config_for(guild_id).allows(event, channel_id)
