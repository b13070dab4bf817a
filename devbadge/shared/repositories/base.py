"""Common read/write plumbing for the per-guild JSON repositories."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, Protocol, TypeAlias, TypeVar

from devbadge.shared.storage import JsonFileStore

logger = logging.getLogger(__name__)

UnsetType: TypeAlias = object
_UNSET: UnsetType = object()


class _Model(Protocol):
    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Any: ...


M = TypeVar("M", bound=_Model)


class GuildConfigRepository(Generic[M]):
    """Reads return the default record when the guild has no file yet."""

    filename: ClassVar[str]
    feature: ClassVar[str]
    model: ClassVar[type]

    def __init__(self, store: JsonFileStore) -> None:
        self.store = store

    def get(self, guild_id: str | int) -> M:
        return self.model.from_dict(self.store.read_guild(guild_id, self.filename))

    def exists(self, guild_id: str | int) -> bool:
        return self.store.guild_path(guild_id, self.filename).exists()

    def save(self, guild_id: str | int, config: M) -> None:
        self.store.write_guild(guild_id, self.filename, config.to_dict())
        logger.info(f"Saved {self.feature} for server {guild_id}")

    def load_all(self) -> dict[str, M]:
        """Every stored record, keyed by guild id. Unreadable files are logged and skipped."""
        configs: dict[str, M] = {}
        for guild_id in self.store.list_guilds(self.filename):
            try:
                configs[guild_id] = self.get(guild_id)
            except OSError as e:
                logger.error(f"Error loading {self.feature} for guild {guild_id}: {e}")
        return configs
