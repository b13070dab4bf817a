"""Repository for servers/<guild>/translation-config.json."""

from __future__ import annotations

from devbadge.shared.models.translation_config import DISPLAY_MODES, TranslationConfig
from devbadge.shared.repositories.base import _UNSET, GuildConfigRepository
from devbadge.shared.validation import (
    ConfigValidationError,
    normalize_channel_id,
    normalize_channel_ids,
    normalize_language_code,
    normalize_language_codes,
)


class TranslationConfigRepository(GuildConfigRepository[TranslationConfig]):
    """Per-guild auto-translation settings."""

    filename = "translation-config.json"
    feature = "translation configuration"
    model = TranslationConfig

    def update(
        self,
        guild_id: str | int,
        *,
        channels: object = _UNSET,
        display_mode: object = _UNSET,
        target_languages: object = _UNSET,
        output_channel_id: object = _UNSET,
    ) -> TranslationConfig:
        """Partial update: only the given fields change. Validates before writing."""
        config = self.get(guild_id)

        if channels is not _UNSET:
            config.channels = normalize_channel_ids(channels or [])  # type: ignore[arg-type]
        if display_mode is not _UNSET:
            if display_mode not in DISPLAY_MODES:
                raise ConfigValidationError(
                    f"Invalid display mode: {display_mode!r} (expected one of {', '.join(DISPLAY_MODES)})"
                )
            config.display_mode = str(display_mode)
        if target_languages is not _UNSET:
            config.target_languages = normalize_language_codes(target_languages or [])  # type: ignore[arg-type]
        if output_channel_id is not _UNSET:
            config.output_channel_id = normalize_channel_id(output_channel_id)

        self.save(guild_id, config)
        return config

    def enable_channel(self, guild_id: str | int, channel_id: str | int) -> tuple[TranslationConfig, bool]:
        """Returns (config, added). Adding an already enabled channel is a no-op."""
        config = self.get(guild_id)
        channel = normalize_channel_id(channel_id)
        if not channel or channel in config.channels:
            return config, False
        config.channels.append(channel)
        self.save(guild_id, config)
        return config, True

    def disable_channel(self, guild_id: str | int, channel_id: str | int) -> tuple[TranslationConfig, bool]:
        config = self.get(guild_id)
        channel = normalize_channel_id(channel_id)
        if channel not in config.channels:
            return config, False
        config.channels.remove(channel)
        self.save(guild_id, config)
        return config, True

    def add_language(self, guild_id: str | int, code: str) -> tuple[TranslationConfig, bool]:
        config = self.get(guild_id)
        language = normalize_language_code(code)
        if language in config.target_languages:
            return config, False
        config.target_languages.append(language)
        self.save(guild_id, config)
        return config, True

    def remove_language(self, guild_id: str | int, code: str) -> TranslationConfig:
        """Remove a target language. Removing the last one is refused."""
        config = self.get(guild_id)
        language = normalize_language_code(code)
        if language not in config.target_languages:
            raise ConfigValidationError(f"Language {language} is not configured")
        if len(config.target_languages) == 1:
            raise ConfigValidationError(
                "Cannot remove the last language. At least one language is required."
            )
        config.target_languages.remove(language)
        self.save(guild_id, config)
        return config
