from __future__ import annotations

import json
from pathlib import Path

import pytest

from devbadge.shared.models import TRACKING_EVENTS
from devbadge.shared.repositories import (
    CommandConfigRepository,
    TrackingConfigRepository,
    TranslationConfigRepository,
    TranslationStatsRepository,
    TwitchConfigRepository,
)
from devbadge.shared.storage import JsonFileStore
from devbadge.shared.validation import ConfigValidationError

GUILD = "123456789012345678"


def _read(tmp_path: Path, filename: str) -> dict:
    return json.loads((tmp_path / "servers" / GUILD / filename).read_text(encoding="utf-8"))


def test_translation_config_defaults_when_missing(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))

    assert repo.get(GUILD).to_dict() == {
        "channels": [],
        "displayMode": "reply",
        "targetLanguages": ["en"],
        "outputChannelId": None,
    }
    assert repo.exists(GUILD) is False


def test_translation_partial_update_keeps_other_fields(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))
    repo.update(GUILD, channels=["111", "222", "111"], target_languages=["es", "ZH-cn"])
    repo.update(GUILD, display_mode="embed")

    saved = _read(tmp_path, "translation-config.json")
    assert saved["channels"] == ["111", "222"]
    assert saved["targetLanguages"] == ["es", "zh-CN"]
    assert saved["displayMode"] == "embed"
    assert saved["outputChannelId"] is None


def test_translation_invalid_update_writes_nothing(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))
    repo.update(GUILD, target_languages=["fr"])

    with pytest.raises(ConfigValidationError):
        repo.update(GUILD, display_mode="popup")
    with pytest.raises(ConfigValidationError):
        repo.update(GUILD, target_languages=[])
    with pytest.raises(ConfigValidationError):
        repo.update(GUILD, channels=["general"])

    assert repo.get(GUILD).target_languages == ["fr"]


def test_translation_remove_last_language_is_refused(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))
    repo.update(GUILD, target_languages=["en", "ja"])

    assert repo.remove_language(GUILD, "EN").target_languages == ["ja"]
    with pytest.raises(ConfigValidationError, match="Cannot remove the last language"):
        repo.remove_language(GUILD, "ja")
    with pytest.raises(ConfigValidationError, match="not configured"):
        repo.remove_language(GUILD, "de")
    assert _read(tmp_path, "translation-config.json")["targetLanguages"] == ["ja"]


def test_translation_enable_channel_is_idempotent(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))

    _, added = repo.enable_channel(GUILD, 555)
    assert added is True
    config, added = repo.enable_channel(GUILD, "555")
    assert added is False
    assert config.channels == ["555"]

    _, removed = repo.disable_channel(GUILD, "555")
    assert removed is True
    assert repo.get(GUILD).channels == []


def test_translation_stats_accumulate(tmp_path: Path) -> None:
    repo = TranslationStatsRepository(JsonFileStore(tmp_path))
    repo.record(GUILD, "es", "en", 10)
    repo.record(GUILD, "es", "en", 10)
    repo.record(GUILD, "ja", "en", 20)

    assert _read(tmp_path, "translation-stats.json") == {
        "total": 3,
        "byLanguagePair": {"es→en": 2, "ja→en": 1},
        "byChannel": {"10": 2, "20": 1},
    }


def test_twitch_duplicate_streamer_is_noop(tmp_path: Path) -> None:
    repo = TwitchConfigRepository(JsonFileStore(tmp_path))

    config, added = repo.add_streamer(GUILD, "Shroud", "999")
    assert added is True
    config, added = repo.add_streamer(GUILD, "shroud")
    assert added is False
    assert config.streamers == ["shroud"]
    assert config.channel_id == "999"


def test_twitch_remove_missing_streamer(tmp_path: Path) -> None:
    repo = TwitchConfigRepository(JsonFileStore(tmp_path))
    repo.add_streamer(GUILD, "ninja")

    _, removed = repo.remove_streamer(GUILD, "pokimane")
    assert removed is False
    _, removed = repo.remove_streamer(GUILD, "NINJA")
    assert removed is True
    assert _read(tmp_path, "twitch-config.json")["streamers"] == []


def test_twitch_rejects_invalid_username(tmp_path: Path) -> None:
    repo = TwitchConfigRepository(JsonFileStore(tmp_path))
    with pytest.raises(ConfigValidationError):
        repo.add_streamer(GUILD, "no spaces allowed")
    assert repo.exists(GUILD) is False


def test_tracking_defaults_all_events_on(tmp_path: Path) -> None:
    repo = TrackingConfigRepository(JsonFileStore(tmp_path))
    config = repo.get(GUILD)

    assert config.enabled is False
    assert config.channel_id is None
    assert set(config.events) == set(TRACKING_EVENTS)
    assert all(config.events.values())


def test_tracking_unknown_event_leaves_file_untouched(tmp_path: Path) -> None:
    repo = TrackingConfigRepository(JsonFileStore(tmp_path))
    repo.update(GUILD, enabled=True, channel_id="42")

    with pytest.raises(ConfigValidationError, match="Unknown tracking event"):
        repo.update(GUILD, enabled=False, events={"messages": False, "typing": True})

    saved = _read(tmp_path, "tracking-config.json")
    assert saved["enabled"] is True
    assert saved["events"]["messages"] is True


def test_tracking_toggle_ignored_channel(tmp_path: Path) -> None:
    repo = TrackingConfigRepository(JsonFileStore(tmp_path))

    _, ignored = repo.toggle_ignored_channel(GUILD, "77")
    assert ignored is True
    config, ignored = repo.toggle_ignored_channel(GUILD, 77)
    assert ignored is False
    assert config.ignored_channels == []


def test_load_all_skips_unreadable_files(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path)
    repo = TwitchConfigRepository(store)
    repo.add_streamer(GUILD, "ninja", "1")
    broken = tmp_path / "servers" / "222" / "twitch-config.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{", encoding="utf-8")
    (tmp_path / "servers" / "not-a-guild").mkdir()

    configs = repo.load_all()
    assert list(configs) == [GUILD]
    assert configs[GUILD].streamers == ["ninja"]


def test_invalid_guild_id_is_rejected(tmp_path: Path) -> None:
    repo = TranslationConfigRepository(JsonFileStore(tmp_path))
    with pytest.raises(ConfigValidationError):
        repo.get("../../etc")


def test_command_config_toggle(tmp_path: Path) -> None:
    repo = CommandConfigRepository(JsonFileStore(tmp_path))

    assert repo.disabled_commands() == set()
    repo.set_enabled("Ping", False)
    assert repo.is_disabled("ping") is True
    assert json.loads((tmp_path / "disabled-commands.json").read_text(encoding="utf-8")) == ["ping"]

    repo.set_enabled("ping", True)
    assert repo.is_disabled("PING") is False
