from __future__ import annotations

from pathlib import Path

from devbadge.bot.cogs.tracking import event_label, event_option_name
from devbadge.bot.core.tracking import TrackingService
from devbadge.shared.models import TRACKING_EVENTS, TrackingConfig
from devbadge.shared.repositories import TrackingConfigRepository
from devbadge.shared.storage import JsonFileStore

GUILD = "123"


def _make_service(tmp_path: Path) -> tuple[TrackingService, TrackingConfigRepository]:
    repo = TrackingConfigRepository(JsonFileStore(tmp_path))
    return TrackingService(repo), repo


def test_nothing_logged_while_disabled(tmp_path: Path) -> None:
    service, repo = _make_service(tmp_path)
    repo.update(GUILD, channel_id="9")
    service.reload()

    assert service.should_log(GUILD, "messages", "50") is False


def test_enabled_event_and_channel_filters(tmp_path: Path) -> None:
    service, repo = _make_service(tmp_path)
    repo.update(GUILD, enabled=True, ignored_channels=["50"], events={"voice": False})
    service.reload()

    assert service.should_log(GUILD, "messages", "51") is True
    assert service.should_log(GUILD, "messages", "50") is False
    assert service.should_log(GUILD, "voice", "51") is False
    assert service.should_log(GUILD, "roles") is True
    assert service.should_log(None, "messages") is False
    assert service.should_log("999", "messages") is False


def test_refresh_picks_up_changes_without_reload(tmp_path: Path) -> None:
    service, repo = _make_service(tmp_path)
    service.reload()
    assert service.should_log(GUILD, "members") is False

    config = repo.update(GUILD, enabled=True)
    service.refresh(GUILD, config)
    assert service.should_log(GUILD, "members") is True

    repo.update(GUILD, enabled=False)
    service.refresh(GUILD)
    assert service.should_log(GUILD, "members") is False


def test_stored_events_missing_keys_default_on() -> None:
    config = TrackingConfig.from_dict({"enabled": True, "events": {"voice": False, "legacy": False}})

    assert config.events["voice"] is False
    assert config.events["messages"] is True
    assert "legacy" not in config.to_dict()["events"]


def test_event_option_names() -> None:
    assert event_option_name("userUpdates") == "user-updates"
    assert event_option_name("messages") == "messages"
    assert event_label("stageInstances") == "Stage Instances"
    assert len({event_option_name(e) for e in TRACKING_EVENTS}) == len(TRACKING_EVENTS)
