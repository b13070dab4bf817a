"""Twitch notification config routes"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from devbadge.api.core.dependencies import get_bot_control, get_twitch_repo, require_guild_access
from devbadge.api.services import BotControlClient, BotControlError
from devbadge.shared.repositories import TwitchConfigRepository
from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/guild/{guild_id}/twitch", tags=["twitch"])


class TwitchConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    streamers: list[str] | None = None
    channel_id: str | int | None = Field(default=None, alias="channelId")
    allow_duplicates: bool | None = Field(default=None, alias="allowDuplicates")


class StreamerAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    channel_id: str | int | None = Field(default=None, alias="channelId")


async def _reload(bot_control: BotControlClient) -> None:
    try:
        await bot_control.reload_twitch()
    except BotControlError as e:
        logger.error(f"Twitch config saved but bot reload failed: {e}")
        raise HTTPException(status_code=502, detail=f"Saved, but the bot could not reload: {e}") from None


@router.get("")
async def get_twitch_config(
    guild_id: str = Depends(require_guild_access),
    repo: TwitchConfigRepository = Depends(get_twitch_repo),
) -> dict[str, Any]:
    return repo.get(guild_id).to_dict()


@router.post("")
async def update_twitch_config(
    body: TwitchConfigUpdate,
    guild_id: str = Depends(require_guild_access),
    repo: TwitchConfigRepository = Depends(get_twitch_repo),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    changes = {name: getattr(body, name) for name in body.model_fields_set}
    changes = {k: v for k, v in changes.items() if v is not None or k == "channel_id"}
    try:
        repo.update(guild_id, **changes)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    await _reload(bot_control)
    return {"success": True, "message": "Twitch settings updated successfully!"}


@router.post("/streamers")
async def add_streamer(
    body: StreamerAdd,
    guild_id: str = Depends(require_guild_access),
    repo: TwitchConfigRepository = Depends(get_twitch_repo),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        config, added = repo.add_streamer(guild_id, body.username, body.channel_id)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    name = body.username.strip().lower()
    if not added:
        return {"success": True, "message": f"{name} is already being monitored", "streamers": config.streamers}
    await _reload(bot_control)
    return {"success": True, "message": f"Now monitoring {name}", "streamers": config.streamers}


@router.delete("/streamers/{username}")
async def remove_streamer(
    username: str,
    guild_id: str = Depends(require_guild_access),
    repo: TwitchConfigRepository = Depends(get_twitch_repo),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        config, removed = repo.remove_streamer(guild_id, username)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    if not removed:
        raise HTTPException(status_code=404, detail=f"{username} is not being monitored in this server")
    await _reload(bot_control)
    return {"success": True, "message": f"Stopped monitoring {username.lower()}", "streamers": config.streamers}


@router.post("/check")
async def check_streams(
    guild_id: str = Depends(require_guild_access),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        result = await bot_control.check_twitch()
    except BotControlError as e:
        raise HTTPException(status_code=502, detail=str(e)) from None
    notified = int(result.get("notified", 0))
    return {"success": True, "message": f"Check complete, {notified} notification(s) sent", "notified": notified}
