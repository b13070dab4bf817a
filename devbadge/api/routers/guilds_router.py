"""User, guild list and live bot info routes"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from devbadge.api.core.dependencies import (
    get_bot_control,
    get_current_user,
    get_manageable_guilds,
    require_guild_access,
)
from devbadge.api.services import BotControlClient, BotControlError
from devbadge.api.services.discord_api import get_avatar_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["guilds"])


@router.get("/user")
async def get_user(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {
        "id": user["sub"],
        "username": user.get("username", ""),
        "globalName": user.get("global_name"),
        "discriminator": user.get("discriminator", "0"),
        "avatar": user.get("avatar"),
        "avatarUrl": get_avatar_url(user["sub"], user.get("avatar")),
    }


@router.get("/guilds")
async def get_guilds(
    guilds: list[dict[str, Any]] = Depends(get_manageable_guilds),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> list[dict[str, Any]]:
    """Guilds the user can manage, flagged with whether the bot is in them"""
    try:
        bot_guilds: set[str] | None = await bot_control.guild_ids()
    except BotControlError as e:
        logger.warning(f"Could not fetch bot guilds: {e}")
        bot_guilds = None

    return [
        {
            "id": str(g["id"]),
            "name": g.get("name", ""),
            "icon": g.get("icon"),
            "owner": bool(g.get("owner")),
            "permissions": str(g.get("permissions", "0")),
            "botPresent": str(g["id"]) in bot_guilds if bot_guilds is not None else None,
        }
        for g in guilds
    ]


@router.get("/guild/{guild_id}/info")
async def get_guild_info(
    guild_id: str = Depends(require_guild_access),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        return await bot_control.guild_info(guild_id)
    except BotControlError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None


@router.post("/guild/{guild_id}/leave")
async def leave_guild(
    guild_id: str = Depends(require_guild_access),
    user: dict[str, Any] = Depends(get_current_user),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        await bot_control.leave_guild(guild_id)
    except BotControlError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
    logger.info(f"User {user['sub']} made the bot leave guild {guild_id}")
    return {"success": True, "message": "The bot has left the server."}


@router.get("/bot")
async def get_bot_info(
    user: dict[str, Any] = Depends(get_current_user),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    try:
        return await bot_control.bot_info()
    except BotControlError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from None
