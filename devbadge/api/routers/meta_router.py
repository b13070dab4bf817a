"""Public metadata routes for the login screen"""

from fastapi import APIRouter, Depends

from devbadge.api.core.config import Settings, get_settings
from devbadge.api.core.dependencies import get_discord_api
from devbadge.api.services import DiscordAPIClient

router = APIRouter(prefix="/api", tags=["meta"])


@router.get("/meta")
async def get_meta(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"botName": settings.bot_name, "botAvatarUrl": settings.bot_avatar_url}


@router.get("/invite")
async def get_invite(discord_api: DiscordAPIClient = Depends(get_discord_api)) -> dict[str, str]:
    """Bot invite link with Administrator permission"""
    return {"inviteUrl": discord_api.invite_url()}
