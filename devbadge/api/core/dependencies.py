"""Dependency injection utilities for FastAPI"""

import logging
from typing import Any

from fastapi import Cookie, Depends, HTTPException, Path

from devbadge.api.core.config import Settings, get_settings
from devbadge.api.services import (
    AuthService,
    BotControlClient,
    DiscordAPIClient,
    DiscordAPIError,
)
from devbadge.api.services.discord_api import can_manage
from devbadge.shared.repositories import (
    CommandConfigRepository,
    TrackingConfigRepository,
    TranslationConfigRepository,
    TranslationStatsRepository,
    TwitchConfigRepository,
)
from devbadge.shared.storage import JsonFileStore, validate_guild_id
from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_auth_service(settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expire_hours=settings.jwt_expire_hours,
    )


_discord_api: DiscordAPIClient | None = None
_bot_control: BotControlClient | None = None


def get_discord_api(settings: Settings = Depends(get_settings)) -> DiscordAPIClient:
    """Shared DiscordAPIClient singleton (connection reuse)"""
    global _discord_api
    if _discord_api is None:
        _discord_api = DiscordAPIClient(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.dashboard_callback_url,
            bot_token=settings.discord_token,
        )
    return _discord_api


def get_bot_control(settings: Settings = Depends(get_settings)) -> BotControlClient:
    """Shared BotControlClient singleton"""
    global _bot_control
    if _bot_control is None:
        _bot_control = BotControlClient(settings.bot_control_url, settings.control_secret)
    return _bot_control


async def close_clients() -> None:
    """Close shared HTTP clients. Call on app shutdown."""
    global _discord_api, _bot_control
    if _discord_api is not None:
        await _discord_api.close()
        _discord_api = None
    if _bot_control is not None:
        await _bot_control.close()
        _bot_control = None


def get_store(settings: Settings = Depends(get_settings)) -> JsonFileStore:
    return JsonFileStore(settings.data_path)


def get_translation_repo(store: JsonFileStore = Depends(get_store)) -> TranslationConfigRepository:
    return TranslationConfigRepository(store)


def get_stats_repo(store: JsonFileStore = Depends(get_store)) -> TranslationStatsRepository:
    return TranslationStatsRepository(store)


def get_twitch_repo(store: JsonFileStore = Depends(get_store)) -> TwitchConfigRepository:
    return TwitchConfigRepository(store)


def get_tracking_repo(store: JsonFileStore = Depends(get_store)) -> TrackingConfigRepository:
    return TrackingConfigRepository(store)


def get_command_repo(store: JsonFileStore = Depends(get_store)) -> CommandConfigRepository:
    return CommandConfigRepository(store)


# ============================================
# Authentication Dependencies
# ============================================


def get_current_user(
    auth_token: str | None = Cookie(None),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """Verify the auth_token cookie and return its payload"""
    if not auth_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = auth_service.verify_token(auth_token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload


async def get_manageable_guilds(
    user: dict[str, Any] = Depends(get_current_user),
    discord_api: DiscordAPIClient = Depends(get_discord_api),
) -> list[dict[str, Any]]:
    """The user's guilds where they hold Manage Server (0x20)"""
    try:
        guilds = await discord_api.get_user_guilds(user["dat"], user["sub"])
    except DiscordAPIError as e:
        logger.error(f"Failed to fetch guilds for {user['sub']}: {e}")
        if e.status_code == 401:
            raise HTTPException(status_code=401, detail="Discord session expired, please log in again") from None
        raise HTTPException(status_code=502, detail="Failed to fetch guilds from Discord") from None
    return [g for g in guilds if can_manage(g)]


async def require_guild_access(
    guild_id: str = Path(...),
    guilds: list[dict[str, Any]] = Depends(get_manageable_guilds),
) -> str:
    """Return the validated guild id if the user can manage it, else 403"""
    try:
        guild_id = validate_guild_id(guild_id)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    if not any(str(g.get("id")) == guild_id for g in guilds):
        raise HTTPException(status_code=403, detail="No permission to manage this server")
    return guild_id


def require_admin(
    user: dict[str, Any] = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    if str(user["sub"]) not in settings.admin_ids:
        raise HTTPException(status_code=403, detail="Dashboard admin access required")
    return user
