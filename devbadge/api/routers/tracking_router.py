"""Activity tracking config routes"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from devbadge.api.core.dependencies import get_bot_control, get_tracking_repo, require_guild_access
from devbadge.api.services import BotControlClient, BotControlError
from devbadge.shared.repositories import TrackingConfigRepository
from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/guild/{guild_id}/tracking", tags=["tracking"])


class TrackingConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool | None = None
    channel_id: str | int | None = Field(default=None, alias="channelId")
    ignored_channels: list[str | int] | None = Field(default=None, alias="ignoredChannels")
    events: dict[str, bool] | None = None


@router.get("")
async def get_tracking_config(
    guild_id: str = Depends(require_guild_access),
    repo: TrackingConfigRepository = Depends(get_tracking_repo),
) -> dict[str, Any]:
    return repo.get(guild_id).to_dict()


@router.post("")
async def update_tracking_config(
    body: TrackingConfigUpdate,
    guild_id: str = Depends(require_guild_access),
    repo: TrackingConfigRepository = Depends(get_tracking_repo),
    bot_control: BotControlClient = Depends(get_bot_control),
) -> dict[str, Any]:
    changes = {name: getattr(body, name) for name in body.model_fields_set}
    changes = {k: v for k, v in changes.items() if v is not None or k == "channel_id"}
    try:
        repo.update(guild_id, **changes)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    try:
        await bot_control.reload_tracking()
    except BotControlError as e:
        logger.error(f"Tracking config saved but bot reload failed: {e}")
        raise HTTPException(status_code=502, detail=f"Saved, but the bot could not reload: {e}") from None
    return {"success": True, "message": "Tracking settings updated successfully!"}
