"""Translation config and stats routes"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from devbadge.api.core.dependencies import get_stats_repo, get_translation_repo, require_guild_access
from devbadge.shared.repositories import TranslationConfigRepository, TranslationStatsRepository
from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/guild/{guild_id}", tags=["translation"])


class TranslationConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channels: list[str | int] | None = None
    display_mode: str | None = Field(default=None, alias="displayMode")
    target_languages: list[str] | None = Field(default=None, alias="targetLanguages")
    output_channel_id: str | int | None = Field(default=None, alias="outputChannelId")


@router.get("/config")
async def get_config(
    guild_id: str = Depends(require_guild_access),
    repo: TranslationConfigRepository = Depends(get_translation_repo),
) -> dict[str, Any]:
    return repo.get(guild_id).to_dict()


@router.post("/config")
async def update_config(
    body: TranslationConfigUpdate,
    guild_id: str = Depends(require_guild_access),
    repo: TranslationConfigRepository = Depends(get_translation_repo),
) -> dict[str, Any]:
    """Partial update: only fields present in the body change"""
    changes = {name: getattr(body, name) for name in body.model_fields_set}
    # An explicit null clears the output channel; other fields ignore null
    changes = {k: v for k, v in changes.items() if v is not None or k == "output_channel_id"}
    try:
        repo.update(guild_id, **changes)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return {"success": True, "message": "Configuration updated successfully!"}


@router.delete("/config/languages/{code}")
async def remove_language(
    code: str,
    guild_id: str = Depends(require_guild_access),
    repo: TranslationConfigRepository = Depends(get_translation_repo),
) -> dict[str, Any]:
    try:
        config = repo.remove_language(guild_id, code)
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return {
        "success": True,
        "message": f"Removed language {code}",
        "targetLanguages": config.target_languages,
    }


@router.get("/stats")
async def get_stats(
    guild_id: str = Depends(require_guild_access),
    repo: TranslationStatsRepository = Depends(get_stats_repo),
) -> dict[str, Any]:
    return repo.get(guild_id).to_dict()
