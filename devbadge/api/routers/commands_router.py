"""Application command management routes (dashboard admins only)"""

import logging
from typing import Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from devbadge.api.core.dependencies import get_command_repo, get_discord_api, require_admin
from devbadge.api.services import DiscordAPIClient, DiscordAPIError
from devbadge.shared.repositories import CommandConfigRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/commands", tags=["commands"])


class CommandToggle(BaseModel):
    enabled: bool | None = None


def _raise_for(e: DiscordAPIError) -> NoReturn:
    status = 503 if e.status_code == 503 else 502
    raise HTTPException(status_code=status, detail=str(e)) from None


@router.get("")
async def list_commands(
    admin: dict[str, Any] = Depends(require_admin),
    discord_api: DiscordAPIClient = Depends(get_discord_api),
    repo: CommandConfigRepository = Depends(get_command_repo),
) -> list[dict[str, Any]]:
    """Registered global application commands with their enabled flag"""
    try:
        commands = await discord_api.list_commands()
    except DiscordAPIError as e:
        logger.error(f"Failed to list application commands: {e}")
        _raise_for(e)

    disabled = repo.disabled_commands()
    return [
        {
            "id": str(c.get("id")),
            "name": c.get("name", ""),
            "description": c.get("description", ""),
            "enabled": str(c.get("name", "")).lower() not in disabled,
        }
        for c in sorted(commands, key=lambda c: c.get("name", ""))
    ]


@router.post("/{name}/toggle")
async def toggle_command(
    name: str,
    body: CommandToggle | None = None,
    admin: dict[str, Any] = Depends(require_admin),
    repo: CommandConfigRepository = Depends(get_command_repo),
) -> dict[str, Any]:
    """Enable or disable a command. Without a body the current state flips."""
    key = name.strip().lower()
    if not key:
        raise HTTPException(status_code=400, detail="Command name is required")
    enabled = body.enabled if body and body.enabled is not None else repo.is_disabled(key)
    repo.set_enabled(key, enabled)
    logger.info(f"Admin {admin['sub']} {'enabled' if enabled else 'disabled'} command {key}")
    return {
        "success": True,
        "message": f"Command /{key} {'enabled' if enabled else 'disabled'}",
        "enabled": enabled,
    }


@router.delete("/{command_id}")
async def delete_command(
    command_id: str,
    admin: dict[str, Any] = Depends(require_admin),
    discord_api: DiscordAPIClient = Depends(get_discord_api),
) -> dict[str, Any]:
    if not command_id.isdigit():
        raise HTTPException(status_code=400, detail="Invalid command id")
    try:
        deleted = await discord_api.delete_command(command_id)
    except DiscordAPIError as e:
        logger.error(f"Failed to delete application command {command_id}: {e}")
        _raise_for(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Command not found")
    logger.info(f"Admin {admin['sub']} deleted application command {command_id}")
    return {"success": True, "message": "Command deleted"}
