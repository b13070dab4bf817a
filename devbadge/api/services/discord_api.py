"""Discord REST client for the dashboard (OAuth2 + application commands)"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from devbadge.shared.cache import AsyncTTLCache, cached

logger = logging.getLogger(__name__)

MANAGE_GUILD = 0x20
ADMINISTRATOR = 0x8

# User guild lists change rarely; Discord rate-limits /users/@me/guilds hard
_guilds_cache = AsyncTTLCache(maxsize=256, ttl=60)


class DiscordAPIError(Exception):
    """Discord answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def can_manage(guild: dict[str, Any]) -> bool:
    """Whether the partial guild's permission bitfield includes Manage Server"""
    try:
        permissions = int(guild.get("permissions", 0))
    except (TypeError, ValueError):
        return False
    return bool(guild.get("owner")) or bool(permissions & (MANAGE_GUILD | ADMINISTRATOR))


def get_avatar_url(user_id: str, avatar_hash: str | None) -> str:
    """Generate Discord avatar URL"""
    if avatar_hash:
        ext = "gif" if avatar_hash.startswith("a_") else "png"
        return f"https://cdn.discordapp.com/avatars/{user_id}/{avatar_hash}.{ext}"
    default_avatar_index = (int(user_id) >> 22) % 6
    return f"https://cdn.discordapp.com/embed/avatars/{default_avatar_index}.png"


class DiscordAPIClient:
    """Client for Discord OAuth2 and the bot's application commands"""

    OAUTH_SCOPES = ["identify", "guilds"]

    DISCORD_API_URL = "https://discord.com/api/v10"
    DISCORD_OAUTH_URL = "https://discord.com/api/oauth2"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        bot_token: str = "",
        *,
        http: httpx.AsyncClient | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.bot_token = bot_token

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    @property
    def is_configured(self) -> bool:
        """Check if Discord OAuth is configured"""
        return bool(self.client_id and self.client_secret)

    def generate_oauth_url(self, state: str) -> str:
        """Generate Discord OAuth authorization URL"""
        return (
            "https://discord.com/oauth2/authorize"
            f"?client_id={self.client_id}"
            f"&redirect_uri={quote(self.redirect_uri, safe='')}"
            "&response_type=code"
            f"&scope={'%20'.join(self.OAUTH_SCOPES)}"
            f"&state={quote(state, safe='')}"
        )

    def invite_url(self) -> str:
        return (
            "https://discord.com/api/oauth2/authorize"
            f"?client_id={self.client_id}&permissions=8&scope=bot%20applications.commands"
        )

    async def exchange_code(self, code: str) -> tuple[str | None, str | None]:
        """
        Exchange OAuth code for an access token

        Returns:
            Tuple of (access_token, error_code)
        """
        try:
            response = await self._http.post(
                f"{self.DISCORD_OAUTH_URL}/token",
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                auth=(self.client_id, self.client_secret),
            )
        except httpx.TimeoutException:
            logger.error("Timeout while exchanging code for token")
            return None, "timeout"
        except httpx.HTTPError as e:
            logger.error(f"HTTP error exchanging code: {e}")
            return None, "exchange_failed"

        if response.status_code != 200:
            logger.error(f"Failed to exchange code: {response.status_code} {response.text}")
            return None, "token_exchange_failed"

        access_token = response.json().get("access_token")
        if not access_token:
            logger.error("No access_token in response")
            return None, "no_access_token"
        return access_token, None

    async def get_current_user(self, access_token: str) -> dict[str, Any] | None:
        try:
            response = await self._http.get(
                f"{self.DISCORD_API_URL}/users/@me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Error getting user info: {e}")
            return None

        if response.status_code != 200:
            logger.error(f"Failed to get user info: {response.status_code}")
            return None
        data: dict[str, Any] = response.json()
        return data

    @cached(_guilds_cache, key_func=lambda self, access_token, user_id: f"guilds:{user_id}")
    async def get_user_guilds(self, access_token: str, user_id: str) -> list[dict[str, Any]]:
        """Partial guilds of the OAuth user (cached per user)"""
        try:
            response = await self._http.get(
                f"{self.DISCORD_API_URL}/users/@me/guilds",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise DiscordAPIError(f"Discord request failed: {e}") from e

        if response.status_code != 200:
            raise DiscordAPIError(f"Failed to fetch guilds: HTTP {response.status_code}", response.status_code)
        guilds: list[dict[str, Any]] = response.json()
        return guilds

    # ---- application commands (bot token) ----

    def _bot_headers(self) -> dict[str, str]:
        if not self.bot_token:
            raise DiscordAPIError("DISCORD_TOKEN is not configured", 503)
        return {"Authorization": f"Bot {self.bot_token}"}

    async def list_commands(self) -> list[dict[str, Any]]:
        headers = self._bot_headers()
        try:
            response = await self._http.get(
                f"{self.DISCORD_API_URL}/applications/{self.client_id}/commands", headers=headers
            )
        except httpx.HTTPError as e:
            raise DiscordAPIError(f"Discord request failed: {e}") from e
        if response.status_code != 200:
            raise DiscordAPIError(f"Failed to list commands: HTTP {response.status_code}", response.status_code)
        commands: list[dict[str, Any]] = response.json()
        return commands

    async def delete_command(self, command_id: str) -> bool:
        """Returns False when Discord does not know the command"""
        headers = self._bot_headers()
        try:
            response = await self._http.delete(
                f"{self.DISCORD_API_URL}/applications/{self.client_id}/commands/{command_id}",
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise DiscordAPIError(f"Discord request failed: {e}") from e
        if response.status_code == 404:
            return False
        if response.status_code not in (200, 204):
            raise DiscordAPIError(f"Failed to delete command: HTTP {response.status_code}", response.status_code)
        logger.info(f"Deleted application command {command_id}")
        return True
