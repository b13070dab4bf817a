"""HTTP client for the bot's control API"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class BotControlError(Exception):
    """The bot control API failed or could not be reached."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class BotControlClient:
    """Calls /control/* on the bot process with the shared secret"""

    def __init__(self, base_url: str, secret: str, *, timeout: float = 10.0, http: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str) -> dict[str, Any]:
        if not self.secret:
            raise BotControlError("CONTROL_SECRET is not configured", 503)

        url = f"{self.base_url}/control{path}"
        try:
            response = await self._http.request(method, url, headers={"X-Control-Secret": self.secret})
        except httpx.TimeoutException:
            logger.warning(f"Bot control {method} {path} timed out")
            raise BotControlError("Bot did not respond in time") from None
        except httpx.HTTPError as e:
            logger.warning(f"Cannot reach bot control API at {url}: {e}")
            raise BotControlError("Bot is unreachable") from None

        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"Bot control {method} {path} returned {response.status_code}: {message}")
            status = 404 if response.status_code == 404 else 502
            raise BotControlError(message or f"Bot returned HTTP {response.status_code}", status)
        return data if isinstance(data, dict) else {"data": data}

    async def bot_info(self) -> dict[str, Any]:
        return await self._request("GET", "/bot-info")

    async def guild_ids(self) -> set[str]:
        data = await self._request("GET", "/guilds")
        return {str(g["id"]) for g in data.get("guilds", [])}

    async def guild_info(self, guild_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/guild/{guild_id}")

    async def leave_guild(self, guild_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/guild/{guild_id}/leave")

    async def reload_twitch(self) -> dict[str, Any]:
        return await self._request("POST", "/reload-twitch")

    async def reload_tracking(self) -> dict[str, Any]:
        return await self._request("POST", "/reload-tracking")

    async def check_twitch(self) -> dict[str, Any]:
        return await self._request("POST", "/check-twitch")
