"""Twitch Helix client for live-stream lookups.

Uses an app access token (client credentials), fetched on demand and cached
until shortly before it expires. A static ``TWITCH_ACCESS_TOKEN`` can be
supplied instead when no client secret is available.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

logger = logging.getLogger("discord_bot.twitch_api")

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"

# Helix accepts at most 100 user_login params per request
MAX_LOGINS_PER_REQUEST = 100


@dataclass(frozen=True)
class StreamInfo:
    id: str
    user_login: str
    user_name: str
    title: str
    game_name: str
    viewer_count: int
    started_at: datetime | None
    thumbnail_url: str

    @classmethod
    def from_helix(cls, data: dict[str, Any]) -> StreamInfo:
        started = data.get("started_at")
        return cls(
            id=str(data.get("id", "")),
            user_login=str(data.get("user_login", "")).lower(),
            user_name=data.get("user_name") or data.get("user_login", ""),
            title=data.get("title") or "",
            game_name=data.get("game_name") or "",
            viewer_count=int(data.get("viewer_count") or 0),
            started_at=datetime.fromisoformat(started.replace("Z", "+00:00")) if started else None,
            thumbnail_url=data.get("thumbnail_url") or "",
        )

    def thumbnail(self, width: int = 640, height: int = 360) -> str:
        return self.thumbnail_url.replace("{width}", str(width)).replace("{height}", str(height))

    @property
    def url(self) -> str:
        return f"https://twitch.tv/{self.user_login}"


class TwitchAPIError(Exception):
    """Raised when Helix cannot be queried or answers with something unusable."""


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise TwitchAPIError(f"Twitch {what} returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise TwitchAPIError(f"Twitch {what} returned {type(data).__name__}, expected an object")
    return data


class TwitchAPIClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str = "",
        access_token: str = "",
        *,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        if not client_id or not (client_secret or access_token):
            raise ValueError("Twitch client_id and a client_secret or access token are required")

        self.client_id = client_id
        self.client_secret = client_secret
        self._static_token = access_token
        self._http = http or httpx.AsyncClient(timeout=10.0)

        self._app_token: str | None = None
        self._app_token_expires_at: float = 0.0
        self._app_token_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._http.aclose()

    def _headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    async def _ensure_token(self) -> str:
        if not self.client_secret:
            return self._static_token

        now = time.monotonic()
        if self._app_token and now < self._app_token_expires_at:
            return self._app_token

        async with self._app_token_lock:
            now = time.monotonic()
            if self._app_token and now < self._app_token_expires_at:
                return self._app_token

            try:
                response = await self._http.post(
                    f"{OAUTH_BASE}/token",
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "client_credentials",
                    },
                )
            except httpx.HTTPError as e:
                raise TwitchAPIError(f"Twitch token request failed: {e}") from e
            if response.status_code != 200:
                raise TwitchAPIError(f"Failed to get app token: HTTP {response.status_code}")

            data = _json_object(response, "token")
            self._app_token = data.get("access_token")
            if not self._app_token:
                raise TwitchAPIError("No access_token in token response")
            try:
                expires_in = int(data.get("expires_in", 0))
            except (TypeError, ValueError):
                expires_in = 0
            # Refresh 5 min early
            self._app_token_expires_at = now + max(expires_in - 300, 0)
            logger.debug("Fetched new Twitch app access token")
            return self._app_token

    def _invalidate_token(self) -> None:
        self._app_token = None
        self._app_token_expires_at = 0.0

    async def get_streams(self, logins: list[str]) -> dict[str, StreamInfo]:
        """Live streams for *logins*, keyed by lowercase login. Offline users are absent."""
        live: dict[str, StreamInfo] = {}
        unique = list(dict.fromkeys(login.lower() for login in logins if login))
        for start in range(0, len(unique), MAX_LOGINS_PER_REQUEST):
            batch = unique[start : start + MAX_LOGINS_PER_REQUEST]
            for item in await self._fetch_streams(batch):
                try:
                    stream = StreamInfo.from_helix(item)
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    raise TwitchAPIError(f"Malformed stream entry from Helix: {e}") from e
                live[stream.user_login] = stream
        return live

    async def get_user(self, login: str) -> dict[str, Any] | None:
        """Helix user object for *login*, or None when no such user exists"""
        data = await self._get("/users", [("login", login.lower())])
        return data[0] if data else None

    async def _fetch_streams(self, batch: list[str]) -> list[dict[str, Any]]:
        params = [("user_login", login) for login in batch] + [("first", str(MAX_LOGINS_PER_REQUEST))]
        return await self._get("/streams", params)

    async def _get(self, path: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        token = await self._ensure_token()
        try:
            response = await self._http.get(f"{HELIX_BASE}{path}", params=params, headers=self._headers(token))
            if response.status_code == 401 and self.client_secret:
                # App token revoked or expired early; fetch a new one once
                self._invalidate_token()
                token = await self._ensure_token()
                response = await self._http.get(f"{HELIX_BASE}{path}", params=params, headers=self._headers(token))
        except httpx.HTTPError as e:
            raise TwitchAPIError(f"Helix GET {path} failed: {e}") from e

        if response.status_code != 200:
            raise TwitchAPIError(f"Helix GET {path} returned HTTP {response.status_code}")
        data = _json_object(response, f"GET {path}").get("data") or []
        if not isinstance(data, list):
            raise TwitchAPIError(f"Helix GET {path} returned a non-list data field")
        return data
