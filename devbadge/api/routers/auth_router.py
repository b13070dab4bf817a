"""Discord OAuth2 login routes"""

import logging
import secrets

from fastapi import APIRouter, Cookie, Depends
from fastapi.responses import RedirectResponse

from devbadge.api.core.config import Settings, get_settings
from devbadge.api.core.dependencies import get_auth_service, get_discord_api
from devbadge.api.services import AuthService, DiscordAPIClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

STATE_COOKIE = "oauth_state"
AUTH_COOKIE = "auth_token"


@router.get("/discord")
async def discord_login(
    discord_api: DiscordAPIClient = Depends(get_discord_api),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Redirect to Discord's consent screen"""
    if not discord_api.is_configured:
        logger.error("Discord OAuth is not configured (CLIENT_ID / CLIENT_SECRET)")
        return RedirectResponse(url="/?error=oauth_not_configured", status_code=302)

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(url=discord_api.generate_oauth_url(state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=600,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return response


@router.get("/callback")
async def discord_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth_state: str | None = Cookie(None),
    discord_api: DiscordAPIClient = Depends(get_discord_api),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Exchange the code, set the auth cookie and open the dashboard"""
    if error:
        logger.warning(f"Discord OAuth error: {error}")
        return _fail("access_denied")
    if not code:
        return _fail("missing_code")
    if not state or not oauth_state or not secrets.compare_digest(state, oauth_state):
        logger.warning("OAuth state mismatch")
        return _fail("invalid_state")

    access_token, error_code = await discord_api.exchange_code(code)
    if not access_token:
        return _fail(error_code or "exchange_failed")

    user = await discord_api.get_current_user(access_token)
    if not user or not user.get("id"):
        return _fail("user_fetch_failed")

    token = auth_service.create_access_token(user, access_token)
    logger.info(f"Dashboard login: {user.get('username')} ({user['id']})")

    response = RedirectResponse(url="/dashboard", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    response.set_cookie(
        AUTH_COOKIE,
        token,
        max_age=settings.jwt_expire_hours * 3600,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return response


@router.get("/logout")
async def logout() -> RedirectResponse:
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(AUTH_COOKIE)
    return response


def _fail(reason: str) -> RedirectResponse:
    response = RedirectResponse(url=f"/?error={reason}", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    return response
