"""JWT authentication service"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

logger = logging.getLogger(__name__)


class AuthService:
    """Handle JWT token creation and validation.

    The token carries the Discord user profile and the OAuth access token so
    the dashboard can list the user's guilds without a server-side session.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_hours: int = 24):
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_hours = expire_hours

    def create_access_token(self, user: dict[str, Any], discord_access_token: str) -> str:
        """Create a JWT for a Discord user"""
        now = datetime.now(UTC)
        payload = {
            "sub": str(user["id"]),
            "username": user.get("username", ""),
            "global_name": user.get("global_name"),
            "discriminator": user.get("discriminator", "0"),
            "avatar": user.get("avatar"),
            "dat": discord_access_token,
            "exp": now + timedelta(hours=self.expire_hours),
            "iat": now,
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"JWT created for Discord user: {payload['sub']}")
        return token

    def verify_token(self, token: str) -> dict | None:
        """Verify a JWT token and return the payload if valid"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if payload.get("sub") is None or not payload.get("dat"):
            logger.warning("Token missing sub or Discord access token")
            return None
        return payload
