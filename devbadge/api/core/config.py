"""Dashboard configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devbadge.shared.storage import default_data_dir

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Dashboard settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Discord OAuth (same application as the bot)
    client_id: str = Field(default="", description="Discord application client ID")
    client_secret: str = Field(default="", description="Discord OAuth client secret")
    dashboard_callback_url: str = Field(
        default="http://localhost:3000/auth/callback", description="OAuth2 redirect URL"
    )

    # JWT session cookie
    jwt_secret_key: str = Field(
        ...,
        validation_alias=AliasChoices("JWT_SECRET_KEY", "SESSION_SECRET"),
        description="Secret key for JWT token signing",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expire_hours: int = Field(default=24, description="JWT token expiration in hours")
    secure_cookies: bool = Field(default=False, description="Mark auth cookies Secure (HTTPS only)")

    # Bot control API
    bot_control_url: str = Field(default="http://localhost:8080", description="Bot control server URL")
    control_secret: str = Field(default="", description="Shared secret for the bot control API")
    discord_token: str = Field(default="", description="Bot token, used to manage application commands")

    dashboard_admin_ids: str = Field(default="", description="Comma separated Discord user IDs")

    # Login screen
    bot_name: str = Field(default="aB0T Dashboard")
    bot_avatar_url: str = Field(
        default="https://cdn.jsdelivr.net/gh/twitter/twemoji@14.0.2/assets/72x72/1f916.png"
    )

    data_dir: str = Field(
        default="",
        validation_alias=AliasChoices("DATA_DIR", "RAILWAY_VOLUME_MOUNT_PATH"),
        description="Directory holding servers/<guild>/*.json",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(
        default=3000, validation_alias=AliasChoices("DASHBOARD_PORT", "PORT"), description="Server port"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("bot_control_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def admin_ids(self) -> frozenset[str]:
        return frozenset(part.strip() for part in self.dashboard_admin_ids.split(",") if part.strip())

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir) if self.data_dir else default_data_dir()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
