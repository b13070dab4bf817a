"""Discord Bot configuration"""

import logging
import os

import discord
from dotenv import load_dotenv

from devbadge.shared.storage import default_data_dir

# .env must be loaded before the class attributes below are evaluated
load_dotenv(encoding="utf-8")

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class BotConfig:
    TOKEN: str = os.getenv("DISCORD_TOKEN", "")
    CLIENT_ID: str = os.getenv("CLIENT_ID", "")
    GUILD_ID: str = os.getenv("GUILD_ID", "").strip()
    REGISTER_GLOBAL_WHEN_GUILD: bool = _env_bool("REGISTER_GLOBAL_WHEN_GUILD", "false")
    COMMAND_PREFIX: str = os.getenv("COMMAND_PREFIX", "!")

    DATA_DIR = default_data_dir()

    # Active Developer badge upkeep
    ENABLE_AUTO_EXECUTION: bool = os.getenv("ENABLE_AUTO_EXECUTION", "true").lower() != "false"
    AUTO_EXECUTE_INTERVAL_DAYS: int = int(os.getenv("AUTO_EXECUTE_INTERVAL_DAYS", "30"))
    AUTO_EXECUTE_FIRST_DELAY: float = float(os.getenv("AUTO_EXECUTE_FIRST_DELAY", "60"))
    AUTO_EXECUTE_CHECK_INTERVAL: float = float(os.getenv("AUTO_EXECUTE_CHECK_INTERVAL", "86400"))

    PRESENCE_ROTATION_INTERVAL: float = float(os.getenv("PRESENCE_ROTATION_INTERVAL", "30"))
    STATUS: str = os.getenv("DISCORD_STATUS", "")
    ACTIVITY_TYPE: str = os.getenv("DISCORD_ACTIVITY_TYPE", "")
    ACTIVITY_NAME: str = os.getenv("DISCORD_ACTIVITY_NAME", "")
    ACTIVITY_URL: str = os.getenv("DISCORD_ACTIVITY_URL", "")

    TWITCH_CLIENT_ID: str = os.getenv("TWITCH_CLIENT_ID", "")
    TWITCH_CLIENT_SECRET: str = os.getenv("TWITCH_CLIENT_SECRET", "")
    TWITCH_ACCESS_TOKEN: str = os.getenv("TWITCH_ACCESS_TOKEN", "")
    TWITCH_CHECK_INTERVAL: float = float(os.getenv("TWITCH_CHECK_INTERVAL", "300"))

    OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openrouter/free")
    OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

    CONTROL_SECRET: str = os.getenv("CONTROL_SECRET", "")
    CONTROL_HOST: str = os.getenv("CONTROL_HOST", "0.0.0.0")
    CONTROL_PORT: int = int(os.getenv("CONTROL_PORT") or os.getenv("PORT") or "8080")

    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")
    RATE_LIMIT_WARNING_THRESHOLD: float = float(os.getenv("RATE_LIMIT_WARNING_THRESHOLD", "0.7"))
    RATE_LIMIT_CRITICAL_THRESHOLD: float = float(os.getenv("RATE_LIMIT_CRITICAL_THRESHOLD", "0.9"))

    @classmethod
    def get_status(cls) -> discord.Status:
        status_map = {
            "online": discord.Status.online,
            "idle": discord.Status.idle,
            "dnd": discord.Status.dnd,
            "invisible": discord.Status.invisible,
        }
        return status_map.get(cls.STATUS.lower(), discord.Status.online)

    @classmethod
    def get_activity(cls) -> discord.Activity | discord.Streaming | None:
        """Static activity from DISCORD_ACTIVITY_*; None means "rotate presence".

        Supports: playing, listening, watching, competing, streaming
        """
        if not cls.ACTIVITY_NAME:
            return None

        activity_type = cls.ACTIVITY_TYPE.lower()

        if activity_type == "streaming":
            if cls.ACTIVITY_URL.startswith("https://twitch.tv/"):
                return discord.Streaming(name=cls.ACTIVITY_NAME, url=cls.ACTIVITY_URL)
            logger.warning(
                f"Streaming activity needs a https://twitch.tv/ URL in DISCORD_ACTIVITY_URL "
                f"(got {cls.ACTIVITY_URL!r}). Falling back to 'playing'."
            )
            return discord.Activity(type=discord.ActivityType.playing, name=cls.ACTIVITY_NAME)

        activity_map = {
            "playing": discord.ActivityType.playing,
            "listening": discord.ActivityType.listening,
            "watching": discord.ActivityType.watching,
            "competing": discord.ActivityType.competing,
        }
        return discord.Activity(
            type=activity_map.get(activity_type, discord.ActivityType.playing),
            name=cls.ACTIVITY_NAME,
        )
