"""Dashboard services"""

from .auth_service import AuthService
from .bot_control import BotControlClient, BotControlError
from .discord_api import DiscordAPIClient, DiscordAPIError

__all__ = [
    "AuthService",
    "BotControlClient",
    "BotControlError",
    "DiscordAPIClient",
    "DiscordAPIError",
]
