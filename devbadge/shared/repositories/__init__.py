"""JSON-file repositories shared by the bot and the dashboard."""

from .auto_execution import AutoExecutionRepository
from .command_config import CommandConfigRepository
from .tracking_config import TrackingConfigRepository
from .translation_config import TranslationConfigRepository
from .translation_stats import TranslationStatsRepository
from .twitch_config import TwitchConfigRepository

__all__ = [
    "AutoExecutionRepository",
    "CommandConfigRepository",
    "TrackingConfigRepository",
    "TranslationConfigRepository",
    "TranslationStatsRepository",
    "TwitchConfigRepository",
]
