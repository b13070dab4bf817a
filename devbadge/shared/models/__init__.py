"""Shared data models for the bot and the dashboard."""

from .auto_execution import ExecutionState
from .tracking_config import TRACKING_EVENTS, TrackingConfig
from .translation_config import DISPLAY_MODES, TranslationConfig
from .translation_stats import TranslationStats
from .twitch_config import TwitchConfig

__all__ = [
    "DISPLAY_MODES",
    "TRACKING_EVENTS",
    "ExecutionState",
    "TrackingConfig",
    "TranslationConfig",
    "TranslationStats",
    "TwitchConfig",
]
