"""Text helpers shared by the cogs"""

from __future__ import annotations

import math


def format_uptime(seconds: float) -> str:
    """``3d 4h 5m``, ``4h 5m`` or ``5m``"""
    seconds = max(int(seconds), 0)
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_remaining(seconds: float) -> str:
    """Days and hours left, rounded up: ``12d 5h``"""
    seconds = max(seconds, 0)
    days = int(seconds // 86400)
    hours = math.ceil((seconds % 86400) / 3600)
    if hours == 24:
        days, hours = days + 1, 0
    return f"{days}d {hours}h"


def days_until(seconds: float) -> int:
    return math.ceil(max(seconds, 0) / 86400)


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
