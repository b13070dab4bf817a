"""Outbound message throttle for bulk sends.

Tracking logs, translations and live notifications all fan out from gateway
events, so a busy guild can burst far past Discord's limits. Every such send
goes through :meth:`RateLimitMonitor.safe_send_message`, which counts sends
per channel and overall and drops a message instead of queueing it when the
recent rate is critical.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from typing import Any

import discord

from devbadge.bot.config import BotConfig

logger = logging.getLogger("discord_bot.rate_limiter")

# Discord: 50 requests/s per bot, 5 messages per 5 s per channel
GLOBAL_LIMIT = (50, 1.0)
CHANNEL_LIMIT = (5, 5.0)
REPORT_INTERVAL = 300.0


class SlidingWindow:
    """Timestamps of recent events, oldest first"""

    def __init__(self, span: float, maxlen: int = 1000) -> None:
        self.span = span
        self._events: deque[float] = deque(maxlen=maxlen)

    def add(self, now: float) -> None:
        self._events.append(now)

    def count(self, now: float) -> int:
        while self._events and self._events[0] <= now - self.span:
            self._events.popleft()
        return len(self._events)


class RateLimitMonitor:
    def __init__(
        self,
        client: discord.Client,
        *,
        enabled: bool = BotConfig.RATE_LIMIT_ENABLED,
        warning_threshold: float = BotConfig.RATE_LIMIT_WARNING_THRESHOLD,
        critical_threshold: float = BotConfig.RATE_LIMIT_CRITICAL_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.enabled = enabled
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold
        self.clock = clock

        self.sent = 0
        self.dropped = 0
        self.rate_limited = 0
        self._global = SlidingWindow(GLOBAL_LIMIT[1])
        self._channels: dict[int, SlidingWindow] = {}
        self._last_warning = 0.0
        self._report_task: asyncio.Task | None = None

    async def start_monitoring(self) -> None:
        if not self.enabled or self._report_task is not None:
            return
        self._report_task = asyncio.create_task(self._report_loop(), name="rate-limit-report")
        logger.info(
            f"Rate limit monitor started (warn at {self.warning_threshold:.0%}, "
            f"drop at {self.critical_threshold:.0%})"
        )

    async def stop_monitoring(self) -> None:
        if self._report_task is not None:
            self._report_task.cancel()
            self._report_task = None
            logger.info("Rate limit monitor stopped")

    def _channel_window(self, channel_id: int) -> SlidingWindow:
        window = self._channels.get(channel_id)
        if window is None:
            window = self._channels[channel_id] = SlidingWindow(CHANNEL_LIMIT[1], maxlen=CHANNEL_LIMIT[0] * 4)
        return window

    def usage(self, channel_id: int | None = None) -> float:
        """Highest fraction of a limit used right now (global or this channel)"""
        now = self.clock()
        usage = self._global.count(now) / GLOBAL_LIMIT[0]
        if channel_id is not None:
            usage = max(usage, self._channel_window(channel_id).count(now) / CHANNEL_LIMIT[0])
        return usage

    def allow(self, channel_id: int | None = None) -> bool:
        if not self.enabled:
            return True
        usage = self.usage(channel_id)
        if usage >= self.critical_threshold:
            return False
        if usage >= self.warning_threshold and self.clock() - self._last_warning >= 60:
            self._last_warning = self.clock()
            logger.warning(f"Outbound message rate at {usage:.0%} of the limit")
        return True

    def record(self, channel_id: int | None = None) -> None:
        now = self.clock()
        self.sent += 1
        self._global.add(now)
        if channel_id is not None:
            self._channel_window(channel_id).add(now)

    async def safe_send_message(self, channel: Any, *args: Any, **kwargs: Any) -> discord.Message | None:
        """``channel.send`` unless the rate is critical. Returns None when the message was dropped."""
        channel_id = getattr(channel, "id", None)
        if not self.allow(channel_id):
            self.dropped += 1
            logger.error(f"Dropped message to channel {channel_id}: outbound rate is critical")
            return None

        self.record(channel_id)
        try:
            return await channel.send(*args, **kwargs)
        except discord.HTTPException as e:
            if e.status == 429:
                self.rate_limited += 1
                logger.error(f"Rate limited sending to channel {channel_id}: {e}")
            raise

    async def _report_loop(self) -> None:
        while True:
            await asyncio.sleep(REPORT_INTERVAL)
            if self.sent or self.dropped or self.rate_limited:
                logger.info(
                    f"Outbound messages (last {REPORT_INTERVAL / 60:.0f} min): sent={self.sent}, "
                    f"dropped={self.dropped}, rate_limited={self.rate_limited}"
                )
            self.sent = self.dropped = self.rate_limited = 0
            self._channels = {cid: w for cid, w in self._channels.items() if w.count(self.clock())}
