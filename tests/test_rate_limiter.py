from __future__ import annotations

import asyncio

from devbadge.bot.core.rate_limiter import RateLimitMonitor, SlidingWindow


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _Channel:
    def __init__(self, channel_id: int) -> None:
        self.id = channel_id
        self.sent: list[str] = []

    async def send(self, content: str) -> str:
        self.sent.append(content)
        return content


def _make_monitor(clock: _Clock, enabled: bool = True) -> RateLimitMonitor:
    return RateLimitMonitor(
        None,  # type: ignore[arg-type]
        enabled=enabled,
        warning_threshold=0.7,
        critical_threshold=0.9,
        clock=clock,
    )


def test_sliding_window_expires_old_events() -> None:
    window = SlidingWindow(5.0)
    window.add(0.0)
    window.add(3.0)
    assert window.count(4.0) == 2
    assert window.count(5.0) == 1
    assert window.count(9.0) == 0


def test_channel_burst_is_dropped_then_recovers() -> None:
    clock = _Clock()
    monitor = _make_monitor(clock)
    channel = _Channel(1)

    async def burst() -> list[str | None]:
        return [await monitor.safe_send_message(channel, f"log {i}") for i in range(7)]

    results = asyncio.run(burst())
    assert results[:5] == ["log 0", "log 1", "log 2", "log 3", "log 4"]
    assert results[5:] == [None, None]
    assert monitor.dropped == 2

    clock.now += 5.0
    assert asyncio.run(monitor.safe_send_message(channel, "later")) == "later"


def test_other_channels_are_not_throttled() -> None:
    clock = _Clock()
    monitor = _make_monitor(clock)

    async def scenario() -> str | None:
        for i in range(5):
            await monitor.safe_send_message(_Channel(1), f"log {i}")
        return await monitor.safe_send_message(_Channel(2), "elsewhere")

    assert asyncio.run(scenario()) == "elsewhere"


def test_disabled_monitor_never_drops() -> None:
    clock = _Clock()
    monitor = _make_monitor(clock, enabled=False)
    channel = _Channel(1)

    async def burst() -> None:
        for i in range(10):
            await monitor.safe_send_message(channel, f"log {i}")

    asyncio.run(burst())
    assert len(channel.sent) == 10
