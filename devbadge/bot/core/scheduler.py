"""Long-interval scheduler for the Active Developer badge upkeep.

A month-long sleep is neither observable nor restart-safe, so the scheduler
wakes up on a short period instead (``poll_interval``, one day by default)
and fires the action only when ``interval_days`` have elapsed since the last
successful run. The last run is persisted, so a restart neither loses nor
repeats a cycle.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from devbadge.shared.models.auto_execution import DEFAULT_INTERVAL_DAYS, ExecutionState
from devbadge.shared.repositories.auto_execution import AutoExecutionRepository

logger = logging.getLogger("discord_bot.scheduler")

UpkeepAction = Callable[[], Awaitable[bool]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    POLLING = "polling"


class LongIntervalScheduler:
    """Runs *action* once every *interval_days*, checked every *poll_interval* seconds.

    The action returns True when it actually did its job; only then is the
    run recorded. Failures are logged and retried on the next poll.
    """

    def __init__(
        self,
        action: UpkeepAction,
        repository: AutoExecutionRepository,
        *,
        interval_days: int = DEFAULT_INTERVAL_DAYS,
        first_delay: float = 60.0,
        poll_interval: float = 86400.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.action = action
        self.repository = repository
        self.first_delay = first_delay
        self.poll_interval = poll_interval
        self.clock = clock
        self.state = SchedulerState.IDLE
        self._task: asyncio.Task | None = None

        stored = repository.load(now=clock())
        self.execution = stored or ExecutionState()
        self.execution.interval_days = interval_days

    @property
    def enabled(self) -> bool:
        return self.execution.enabled

    @property
    def last_execution(self) -> datetime | None:
        return self.execution.last_execution

    def next_execution(self) -> datetime | None:
        return self.execution.next_execution

    def remaining(self, now: datetime | None = None) -> float:
        """Seconds until the next run is due (0 when overdue or never run)"""
        return self.execution.remaining(now or self.clock()).total_seconds()

    def arm(self) -> asyncio.Task:
        """Idle -> Polling. Calling it again returns the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="auto-execution")
            self.state = SchedulerState.POLLING
            logger.info(
                f"Auto-execution armed: every {self.execution.interval_days} days, "
                f"first check in {self.first_delay:.0f}s, then every {self.poll_interval:.0f}s"
            )
            if self.execution.next_execution:
                logger.info(f"Next scheduled execution: {self.execution.next_execution:%Y-%m-%d %H:%M} UTC")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop. Only used at process shutdown."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.state = SchedulerState.IDLE

    async def _run(self) -> None:
        await asyncio.sleep(self.first_delay)
        await self.poll()
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll()

    async def poll(self, now: datetime | None = None) -> bool:
        """One reconciliation step. Returns True if the action fired."""
        now = now or self.clock()

        if not self.execution.enabled:
            logger.info("Auto-execution disabled; skipping check")
            return False

        if not self.execution.is_due(now):
            remaining = self.execution.remaining(now)
            days = remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)
            logger.info(f"{days} day(s) remaining until next auto-execution")
            return False

        logger.info("Auto-execution time reached, running upkeep")
        try:
            succeeded = await self.action()
        except Exception as e:
            logger.exception(f"Error during auto-execution: {e}")
            succeeded = False

        if not succeeded:
            logger.warning("Auto-execution skipped this cycle; retrying on next check")
            return False

        self.execution.last_execution = now
        self._persist()
        logger.info(f"Auto-execution completed. Next execution: {self.execution.next_execution:%Y-%m-%d %H:%M} UTC")
        return True

    def set_enabled(self, enabled: bool) -> None:
        """Flip the persisted flag. The loop keeps running either way."""
        self.execution.enabled = enabled
        self._persist()
        logger.info(f"Auto-execution {'enabled' if enabled else 'disabled'}")

    def _persist(self) -> None:
        try:
            self.repository.save(self.execution)
        except OSError as e:
            logger.error(f"Failed to persist auto-execution state: {e}")
