"""Data model for auto-execution.json (badge upkeep schedule)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

DEFAULT_INTERVAL_DAYS = 30


@dataclass
class ExecutionState:
    """When the upkeep action last ran and how often it should run.

    ``last_execution`` is None until the action has succeeded once; such a
    state is always due. Invariant: ``last_execution <= now``.
    """

    last_execution: datetime | None = None
    interval_days: int = DEFAULT_INTERVAL_DAYS
    enabled: bool = True

    @property
    def interval(self) -> timedelta:
        return timedelta(days=self.interval_days)

    @property
    def next_execution(self) -> datetime | None:
        if self.last_execution is None:
            return None
        return self.last_execution + self.interval

    def elapsed(self, now: datetime) -> timedelta | None:
        if self.last_execution is None:
            return None
        return now - self.last_execution

    def remaining(self, now: datetime) -> timedelta:
        if self.next_execution is None:
            return timedelta(0)
        return max(self.next_execution - now, timedelta(0))

    def is_due(self, now: datetime) -> bool:
        elapsed = self.elapsed(now)
        return elapsed is None or elapsed >= self.interval

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastExecutionTimestamp": self.last_execution.isoformat() if self.last_execution else None,
            "intervalDays": self.interval_days,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], now: datetime | None = None) -> ExecutionState:
        now = now or datetime.now(UTC)
        raw = data.get("lastExecutionTimestamp")
        last: datetime | None = None
        if raw:
            last = datetime.fromisoformat(raw)
            if last.tzinfo is None:
                last = last.replace(tzinfo=UTC)
            # A timestamp from the future (clock skew) is clamped to now
            last = min(last, now)
        return cls(
            last_execution=last,
            interval_days=int(data.get("intervalDays", DEFAULT_INTERVAL_DAYS)),
            enabled=bool(data.get("enabled", True)),
        )
