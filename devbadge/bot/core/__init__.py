"""Bot building blocks that do not depend on a running gateway connection."""

from .commands import CommandContext, CommandRegistry, CommandReply
from .scheduler import LongIntervalScheduler, SchedulerState

__all__ = [
    "CommandContext",
    "CommandRegistry",
    "CommandReply",
    "LongIntervalScheduler",
    "SchedulerState",
]
