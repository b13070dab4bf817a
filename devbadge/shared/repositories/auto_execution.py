"""Repository for auto-execution.json (process-wide upkeep schedule)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from devbadge.shared.models.auto_execution import ExecutionState
from devbadge.shared.storage import JsonFileStore

logger = logging.getLogger(__name__)

FILENAME = "auto-execution.json"


class AutoExecutionRepository:
    def __init__(self, store: JsonFileStore) -> None:
        self.store = store

    def load(self, now: datetime | None = None) -> ExecutionState | None:
        """Stored state, or None when nothing has been persisted yet.

        A corrupt file is logged and treated as missing.
        """
        try:
            data = self.store.read_global(FILENAME)
        except OSError as e:
            logger.error(f"Failed to read auto-execution state: {e}")
            return None
        if not data:
            return None
        try:
            return ExecutionState.from_dict(data, now=now or datetime.now(UTC))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Ignoring malformed auto-execution state: {e}")
            return None

    def save(self, state: ExecutionState) -> None:
        self.store.write_global(FILENAME, state.to_dict())
