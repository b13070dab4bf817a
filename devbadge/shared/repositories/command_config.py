"""Repository for disabled-commands.json.

Holds the top-level command names the dispatcher must refuse. The list is
shared by the bot (which enforces it) and the dashboard (which edits it), so
reads always go to disk.
"""

from __future__ import annotations

import logging

from devbadge.shared.storage import JsonFileStore

logger = logging.getLogger(__name__)

FILENAME = "disabled-commands.json"


class CommandConfigRepository:
    def __init__(self, store: JsonFileStore) -> None:
        self.store = store

    def disabled_commands(self) -> set[str]:
        try:
            data = self.store.read_global(FILENAME)
        except OSError as e:
            logger.error(f"Failed to read disabled commands: {e}")
            return set()
        if not isinstance(data, list):
            return set()
        return {str(name).lower() for name in data if name}

    def is_disabled(self, name: str) -> bool:
        return name.lower() in self.disabled_commands()

    def set_enabled(self, name: str, enabled: bool) -> set[str]:
        """Enable or disable a command by name. Returns the new disabled set."""
        disabled = self.disabled_commands()
        key = name.strip().lower()
        if enabled:
            disabled.discard(key)
        else:
            disabled.add(key)
        self.store.write_global(FILENAME, sorted(disabled))
        logger.info(f"Command '{key}' {'enabled' if enabled else 'disabled'}")
        return disabled
