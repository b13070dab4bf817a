"""JSON file storage shared by the bot and the dashboard.

Layout::

    <data_dir>/servers/<guild_id>/<feature>-config.json   per-guild records
    <data_dir>/<name>.json                                 process-wide records

Writes go through a temp file + rename so a reader never sees half a file.
No locking: the last writer wins.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from devbadge.shared.validation import ConfigValidationError

logger = logging.getLogger(__name__)

_GUILD_ID_RE = re.compile(r"^\d{1,25}$")


def default_data_dir() -> Path:
    """Resolve the data directory (Railway volume if mounted)"""
    configured = os.getenv("DATA_DIR") or os.getenv("RAILWAY_VOLUME_MOUNT_PATH")
    if configured:
        return Path(configured)
    return Path.cwd() / "data"


def validate_guild_id(guild_id: str | int) -> str:
    """Return the guild id as a string, rejecting anything that is not a snowflake"""
    value = str(guild_id).strip()
    if not _GUILD_ID_RE.match(value):
        raise ConfigValidationError(f"Invalid guild id: {guild_id!r}")
    return value


class JsonFileStore:
    """Reads and writes the JSON records under a data directory"""

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.data_dir = Path(data_dir) if data_dir else default_data_dir()
        self.servers_dir = self.data_dir / "servers"

    def guild_path(self, guild_id: str | int, filename: str) -> Path:
        return self.servers_dir / validate_guild_id(guild_id) / filename

    def global_path(self, filename: str) -> Path:
        return self.data_dir / filename

    # ---- per-guild records ----

    def read_guild(self, guild_id: str | int, filename: str) -> dict[str, Any] | None:
        return self._read(self.guild_path(guild_id, filename))

    def write_guild(self, guild_id: str | int, filename: str, data: dict[str, Any]) -> None:
        self._write(self.guild_path(guild_id, filename), data)

    def list_guilds(self, filename: str) -> list[str]:
        """Guild ids that have a record named *filename*"""
        if not self.servers_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.servers_dir.iterdir()
            if entry.is_dir() and _GUILD_ID_RE.match(entry.name) and (entry / filename).exists()
        )

    # ---- process-wide records ----

    def read_global(self, filename: str) -> Any:
        return self._read(self.global_path(filename))

    def write_global(self, filename: str, data: Any) -> None:
        self._write(self.global_path(filename), data)

    # ---- internals ----

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise OSError(f"Failed to read JSON from {path}: {e}") from e

    def _write(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {path}")
