"""
Key/value stores holding the serialized collections that survive restarts.

Keys are versioned: a schema change gets a new key name, and the old key is
simply never read again.
"""

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from modinfo_plus.exceptions import StoreError

log = logging.getLogger(__name__)

WATCHLIST_KEY = "modinfo_watchlist_v2"
NOTIFICATIONS_KEY = "modinfo_notifications_v3"
DISCOVER_CACHE_KEY = "modinfo_discover_cache_v1"
DISCOVER_TIME_KEY = "modinfo_discover_time_v1"
LAST_REFRESH_KEY = "modinfo_last_refresh_v1"


class PersistentStore(Protocol):
    """Durable storage of opaque strings keyed by name."""

    def get(self, key: str, default: str = "") -> str: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def flush(self) -> None: ...


class MemoryStore:
    """A non-durable store, used in tests and when no data directory is available."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str, default: str = "") -> str:
        return self._data.get(key, default)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def flush(self) -> None:
        pass

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStore:
    """
    A single JSON file mapping keys to string values.

    Every write rewrites the whole file through a temporary sibling so a crash
    never leaves a half-written store behind. If the file cannot be written the
    store keeps serving values from memory and reports itself as degraded.
    """

    def __init__(self, file_path: Path):
        self.file_path = file_path
        self.degraded = False
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.file_path.is_file():
            log.debug(f"No store at '{self.file_path}', starting empty.")
            return {}

        try:
            with open(self.file_path, encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.error(f"[red]Store file '{self.file_path}' is corrupt: {e}[/red]")
            self._quarantine()
            return {}
        except OSError as e:
            log.error(f"[red]Could not read store file '{self.file_path}': {e}[/red]")
            self.degraded = True
            return {}

        if not isinstance(raw, dict):
            log.error(
                f"[red]Store file '{self.file_path}' has unexpected layout, "
                "starting empty.[/red]"
            )
            self._quarantine()
            return {}

        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _quarantine(self) -> None:
        """Moves an unreadable store aside so the next write starts clean."""
        backup_path = self.file_path.with_suffix(self.file_path.suffix + ".corrupt")
        try:
            os.replace(self.file_path, backup_path)
            log.info(f"[dim]Corrupt store moved to '{backup_path.name}'[/dim]")
        except OSError as e:
            log.warning(f"Could not move corrupt store aside: {e}")

    def _write(self) -> None:
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            self.degraded = True
            raise StoreError(f"Failed to write store '{self.file_path}': {e}") from e

        if self.degraded:
            log.info("[green]✓ Store is writable again.[/green]")
            self.degraded = False

    def get(self, key: str, default: str = "") -> str:
        return self._data.get(key, default)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()

    def flush(self) -> None:
        self._write()
