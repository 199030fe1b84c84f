"""
Schema-driven (de)serialization of the persisted collections.

Each collection is encoded as JSON by a pydantic TypeAdapter. Decoding never
raises: a missing, unreadable or schema-incompatible value comes back as an
empty collection and a log line.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from modinfo_plus.exceptions import StoreError
from modinfo_plus.models.mods import ModItem, Notification, WatchEntry

from .store import PersistentStore

log = logging.getLogger(__name__)

MOD_ITEMS = TypeAdapter(list[ModItem])
WATCH_ENTRIES = TypeAdapter(list[WatchEntry])
NOTIFICATIONS = TypeAdapter(list[Notification])


def load_collection(
    store: PersistentStore, key: str, adapter: TypeAdapter
) -> list[Any]:
    """Reads and validates a collection, falling back to an empty list."""
    try:
        raw = store.get(key, "")
    except StoreError as e:
        log.error(f"[red]Could not read '{key}' from store: {e}[/red]")
        return []

    if not raw or not raw.strip():
        return []

    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        log.warning(
            f"[yellow]Discarding stored '{key}': it does not match the current "
            f"schema ({e.error_count()} errors).[/yellow]"
        )
        return []


def save_collection(
    store: PersistentStore, key: str, adapter: TypeAdapter, values: list[Any]
) -> bool:
    """Serializes and stores a whole collection. Returns False if the write failed."""
    try:
        store.put(key, adapter.dump_json(values).decode("utf-8"))
        return True
    except StoreError as e:
        log.error(f"[red]Could not persist '{key}', keeping it in memory: {e}[/red]")
        return False


def load_timestamp(store: PersistentStore, key: str) -> float:
    """Reads a stored timestamp; anything unparsable reads as 0."""
    try:
        raw = store.get(key, "0")
    except StoreError as e:
        log.error(f"[red]Could not read '{key}' from store: {e}[/red]")
        return 0.0

    try:
        return float(raw or 0)
    except ValueError:
        log.warning(f"[yellow]Ignoring invalid stored timestamp for '{key}'[/yellow]")
        return 0.0


def save_timestamp(store: PersistentStore, key: str, value: float) -> bool:
    try:
        store.put(key, repr(float(value)))
        return True
    except StoreError as e:
        log.error(f"[red]Could not persist '{key}': {e}[/red]")
        return False


def delete_key(store: PersistentStore, key: str) -> bool:
    try:
        store.delete(key)
        return True
    except StoreError as e:
        log.error(f"[red]Could not delete '{key}' from store: {e}[/red]")
        return False
