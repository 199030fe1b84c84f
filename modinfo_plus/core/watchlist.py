"""
The user's watchlist: a set of mods keyed by owner/repository, kept in insertion order.
"""

import logging
import time
from collections.abc import Callable, Iterator

from modinfo_plus.models.mods import ModItem, ModStats, WatchEntry
from modinfo_plus.storage import codecs
from modinfo_plus.storage.store import WATCHLIST_KEY, PersistentStore

log = logging.getLogger(__name__)


class WatchlistManager:
    """Watched mods, persisted in full after every change."""

    def __init__(
        self, store: PersistentStore, clock: Callable[[], float] = time.time
    ):
        self.store = store
        self._clock = clock
        self._entries: dict[str, WatchEntry] = {}

    def load(self) -> None:
        entries = codecs.load_collection(self.store, WATCHLIST_KEY, codecs.WATCH_ENTRIES)
        # A hand-edited store may repeat a mod; the first occurrence wins
        self._entries = {}
        for entry in entries:
            self._entries.setdefault(entry.key, entry)
        log.debug(f"Loaded {len(self._entries)} watched mods.")

    def save(self) -> bool:
        return codecs.save_collection(
            self.store, WATCHLIST_KEY, codecs.WATCH_ENTRIES, list(self._entries.values())
        )

    def is_watched(self, item: ModItem) -> bool:
        return item.key in self._entries

    def toggle(self, item: ModItem, baseline: ModStats | None = None) -> bool:
        """
        Removes the mod if it is watched, otherwise adds it.

        Args:
            item: The mod to add or remove.
            baseline: Stats already known for the mod, kept on a new entry.

        Returns:
            True if the mod is watched after the call.
        """
        if self._entries.pop(item.key, None) is not None:
            log.info(f"Removed {item.key} from watchlist.")
            watched = False
        else:
            self._entries[item.key] = WatchEntry(
                item=item.model_copy(deep=True),
                added_time=self._clock(),
                baseline=baseline if baseline and not baseline.error else None,
            )
            log.info(f"Added {item.key} to watchlist.")
            watched = True

        self.save()
        return watched

    def get(self, key: str) -> WatchEntry | None:
        return self._entries.get(key)

    def baseline(self, item: ModItem) -> ModStats | None:
        entry = self._entries.get(item.key)
        return entry.baseline if entry else None

    def record_baseline(self, item: ModItem, stats: ModStats) -> bool:
        """
        Stores the latest good stats of a watched mod.

        Returns:
            True if the entry changed and was saved.
        """
        entry = self._entries.get(item.key)
        if entry is None or stats.error or entry.baseline == stats:
            return False
        entry.baseline = stats.model_copy()
        return self.save()

    def entries(self) -> list[WatchEntry]:
        return list(self._entries.values())

    def items(self) -> list[ModItem]:
        return [entry.item for entry in self._entries.values()]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, ModItem) and item.key in self._entries

    def __iter__(self) -> Iterator[WatchEntry]:
        return iter(list(self._entries.values()))
