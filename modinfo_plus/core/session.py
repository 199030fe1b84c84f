"""
The session object that owns all plugin state for the lifetime of the host.

A host creates one ModInfoSession at startup, awaits ``start()``, calls into
it from its event loop, and awaits ``close()`` at shutdown. The session wires
the cache manager, watchlist and notification log together and is the only
place the refresh cooldown is applied.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from modinfo_plus.api.client import GitHubClient, RemoteClient
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import ModItem, ModStats
from modinfo_plus.storage import codecs
from modinfo_plus.storage.store import (
    LAST_REFRESH_KEY,
    JsonFileStore,
    MemoryStore,
    PersistentStore,
)
from modinfo_plus.utils.formatting import paginate, total_pages

from .cache_manager import CacheManager, RefreshDecision
from .change_detector import (
    ChangeDetector,
    CombinedChangeDetector,
    DiscoveryDiffDetector,
    NullChangeDetector,
    ReleaseChangeDetector,
)
from .notifications import NotificationLog
from .watchlist import WatchlistManager

log = logging.getLogger(__name__)

STORE_FILE_NAME = "store.json"


@dataclass
class DiscoveryPage:
    """One page of the (optionally filtered) discovery list."""

    items: list[ModItem] = field(default_factory=list)
    page: int = 0
    total_pages: int = 1
    total_items: int = 0
    from_cache: bool = False
    query: str = ""

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages - 1


def matches_query(item: ModItem, query: str) -> bool:
    """Case-insensitive match against name, owner and description."""
    query = query.strip().lower()
    if not query:
        return True
    haystack = f"{item.display_name} {item.owner} {item.description}".lower()
    return all(term in haystack for term in query.split())


class ModInfoSession:
    """
    Explicitly owned plugin state: caches, watchlist and notifications.

    All methods must run on the event loop that called ``start()``. Hosts
    living on another thread should submit coroutines with
    ``asyncio.run_coroutine_threadsafe``.
    """

    def __init__(
        self,
        config: PluginConfig,
        store: PersistentStore | None = None,
        client: RemoteClient | None = None,
        change_detector: ChangeDetector | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Validated plugin configuration.
            store: Persistent store; defaults to a JSON file in the config directory.
            client: Remote client; defaults to a GitHubClient built from the config.
            change_detector: Produces notifications from fetch results.
            clock: Returns the current wall-clock time in seconds.
        """
        self.config = config
        self._clock = clock
        self.store = store if store is not None else self._default_store(config)

        self._owns_client = client is None
        self.client = client or GitHubClient(
            token=config.token,
            base_url=config.api_base_url,
            max_connections=config.max_concurrent_stats * 2,
        )

        self.cache = CacheManager(self.client, self.store, config, clock=clock)
        self.watchlist = WatchlistManager(self.store, clock=clock)
        self.notifications = NotificationLog(self.store, config.max_notifications)

        self.change_detector = change_detector or self._default_detector(
            config, self.watchlist, clock
        )

        self.last_user_refresh = 0.0
        self._started = False
        self._stats_semaphore = asyncio.Semaphore(config.max_concurrent_stats)

        self.cache.add_stats_listener(self._on_stats)
        self.cache.add_discovery_listener(self._on_discovery)

    @staticmethod
    def _default_detector(
        config: PluginConfig,
        watchlist: WatchlistManager,
        clock: Callable[[], float],
    ) -> ChangeDetector:
        """Builds the detectors the notification settings ask for."""
        detectors: list[ChangeDetector] = []
        if config.notify_on_release:
            detectors.append(ReleaseChangeDetector(watchlist, clock=clock))
        if config.notify_on_new_mods:
            detectors.append(DiscoveryDiffDetector(clock=clock))

        if not detectors:
            return NullChangeDetector()
        if len(detectors) == 1:
            return detectors[0]
        return CombinedChangeDetector(*detectors)

    @staticmethod
    def _default_store(config: PluginConfig) -> PersistentStore:
        if not config.config_path:
            log.warning(
                "[yellow]No data directory configured; nothing will be saved.[/yellow]"
            )
            return MemoryStore()
        return JsonFileStore(Path(config.config_path) / STORE_FILE_NAME)

    # Lifecycle

    async def start(self) -> None:
        """Loads everything persisted by a previous run."""
        if self._started:
            return
        self.watchlist.load()
        self.notifications.load()
        self.cache.load()
        self.last_user_refresh = codecs.load_timestamp(self.store, LAST_REFRESH_KEY)
        self._started = True
        log.debug("Session started.")

    async def close(self) -> None:
        """Flushes all collections to the store and releases the HTTP session."""
        self.cache.flush()
        self.watchlist.save()
        self.notifications.save()
        if self._owns_client and isinstance(self.client, GitHubClient):
            await self.client.close()
        self._started = False
        log.debug("Session closed.")

    async def __aenter__(self) -> "ModInfoSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Change detection

    def _on_stats(
        self, item: ModItem, previous: ModStats | None, current: ModStats
    ) -> None:
        # Watched mods compare against the persisted baseline, not the stats cache
        baseline = self.watchlist.baseline(item)
        if baseline is not None:
            previous = baseline
        found = self.change_detector.on_stats(item, previous, current)
        self.notifications.extend(found)
        self.watchlist.record_baseline(item, current)

    def _on_discovery(self, previous: list[ModItem], current: list[ModItem]) -> None:
        self.notifications.extend(self.change_detector.on_discovery(previous, current))

    # Queries

    async def discover(self, query: str = "", page: int = 0) -> DiscoveryPage:
        """Returns one page of discovered mods matching ``query``."""
        items, from_cache = await self.cache.get_discovery_list()
        matching = [item for item in items if matches_query(item, query)]
        per_page = self.config.mods_per_page
        pages = total_pages(len(matching), per_page)
        page = min(max(page, 0), pages - 1)
        return DiscoveryPage(
            items=paginate(matching, page, per_page),
            page=page,
            total_pages=pages,
            total_items=len(matching),
            from_cache=from_cache,
            query=query,
        )

    async def stats(self, item: ModItem) -> ModStats:
        return await self.cache.get_stats(item)

    async def stats_many(self, items: Iterable[ModItem]) -> dict[str, ModStats]:
        """Fetches stats for several mods concurrently, keyed by 'owner/repo'."""

        async def fetch_single(item: ModItem) -> tuple[str, ModStats]:
            async with self._stats_semaphore:
                return item.key, await self.cache.get_stats(item)

        unique = {item.key: item for item in items}
        results = await asyncio.gather(*(fetch_single(i) for i in unique.values()))
        return dict(results)

    def find_item(self, key: str) -> ModItem | None:
        """Looks a mod up by 'owner/repo' in the watchlist, then the discovery cache."""
        if entry := self.watchlist.get(key):
            return entry.item
        key_lower = key.lower()
        for item in self.cache.discovery_items:
            if item.key.lower() == key_lower:
                return item
        return None

    # Actions

    def toggle_watch(self, item: ModItem) -> bool:
        return self.watchlist.toggle(item, baseline=self.cache.cached_stats(item))

    def request_refresh(self) -> RefreshDecision:
        """
        Clears all caches if the cooldown since the last user refresh has passed.

        A rejected request changes nothing and reports how long to wait.
        """
        decision = self.cache.can_refresh_now(self.last_user_refresh)
        if not decision.allowed:
            log.info(
                f"Refresh rejected, {decision.seconds_remaining}s of cooldown left."
            )
            return decision

        self.last_user_refresh = self._clock()
        codecs.save_timestamp(self.store, LAST_REFRESH_KEY, self.last_user_refresh)
        self.cache.invalidate_all()
        return decision
