"""
TTL caches for the discovery list and per-mod release statistics.

The cache manager is the only component that talks to the remote client. It
decides when a call is needed, keeps at most one discovery request and one
stats request per mod outstanding, and falls back to the last known data when
GitHub is unreachable or returns something unusable.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import NamedTuple, Optional

from pydantic import ValidationError

from modinfo_plus.api import endpoints
from modinfo_plus.api.client import RemoteClient
from modinfo_plus.exceptions import ModInfoError
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import CacheEntry, ModItem, ModStats
from modinfo_plus.storage import codecs
from modinfo_plus.storage.store import (
    DISCOVER_CACHE_KEY,
    DISCOVER_TIME_KEY,
    PersistentStore,
)

from .parsing import parse_discovery, parse_releases

log = logging.getLogger(__name__)

DEFAULT_REFRESH_COOLDOWN = 60

StatsListener = Callable[[ModItem, Optional[ModStats], ModStats], None]
DiscoveryListener = Callable[[list[ModItem], list[ModItem]], None]


class DiscoveryResult(NamedTuple):
    items: list[ModItem]
    from_cache: bool


class RefreshDecision(NamedTuple):
    allowed: bool
    seconds_remaining: int


def can_refresh_now(
    last_user_refresh: float | None,
    now: float | None = None,
    cooldown_seconds: int = DEFAULT_REFRESH_COOLDOWN,
) -> RefreshDecision:
    """
    Applies the cooldown between user-triggered refreshes.

    Elapsed time is counted in whole seconds, so a refresh 15.4s ago with a 60s
    cooldown leaves 45s. No previous refresh means a refresh is allowed.
    """
    if not last_user_refresh:
        return RefreshDecision(True, 0)

    now = time.time() if now is None else now
    elapsed = int(now - last_user_refresh)
    if elapsed < 0:
        # The clock moved backwards; restart the cooldown rather than skip it
        return RefreshDecision(False, cooldown_seconds)
    if elapsed >= cooldown_seconds:
        return RefreshDecision(True, 0)
    return RefreshDecision(False, cooldown_seconds - elapsed)


class CacheManager:
    """
    Owns the discovery cache and the stats cache.

    All methods must be called from the event loop that owns the session.
    Nothing here raises on network or payload problems: callers always get the
    best data available, which may be stale, empty, or an error-flagged stats
    record.
    """

    def __init__(
        self,
        client: RemoteClient,
        store: PersistentStore,
        config: PluginConfig,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            client: Performs the actual GitHub requests.
            store: Where the discovery list and its fetch time are persisted.
            config: TTLs, timeouts and discovery filter settings.
            clock: Returns the current wall-clock time in seconds.
        """
        self.client = client
        self.store = store
        self.config = config
        self._clock = clock

        self._discovery: CacheEntry[list[ModItem]] | None = None
        self._discovery_in_flight = False
        self._stats: dict[str, CacheEntry[ModStats]] = {}
        self._stats_in_flight: dict[str, asyncio.Task] = {}

        self._stats_listeners: list[StatsListener] = []
        self._discovery_listeners: list[DiscoveryListener] = []

    # Persistence

    def load(self) -> None:
        """Restores the discovery cache saved by a previous run."""
        items = codecs.load_collection(self.store, DISCOVER_CACHE_KEY, codecs.MOD_ITEMS)
        fetched_at = codecs.load_timestamp(self.store, DISCOVER_TIME_KEY)

        if items or fetched_at:
            self._discovery = CacheEntry[list[ModItem]](
                payload=items,
                fetched_at=fetched_at,
                ttl=self.config.discover_ttl_seconds,
            )
            log.debug(
                f"Loaded {len(items)} cached mods "
                f"(age {self._discovery.age(self._clock()):.0f}s)."
            )

    def flush(self) -> None:
        """Writes the discovery cache and its timestamp to the store."""
        if self._discovery is None:
            return
        codecs.save_collection(
            self.store, DISCOVER_CACHE_KEY, codecs.MOD_ITEMS, self._discovery.payload
        )
        codecs.save_timestamp(self.store, DISCOVER_TIME_KEY, self._discovery.fetched_at)

    # Listeners

    def add_stats_listener(self, listener: StatsListener) -> None:
        """Registers a callback run after each successful stats fetch."""
        self._stats_listeners.append(listener)

    def add_discovery_listener(self, listener: DiscoveryListener) -> None:
        """Registers a callback run after each successful discovery fetch."""
        self._discovery_listeners.append(listener)

    def _notify(self, listeners: list, *args) -> None:
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                log.exception(f"Cache listener {listener!r} failed")

    # Discovery

    @property
    def discovery_items(self) -> list[ModItem]:
        """The last known discovery list, fresh or not."""
        return list(self._discovery.payload) if self._discovery else []

    @property
    def last_discovery_fetch(self) -> float:
        return self._discovery.fetched_at if self._discovery else 0.0

    @property
    def discovery_in_flight(self) -> bool:
        return self._discovery_in_flight

    def is_discovery_fresh(self) -> bool:
        return self._discovery is not None and self._discovery.is_fresh(self._clock())

    async def get_discovery_list(self) -> DiscoveryResult:
        """
        Returns the discovery list, fetching it when the cache is stale.

        A second call made while a fetch is outstanding does not wait for it:
        it gets the current (possibly stale or empty) list straight away.
        """
        if self.is_discovery_fresh():
            return DiscoveryResult(self.discovery_items, True)

        if self._discovery_in_flight:
            log.debug("Discovery fetch already in progress, returning cached list.")
            return DiscoveryResult(self.discovery_items, True)

        self._discovery_in_flight = True
        previous = self.discovery_items
        url = endpoints.discovery_url(
            self.config.api_base_url, self.config.required_topic, self.config.min_stars
        )
        try:
            payload = await self.client.fetch_json(
                url, timeout=self.config.discover_timeout_seconds
            )
            now = self._clock()
            mods = parse_discovery(
                payload, self.config.required_topic, self.config.min_stars, now
            )
        except ModInfoError as e:
            log.warning(f"[yellow]Could not fetch mods from GitHub: {e}[/yellow]")
            return DiscoveryResult(previous, True)
        except Exception:
            log.exception("Unexpected error while fetching the mod list")
            return DiscoveryResult(previous, True)
        finally:
            self._discovery_in_flight = False

        self._discovery = CacheEntry[list[ModItem]](
            payload=mods, fetched_at=now, ttl=self.config.discover_ttl_seconds
        )
        self.flush()
        log.info(f"Discovered {len(mods)} mods tagged '{self.config.required_topic}'.")

        self._notify(self._discovery_listeners, previous, list(mods))
        return DiscoveryResult(list(mods), False)

    # Stats

    def cached_stats(self, item: ModItem) -> ModStats | None:
        """The last good stats for a mod, fresh or not, without fetching."""
        entry = self._stats.get(item.key)
        return entry.payload if entry else None

    def is_stats_fetch_in_flight(self, item: ModItem) -> bool:
        return item.key in self._stats_in_flight

    async def get_stats(self, item: ModItem) -> ModStats:
        """
        Returns release statistics for a mod, fetching them when stale.

        Concurrent calls for the same mod share one request. If the request
        fails the result is an error-flagged record and any earlier good
        entry stays in the cache.
        """
        key = item.key
        entry = self._stats.get(key)
        if entry and entry.is_fresh(self._clock()):
            return entry.payload

        task = self._stats_in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_stats(item))
            self._stats_in_flight[key] = task
        else:
            log.debug(f"Joining outstanding stats fetch for {key}.")

        # Shielded so a cancelled caller does not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch_stats(self, item: ModItem) -> ModStats:
        key = item.key
        url = endpoints.releases_url(self.config.api_base_url, item.owner, item.repo)
        try:
            payload = await self.client.fetch_json(
                url, timeout=self.config.stats_timeout_seconds
            )
            stats = parse_releases(payload, self._clock())
        except (ModInfoError, ValidationError) as e:
            log.warning(f"[yellow]Could not fetch releases for {key}: {e}[/yellow]")
            return ModStats.failed()
        except Exception:
            log.exception(f"Unexpected error while fetching releases for {key}")
            return ModStats.failed()
        finally:
            self._stats_in_flight.pop(key, None)

        previous = self.cached_stats(item)
        self._stats[key] = CacheEntry[ModStats](
            payload=stats,
            fetched_at=stats.cache_time,
            ttl=self.config.stats_ttl_seconds,
        )
        log.debug(f"{key}: {stats.downloads} downloads over {stats.releases} releases.")

        self._notify(self._stats_listeners, item, previous, stats)
        return stats

    # Invalidation

    def can_refresh_now(self, last_user_refresh: float | None) -> RefreshDecision:
        return can_refresh_now(
            last_user_refresh, self._clock(), self.config.refresh_cooldown_seconds
        )

    def invalidate_all(self) -> None:
        """
        Drops both caches and the discovery timestamp, in memory and in the store.

        Fetches already outstanding are not cancelled and will still store
        their results when they complete.
        """
        self._discovery = None
        self._stats.clear()
        codecs.delete_key(self.store, DISCOVER_CACHE_KEY)
        codecs.delete_key(self.store, DISCOVER_TIME_KEY)
        log.info("Cleared discovery and stats caches.")
