"""
Core plugin engine.

The `CacheManager` decides when GitHub is called and what is served from
cache; `WatchlistManager` and `NotificationLog` hold user-owned state; the
`ModInfoSession` owns all of them for the lifetime of the host.
"""

from .cache_manager import (
    CacheManager,
    DiscoveryResult,
    RefreshDecision,
    can_refresh_now,
)
from .notifications import NotificationLog
from .session import DiscoveryPage, ModInfoSession
from .watchlist import WatchlistManager

__all__ = [
    "CacheManager",
    "DiscoveryPage",
    "DiscoveryResult",
    "ModInfoSession",
    "NotificationLog",
    "RefreshDecision",
    "WatchlistManager",
    "can_refresh_now",
]
