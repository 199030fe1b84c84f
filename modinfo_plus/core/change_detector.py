"""
Detectors that turn a pair of snapshots into notifications.

The session hands every successful stats or discovery fetch to its detector,
together with the value it replaces. Which changes are worth a notification
is entirely up to the detector.
"""

import time
from collections.abc import Callable
from typing import Optional, Protocol

from modinfo_plus.models.mods import ModItem, ModStats, Notification

from .watchlist import WatchlistManager

NEW_RELEASE = "new_release"
NEW_MOD = "new_mod"


class ChangeDetector(Protocol):
    def on_stats(
        self, item: ModItem, previous: Optional[ModStats], current: ModStats
    ) -> list[Notification]: ...

    def on_discovery(
        self, previous: list[ModItem], current: list[ModItem]
    ) -> list[Notification]: ...


class NullChangeDetector:
    """Generates nothing."""

    def on_stats(self, item, previous, current) -> list[Notification]:
        return []

    def on_discovery(self, previous, current) -> list[Notification]:
        return []


class ReleaseChangeDetector(NullChangeDetector):
    """
    Reports new releases of watched mods.

    A release is new when the release count grows or the latest release
    timestamp changes. The first stats seen for a mod only establish a
    baseline.
    """

    def __init__(
        self, watchlist: WatchlistManager, clock: Callable[[], float] = time.time
    ):
        self.watchlist = watchlist
        self._clock = clock

    def on_stats(
        self, item: ModItem, previous: Optional[ModStats], current: ModStats
    ) -> list[Notification]:
        if previous is None or previous.error or current.error:
            return []
        if not self.watchlist.is_watched(item):
            return []

        new_count = current.releases - previous.releases
        latest_changed = (
            current.latest_release is not None
            and current.latest_release != previous.latest_release
        )
        if new_count <= 0 and not latest_changed:
            return []

        if new_count > 1:
            message = f"{new_count} new releases published"
        else:
            message = "New release published"
        if current.latest_release:
            message += f" ({current.latest_release[:10]})"

        return [
            Notification(
                owner=item.owner,
                repo=item.repo,
                mod_name=item.display_name,
                type=NEW_RELEASE,
                message=message,
                time=self._clock(),
            )
        ]


class DiscoveryDiffDetector(NullChangeDetector):
    """Reports mods that appear in a discovery list for the first time."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def on_discovery(
        self, previous: list[ModItem], current: list[ModItem]
    ) -> list[Notification]:
        # Without a baseline every mod would look new
        if not previous:
            return []

        known = {item.key for item in previous}
        now = self._clock()
        return [
            Notification(
                owner=item.owner,
                repo=item.repo,
                mod_name=item.display_name,
                type=NEW_MOD,
                message=f"New mod by {item.owner}",
                time=now,
            )
            for item in current
            if item.key not in known
        ]


class CombinedChangeDetector:
    """Runs several detectors and concatenates their notifications."""

    def __init__(self, *detectors: ChangeDetector):
        self.detectors = detectors

    def on_stats(self, item, previous, current) -> list[Notification]:
        return [n for d in self.detectors for n in d.on_stats(item, previous, current)]

    def on_discovery(self, previous, current) -> list[Notification]:
        return [n for d in self.detectors for n in d.on_discovery(previous, current)]
