from modinfo_plus.core.change_detector import (
    NEW_MOD,
    NEW_RELEASE,
    CombinedChangeDetector,
    DiscoveryDiffDetector,
    NullChangeDetector,
    ReleaseChangeDetector,
)
from modinfo_plus.core.watchlist import WatchlistManager
from modinfo_plus.models.mods import ModItem, ModStats


def stats(releases: int, latest: str | None = None) -> ModStats:
    return ModStats(downloads=0, releases=releases, latest_release=latest)


def test_release_detector_reports_new_release_for_watched_mod(store, item, clock):
    watchlist = WatchlistManager(store)
    watchlist.toggle(item)
    detector = ReleaseChangeDetector(watchlist, clock=clock)

    [notification] = detector.on_stats(
        item, stats(1, "2024-01-01T00:00:00Z"), stats(2, "2024-02-01T00:00:00Z")
    )

    assert notification.type == NEW_RELEASE
    assert notification.key == item.key
    assert notification.message == "New release published (2024-02-01)"
    assert notification.time == clock.now
    assert not notification.read


def test_release_detector_counts_multiple_releases(store, item):
    watchlist = WatchlistManager(store)
    watchlist.toggle(item)

    [notification] = ReleaseChangeDetector(watchlist).on_stats(item, stats(1), stats(4))

    assert notification.message.startswith("3 new releases")


def test_release_detector_ignores_unwatched_and_baselines(store, item):
    watchlist = WatchlistManager(store)
    detector = ReleaseChangeDetector(watchlist)

    assert detector.on_stats(item, stats(1), stats(2)) == []

    watchlist.toggle(item)
    assert detector.on_stats(item, None, stats(2)) == []
    assert detector.on_stats(item, stats(2, "x"), stats(2, "x")) == []
    assert detector.on_stats(item, ModStats.failed(), stats(3)) == []


def test_discovery_diff_reports_only_new_mods(clock):
    old = [ModItem(owner="a", repo="one")]
    new = [ModItem(owner="a", repo="one"), ModItem(owner="b", repo="two")]

    [notification] = DiscoveryDiffDetector(clock=clock).on_discovery(old, new)

    assert notification.type == NEW_MOD
    assert notification.key == "b/two"


def test_discovery_diff_needs_a_baseline():
    assert DiscoveryDiffDetector().on_discovery([], [ModItem(owner="a", repo="b")]) == []


def test_combined_and_null_detectors(store, item):
    watchlist = WatchlistManager(store)
    watchlist.toggle(item)
    combined = CombinedChangeDetector(
        NullChangeDetector(), ReleaseChangeDetector(watchlist), DiscoveryDiffDetector()
    )

    assert len(combined.on_stats(item, stats(1), stats(2))) == 1
    assert len(combined.on_discovery([item], [item, ModItem(owner="z", repo="z")])) == 1
