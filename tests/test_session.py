import pytest

from conftest import make_release, make_repo
from modinfo_plus.core.change_detector import (
    NEW_MOD,
    CombinedChangeDetector,
    DiscoveryDiffDetector,
    NullChangeDetector,
)
from modinfo_plus.core.session import ModInfoSession, matches_query
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import ModItem
from modinfo_plus.storage.store import JsonFileStore, MemoryStore


@pytest.fixture
async def session(config, store, client, clock):
    async with ModInfoSession(config, store=store, client=client, clock=clock) as s:
        yield s


def seven_mods():
    return {
        "items": [make_repo("owner", f"mod{n}", description=f"Mod number {n}") for n in range(7)]
    }


async def test_discover_pages_results(session, client):
    client.search_response = seven_mods()

    page = await session.discover(page=2)

    assert [i.repo for i in page.items] == ["mod6"]
    assert page.page == 2
    assert page.total_pages == 3
    assert page.total_items == 7
    assert page.has_previous and not page.has_next


async def test_discover_search_filters_before_paging(session, client):
    client.search_response = seven_mods()

    page = await session.discover(query="NUMBER 4")

    assert [i.repo for i in page.items] == ["mod4"]
    assert page.total_pages == 1


async def test_discover_clamps_page(session, client):
    client.search_response = seven_mods()

    page = await session.discover(page=99)

    assert page.page == 2


def test_matches_query_checks_all_terms():
    item = ModItem(owner="Anuken", repo="router-mod", name="Router Mod", description="Routes")

    assert matches_query(item, "")
    assert matches_query(item, "anuken router")
    assert not matches_query(item, "anuken conveyor")


async def test_request_refresh_applies_cooldown(session, client, clock):
    client.search_response = seven_mods()
    await session.discover()

    first = session.request_refresh()
    assert first.allowed
    assert session.cache.discovery_items == []

    clock.advance(15)
    second = session.request_refresh()
    assert (second.allowed, second.seconds_remaining) == (False, 45)

    clock.advance(45)
    assert session.request_refresh().allowed


async def test_rejected_refresh_keeps_caches(session, client, clock):
    client.search_response = seven_mods()
    session.request_refresh()
    await session.discover()

    clock.advance(10)
    assert not session.request_refresh().allowed
    assert len(session.cache.discovery_items) == 7


async def test_cooldown_survives_restart(config, client, clock):
    store = MemoryStore()
    async with ModInfoSession(config, store=store, client=client, clock=clock) as s:
        s.request_refresh()

    clock.advance(20)
    async with ModInfoSession(config, store=store, client=client, clock=clock) as s:
        assert s.request_refresh().seconds_remaining == 40


async def test_refresh_does_not_touch_watchlist_or_notifications(session, item):
    session.toggle_watch(item)
    session.notifications.extend(
        DiscoveryDiffDetector().on_discovery([item], [item, ModItem(owner="n", repo="ew")])
    )

    session.request_refresh()

    assert session.watchlist.is_watched(item)
    assert len(session.notifications) == 1


async def test_stats_many_deduplicates_and_keys_by_identity(session, client):
    client.releases["a/one"] = [make_release(5, 3), make_release(2)]
    first = ModItem(owner="a", repo="one")

    results = await session.stats_many([first, first, ModItem(owner="b", repo="missing")])

    assert results["a/one"].downloads == 10
    assert results["b/missing"].error
    assert client.count("/releases") == 2


async def test_release_notifications_when_enabled(store, client, clock, item):
    config = PluginConfig(notify_on_release=True)
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        session.toggle_watch(item)
        client.releases[item.key] = [make_release(1)]
        await session.stats(item)

        clock.advance(301)
        client.releases[item.key] = [make_release(1), make_release(1)]
        await session.stats(item)

        assert session.notifications.unread_count() == 1


async def test_no_notifications_by_default(session, client, clock, item):
    session.toggle_watch(item)
    client.releases[item.key] = [make_release(1)]
    await session.stats(item)
    clock.advance(301)
    client.releases[item.key] = [make_release(1), make_release(1)]
    await session.stats(item)

    assert len(session.notifications) == 0


async def test_find_item_prefers_watchlist_then_discovery(session, client, item):
    client.search_response = {"items": [make_repo("owner", "Found")]}
    await session.discover()
    session.toggle_watch(item)

    assert session.find_item(item.key).key == item.key
    assert session.find_item("OWNER/found").key == "owner/Found"
    assert session.find_item("nobody/nothing") is None


async def test_state_persists_across_sessions_on_disk(tmp_path, client, clock, item):
    config = PluginConfig(config_path=str(tmp_path))
    async with ModInfoSession(config, client=client, clock=clock) as session:
        assert isinstance(session.store, JsonFileStore)
        client.search_response = seven_mods()
        await session.discover()
        session.toggle_watch(item)

    async with ModInfoSession(config, client=client, clock=clock) as session:
        assert session.watchlist.is_watched(item)
        page = await session.discover()
        assert page.from_cache
        assert page.total_items == 7

    assert client.count("/search/") == 1


async def test_release_notification_across_restart(tmp_path, client, clock, item):
    config = PluginConfig(config_path=str(tmp_path), notify_on_release=True)
    async with ModInfoSession(config, client=client, clock=clock) as session:
        session.toggle_watch(item)
        client.releases[item.key] = [make_release(1)]
        await session.stats(item)
        assert len(session.notifications) == 0

    clock.advance(3600)
    client.releases[item.key] = [
        make_release(1, published_at="2024-06-01T08:00:00Z"),
        make_release(1),
    ]
    async with ModInfoSession(config, client=client, clock=clock) as session:
        stats = await session.stats(item)
        assert stats.releases == 2
        assert session.notifications.unread_count() == 1
        assert session.notifications.entries()[0].message == (
            "New release published (2024-06-01)"
        )

    async with ModInfoSession(config, client=client, clock=clock) as session:
        assert session.watchlist.baseline(item).releases == 2
        assert len(session.notifications) == 1


async def test_watching_a_fetched_mod_uses_its_stats_as_baseline(store, client, clock, item):
    config = PluginConfig(notify_on_release=True)
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        client.releases[item.key] = [make_release(1)]
        await session.stats(item)
        session.toggle_watch(item)

    clock.advance(301)
    client.releases[item.key] = [make_release(1), make_release(1)]
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        await session.stats(item)
        assert session.notifications.unread_count() == 1


async def test_new_mod_notifications_when_enabled(store, client, clock):
    config = PluginConfig(notify_on_new_mods=True)
    client.search_response = {"items": [make_repo("a", "one")]}
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        await session.discover()
        assert len(session.notifications) == 0

    clock.advance(901)
    client.search_response = {"items": [make_repo("a", "one"), make_repo("b", "two")]}
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        await session.discover()
        [notification] = session.notifications.entries()
        assert notification.type == NEW_MOD
        assert notification.key == "b/two"


async def test_both_notification_settings_combine_detectors(store, client, clock):
    config = PluginConfig(notify_on_release=True, notify_on_new_mods=True)
    async with ModInfoSession(config, store=store, client=client, clock=clock) as session:
        assert isinstance(session.change_detector, CombinedChangeDetector)

    async with ModInfoSession(
        PluginConfig(), store=store, client=client, clock=clock
    ) as session:
        assert isinstance(session.change_detector, NullChangeDetector)
