import asyncio
from typing import Any

import pytest

from modinfo_plus.exceptions import RemoteFetchError
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import ModItem
from modinfo_plus.storage.store import MemoryStore

START_TIME = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClient:
    """
    Stands in for GitHubClient. Responses are looked up by endpoint; an
    exception instance is raised instead of returned. Setting ``gate`` holds
    every request until the event is set.
    """

    def __init__(self):
        self.calls: list[str] = []
        self.search_response: Any = {"items": []}
        self.releases: dict[str, Any] = {}
        self.gate: asyncio.Event | None = None

    async def fetch_json(self, url: str, *, timeout: float) -> Any:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()

        if "/search/repositories" in url:
            response = self.search_response
        else:
            path = url.split("/repos/", 1)[1].rsplit("/releases", 1)[0]
            response = self.releases.get(path, RemoteFetchError("404", status=404))

        if isinstance(response, Exception):
            raise response
        return response

    def count(self, fragment: str) -> int:
        return sum(1 for url in self.calls if fragment in url)


def make_repo(
    owner: str,
    name: str,
    stars: int = 5,
    topics: list[str] | None = None,
    description: str | None = "A mod",
) -> dict[str, Any]:
    return {
        "owner": {"login": owner},
        "name": name,
        "description": description,
        "stargazers_count": stars,
        "html_url": f"https://github.com/{owner}/{name}",
        "topics": ["mindustry-mod"] if topics is None else topics,
    }


def make_release(*downloads: int, published_at: str | None = None) -> dict[str, Any]:
    return {
        "published_at": published_at,
        "assets": [{"download_count": d} for d in downloads],
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def config() -> PluginConfig:
    return PluginConfig()


@pytest.fixture
def item() -> ModItem:
    return ModItem(owner="Anuken", repo="ExampleMod", name="ExampleMod", stars=12)
