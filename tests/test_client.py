import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from modinfo_plus.api.client import USER_AGENT, GitHubClient
from modinfo_plus.api.endpoints import discovery_url, releases_url
from modinfo_plus.core.cache_manager import CacheManager
from modinfo_plus.exceptions import MalformedPayloadError, RemoteFetchError
from modinfo_plus.models.config import PluginConfig
from modinfo_plus.models.mods import ModItem
from modinfo_plus.storage.store import MemoryStore
from modinfo_plus.utils.circuit_breaker import CircuitBreakerError, CircuitState


@pytest.fixture
async def server():
    seen_headers = []

    async def releases(request):
        seen_headers.append(dict(request.headers))
        if request.match_info["repo"] == "gone":
            return web.json_response({"message": "Not Found"}, status=404)
        return web.json_response([{"published_at": None, "assets": []}])

    async def search(request):
        seen_headers.append(dict(request.headers))
        return web.json_response({"items": [], "q": request.query["q"]})

    async def not_json(request):
        return web.Response(text="<html>oops</html>")

    async def missing(request):
        return web.json_response({"message": "Not Found"}, status=404)

    async def limited(request):
        return web.json_response(
            {"message": "API rate limit exceeded"},
            status=403,
            headers={"X-RateLimit-Remaining": "0"},
        )

    async def slow(request):
        await asyncio.sleep(1)
        return web.json_response([])

    async def broken(request):
        return web.Response(text="Bad gateway", status=502)

    app = web.Application()
    app.router.add_get("/repos/{owner}/{repo}/releases", releases)
    app.router.add_get("/search/repositories", search)
    app.router.add_get("/garbage", not_json)
    app.router.add_get("/missing", missing)
    app.router.add_get("/limited", limited)
    app.router.add_get("/slow", slow)
    app.router.add_get("/broken", broken)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    test_server.seen_headers = seen_headers
    yield test_server
    await test_server.close()


@pytest.fixture
async def github(server):
    client = GitHubClient(token="abc123", base_url=str(server.make_url("")).rstrip("/"))
    yield client
    await client.close()


def test_headers_include_bearer_token_only_when_configured():
    with_token = GitHubClient(token="abc123").build_headers()
    anonymous = GitHubClient().build_headers()

    assert with_token["Authorization"] == "Bearer abc123"
    assert with_token["Accept"] == "application/vnd.github+json"
    assert with_token["User-Agent"] == USER_AGENT
    assert "Authorization" not in anonymous


def test_endpoint_urls():
    assert releases_url("https://api.github.com", "a b", "c") == (
        "https://api.github.com/repos/a%20b/c/releases"
    )
    url = discovery_url("https://api.github.com", "mindustry-mod", 1)
    assert url.startswith("https://api.github.com/search/repositories?q=topic%3Amindustry-mod")
    assert "per_page=100" in url


async def test_fetch_releases_sends_headers(github, server):
    url = releases_url(github.base_url, "owner", "repo")

    releases = await github.fetch_json(url, timeout=5)

    assert releases == [{"published_at": None, "assets": []}]
    headers = server.seen_headers[-1]
    assert headers["Authorization"] == "Bearer abc123"
    assert headers["User-Agent"] == USER_AGENT


async def test_search_query_is_encoded(github):
    url = discovery_url(github.base_url, "mindustry-mod", 1)

    response = await github.fetch_json(url, timeout=5)

    assert response["q"] == "topic:mindustry-mod fork:false stars:>=1"


async def test_non_json_body_is_malformed(github, server):
    with pytest.raises(MalformedPayloadError):
        await github.fetch_json(str(server.make_url("/garbage")), timeout=5)


async def test_http_error_is_remote_fetch_error(github, server):
    with pytest.raises(RemoteFetchError) as excinfo:
        await github.fetch_json(str(server.make_url("/missing")), timeout=5)

    assert excinfo.value.status == 404


async def test_rate_limit_slows_down_and_fails(github, server):
    before = github._rate_limiter.rate

    with pytest.raises(RemoteFetchError) as excinfo:
        await github.fetch_json(str(server.make_url("/limited")), timeout=5)

    assert excinfo.value.status == 403
    assert github._rate_limiter.rate < before
    assert github._rate_limiter.remaining == 0


async def test_timeout_is_remote_fetch_error(github, server):
    with pytest.raises(RemoteFetchError, match="timed out"):
        await github.fetch_json(str(server.make_url("/slow")), timeout=0.1)


async def test_connection_error_is_remote_fetch_error():
    client = GitHubClient(base_url="http://127.0.0.1:9")
    try:
        with pytest.raises(RemoteFetchError):
            await client.fetch_json(releases_url(client.base_url, "a", "b"), timeout=2)
    finally:
        await client.close()


async def test_circuit_opens_after_repeated_server_errors(github, server):
    url = str(server.make_url("/broken"))
    for _ in range(github._circuit_breaker.failure_threshold):
        with pytest.raises(RemoteFetchError) as excinfo:
            await github.fetch_json(url, timeout=5)
        assert excinfo.value.status == 502

    assert github._circuit_breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitBreakerError):
        await github.fetch_json(url, timeout=5)


async def test_missing_repositories_do_not_open_circuit(github, server):
    threshold = github._circuit_breaker.failure_threshold
    for _ in range(threshold + 1):
        with pytest.raises(RemoteFetchError):
            await github.fetch_json(str(server.make_url("/missing")), timeout=5)
        with pytest.raises(MalformedPayloadError):
            await github.fetch_json(str(server.make_url("/garbage")), timeout=5)

    assert github._circuit_breaker.state == CircuitState.CLOSED
    releases = await github.fetch_json(
        releases_url(github.base_url, "alive", "fine"), timeout=5
    )
    assert releases == [{"published_at": None, "assets": []}]


async def test_one_missing_mod_does_not_block_stats_for_others(github):
    config = PluginConfig(api_base_url=github.base_url)
    manager = CacheManager(github, MemoryStore(), config)

    for i in range(github._circuit_breaker.failure_threshold):
        gone = await manager.get_stats(ModItem(owner=f"u{i}", repo="gone"))
        assert gone.error

    stats = await manager.get_stats(ModItem(owner="alive", repo="fine"))

    assert not stats.error
    assert stats.releases == 1
