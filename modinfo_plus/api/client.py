"""
Async client for the GitHub REST API with rate limiting and circuit breaker protection.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Protocol

import aiohttp

from modinfo_plus import __version__
from modinfo_plus.exceptions import MalformedPayloadError, RemoteFetchError
from modinfo_plus.models.config import DEFAULT_API_BASE_URL
from modinfo_plus.utils.circuit_breaker import CircuitBreaker, CircuitBreakerError

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)

USER_AGENT = f"modinfo-plus/{__version__}"


class RemoteClient(Protocol):
    """Anything that can perform one JSON GET with a timeout."""

    async def fetch_json(self, url: str, *, timeout: float) -> Any: ...


class GitHubClient:
    """
    Async client for the GitHub REST API.

    Each call is a single GET. Failures surface as RemoteFetchError (transport,
    HTTP status, open circuit) or MalformedPayloadError (undecodable body); the
    caller decides how to degrade.
    """

    def __init__(
        self,
        token: str = "",
        base_url: str = DEFAULT_API_BASE_URL,
        max_connections: int = 8,
    ):
        """
        Initializes the API client.

        Args:
            token: GitHub token sent as a bearer credential. Empty means anonymous.
            base_url: API root, without a trailing slash.
            max_connections: Size of the connection pool.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_connections = max_connections

        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = AdaptiveRateLimiter()
        self._circuit_breaker = CircuitBreaker(
            name="GitHub API",
            failure_threshold=5,
            recovery_timeout=60,
        )

        if not token:
            log.warning(
                "[yellow]No GitHub token configured; anonymous requests are limited "
                "to 60 per hour.[/yellow]"
            )

    def build_headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers=self.build_headers(),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @staticmethod
    def _is_rate_limited(response: aiohttp.ClientResponse) -> bool:
        if response.status == 429:
            return True
        return (
            response.status == 403
            and response.headers.get("X-RateLimit-Remaining") == "0"
        )

    @staticmethod
    def _reset_after(response: aiohttp.ClientResponse) -> Optional[float]:
        """Seconds until the quota resets, from Retry-After or X-RateLimit-Reset."""
        if retry_after := response.headers.get("Retry-After"):
            try:
                return float(retry_after)
            except ValueError:
                return None
        if reset_at := response.headers.get("X-RateLimit-Reset"):
            try:
                return float(reset_at) - time.time()
            except ValueError:
                return None
        return None

    async def fetch_json(self, url: str, *, timeout: float) -> Any:
        """
        Performs one GET request and decodes its JSON body.

        Only transport failures, 5xx responses and rate limiting count against
        the circuit breaker. Other 4xx responses and undecodable bodies are
        raised after the breaker has recorded a success.

        Args:
            url: Absolute URL to fetch.
            timeout: Total time allowed for the request, in seconds.

        Raises:
            RemoteFetchError: On connection errors, timeouts, non-2xx responses
                or while the circuit breaker is open.
            MalformedPayloadError: If the body is not valid JSON.
        """
        await self._initialize_session()

        try:
            async with self._circuit_breaker:
                await self._rate_limiter.acquire()
                start_time = time.monotonic()

                async with self._session.get(
                    url, timeout=aiohttp.ClientTimeout(total=timeout)
                ) as r:
                    duration_ms = (time.monotonic() - start_time) * 1000
                    log.debug(f"GET {url} -> {r.status} in {duration_ms:.0f}ms")
                    self._rate_limiter.observe(
                        r.headers.get("X-RateLimit-Remaining"), self._reset_after(r)
                    )

                    if self._is_rate_limited(r):
                        await self._rate_limiter.on_rate_limited(self._reset_after(r))
                        raise RemoteFetchError(
                            f"Rate limited by GitHub ({r.status})", status=r.status
                        )

                    if r.status >= 500:
                        raise RemoteFetchError(
                            f"GitHub returned HTTP {r.status} for {url}",
                            status=r.status,
                        )

                    status = r.status
                    body = await r.text()

        except CircuitBreakerError:
            log.debug(f"Skipping {url}: circuit breaker is open.")
            raise
        except asyncio.TimeoutError as e:
            raise RemoteFetchError(
                f"Request to {url} timed out after {timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise RemoteFetchError(f"Request to {url} failed: {e}") from e

        if status >= 400:
            raise RemoteFetchError(
                f"GitHub returned HTTP {status} for {url}", status=status
            )

        try:
            return json.loads(body)
        except ValueError as e:
            raise MalformedPayloadError(
                f"Response from {url} is not valid JSON: {e}"
            ) from e
