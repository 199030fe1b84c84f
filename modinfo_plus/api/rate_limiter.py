"""
Request pacing for the GitHub API.

GitHub reports the remaining quota on every response. The limiter spaces calls
out, halves its pace when GitHub rejects a request for exceeding the limit, and
holds all calls until the quota window resets once it is nearly used up.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

log = logging.getLogger(__name__)

# Remaining-quota level at which further calls are held until the reset
LOW_QUOTA_THRESHOLD = 2


class AdaptiveRateLimiter:
    """
    Paces calls to GitHub based on its rate-limit feedback.

    Attributes:
        rate: Current pace in calls per second.
        remaining: Last quota figure GitHub reported, or None before any call.
    """

    def __init__(
        self,
        calls_per_second: float = 4.0,
        max_calls_per_second: float = 8.0,
        min_calls_per_second: float = 0.5,
        max_hold_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            calls_per_second: Starting pace.
            max_calls_per_second: Ceiling the pace recovers to.
            min_calls_per_second: Floor the pace is never halved below.
            max_hold_seconds: Longest a quota reset may hold callers.
            clock: Monotonic clock in seconds.
        """
        self.rate = calls_per_second
        self.remaining: Optional[int] = None
        self._max_rate = max_calls_per_second
        self._min_rate = min_calls_per_second
        self._max_hold = max_hold_seconds
        self._clock = clock

        self._next_call_at = 0.0
        self._held_until = 0.0
        self._last_limited_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def held_for(self) -> float:
        """Seconds callers still have to wait for a quota reset."""
        return max(0.0, self._held_until - self._clock())

    def _hold(self, seconds: Optional[float]) -> None:
        if not seconds or seconds <= 0:
            return
        seconds = min(seconds, self._max_hold)
        self._held_until = max(self._held_until, self._clock() + seconds)
        log.info(f"Holding GitHub requests for {seconds:.0f}s until the quota resets.")

    def observe(self, remaining: Optional[str], reset_after: Optional[float]) -> None:
        """
        Records the quota reported by a response.

        Args:
            remaining: Raw X-RateLimit-Remaining header value, if present.
            reset_after: Seconds until the quota window resets, if known.
        """
        if remaining is None:
            return
        try:
            self.remaining = int(remaining)
        except ValueError:
            log.debug(f"Ignoring unparseable rate limit header: {remaining!r}")
            return
        if self.remaining <= LOW_QUOTA_THRESHOLD:
            self._hold(reset_after)

    async def on_rate_limited(self, reset_after: Optional[float] = None) -> None:
        """Halves the pace after GitHub rejected a call, and waits out the reset."""
        async with self._lock:
            self.rate = max(self._min_rate, self.rate / 2)
            self._last_limited_at = self._clock()
            self._hold(reset_after)
            log.warning(
                f"[yellow]GitHub rate limit hit. New rate: {self.rate:.1f} calls/s"
                "[/yellow]"
            )

    def _recover(self, now: float) -> None:
        """Speeds back up slowly once five minutes pass without a rejection."""
        if self._last_limited_at is None or now - self._last_limited_at <= 300:
            return
        self.rate = min(self._max_rate, self.rate * 1.05)
        if self.rate >= self._max_rate:
            self._last_limited_at = None

    async def acquire(self) -> None:
        """Waits until the next call is allowed to start."""
        async with self._lock:
            now = self._clock()
            self._recover(now)

            start_at = max(now, self._next_call_at, self._held_until)
            if start_at > now:
                await asyncio.sleep(start_at - now)

            self._next_call_at = start_at + 1.0 / self.rate
