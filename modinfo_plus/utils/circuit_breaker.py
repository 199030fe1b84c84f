"""
Circuit breaker guarding calls to the GitHub API.

After a run of consecutive failures the breaker opens and fails calls fast,
so a dead network does not cost every caller a full timeout.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from modinfo_plus.exceptions import RemoteFetchError

log = logging.getLogger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreakerError(RemoteFetchError):
    """Raised instead of making a request while the circuit is open."""


class CircuitBreaker:
    """
    Async context manager that counts failures of the wrapped block.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Too many failures, requests blocked
    - HALF_OPEN: Testing recovery, limited requests allowed
    """

    def __init__(
        self,
        name: str = "github",
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        success_threshold: int = 1,
    ):
        """
        Args:
            name: Label used in log messages.
            failure_threshold: Number of consecutive failures before opening.
            recovery_timeout: Seconds to wait before letting a trial request through.
            success_threshold: Consecutive trial successes needed to close again.
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def seconds_until_retry(self) -> float:
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return 0.0
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def _check_state(self) -> None:
        """Moves from OPEN to HALF_OPEN once the recovery timeout has passed."""
        if self._state == CircuitState.OPEN and self.seconds_until_retry() <= 0:
            log.info(f"[yellow]{self.name}: circuit half-open, trying a request[/yellow]")
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0

    async def _on_success(self) -> None:
        async with self._lock:
            self._failure_count = 0

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    log.info(f"[green]✓ {self.name}: circuit closed again.[/green]")
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1

            if self._state == CircuitState.HALF_OPEN:
                log.warning(
                    f"[yellow]{self.name}: recovery request failed, "
                    "circuit open again.[/yellow]"
                )
                self._open()
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                log.error(
                    f"[red]✗ {self.name}: circuit opened after "
                    f"{self._failure_count} consecutive failures. "
                    f"Requests blocked for {self.recovery_timeout:.0f}s.[/red]"
                )
                self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
        self._failure_count = 0
        self._success_count = 0

    async def __aenter__(self):
        async with self._lock:
            self._check_state()
            if self._state == CircuitState.OPEN:
                raise CircuitBreakerError(
                    f"{self.name} circuit is open, retrying in "
                    f"{self.seconds_until_retry():.0f}s."
                )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            await self._on_failure()
        else:
            await self._on_success()
        return False
