import pytest

from modinfo_plus.api.rate_limiter import AdaptiveRateLimiter


@pytest.fixture
def now():
    return [1000.0]


@pytest.fixture
def limiter(now):
    return AdaptiveRateLimiter(clock=lambda: now[0])


def test_low_remaining_quota_holds_until_reset(limiter):
    limiter.observe("1", reset_after=12)

    assert limiter.remaining == 1
    assert limiter.held_for() == 12


def test_plenty_of_quota_does_not_hold(limiter):
    limiter.observe("4999", reset_after=12)

    assert limiter.remaining == 4999
    assert limiter.held_for() == 0


def test_hold_is_capped(limiter):
    limiter.observe("0", reset_after=3600)

    assert limiter.held_for() == 30


def test_garbage_header_is_ignored(limiter):
    limiter.observe("lots", reset_after=12)

    assert limiter.remaining is None
    assert limiter.held_for() == 0


async def test_rate_limit_halves_rate_down_to_floor(limiter):
    for _ in range(10):
        await limiter.on_rate_limited()

    assert limiter.rate == 0.5


async def test_rate_recovers_after_quiet_period(limiter, now):
    await limiter.on_rate_limited()
    slowed = limiter.rate

    now[0] += 301
    await limiter.acquire()

    assert limiter.rate > slowed
