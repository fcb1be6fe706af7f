"""
Tests for the fixed-window rate limiter
"""

import asyncio
from collections import Counter

import pytest

from verifyx.rate_limiter import RateLimiter


@pytest.mark.asyncio
async def test_requests_within_limit_do_not_wait(clock):
    limiter = RateLimiter(3, 60.0, clock=clock, sleep=clock.sleep)

    for _ in range(3):
        await limiter.wait_for_slot()

    assert clock.sleeps == []
    assert limiter.count == 3


@pytest.mark.asyncio
async def test_request_over_limit_waits_for_next_window(clock):
    limiter = RateLimiter(3, 60.0, clock=clock, sleep=clock.sleep)

    for _ in range(4):
        await limiter.wait_for_slot()

    assert clock.sleeps == [pytest.approx(60.0)]
    assert limiter.count == 1
    assert limiter.total_waits == 1


@pytest.mark.asyncio
async def test_window_resets_lazily(clock):
    limiter = RateLimiter(2, 60.0, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_slot()
    await limiter.wait_for_slot()

    clock.now += 61
    await limiter.wait_for_slot()

    assert clock.sleeps == []
    assert limiter.count == 1


@pytest.mark.asyncio
async def test_wait_covers_only_remaining_window(clock):
    limiter = RateLimiter(1, 60.0, clock=clock, sleep=clock.sleep)
    await limiter.wait_for_slot()

    clock.now += 45
    await limiter.wait_for_slot()

    assert clock.sleeps == [pytest.approx(15.0)]


@pytest.mark.asyncio
async def test_concurrent_callers_never_exceed_limit(clock):
    limiter = RateLimiter(2, 60.0, clock=clock, sleep=clock.sleep)
    granted = []

    async def caller():
        await limiter.wait_for_slot()
        granted.append(clock.now)

    await asyncio.gather(*(caller() for _ in range(5)))

    assert len(granted) == 5
    assert max(Counter(granted).values()) <= 2


def test_status_reports_remaining_requests(clock):
    limiter = RateLimiter(5, 60.0, clock=clock)
    limiter.count = 2

    status = limiter.get_status()

    assert status["current_count"] == 2
    assert status["remaining_requests"] == 3
    assert status["limit"] == 5
    assert status["resets_in"] == pytest.approx(60.0)


def test_status_treats_stale_window_as_empty(clock):
    limiter = RateLimiter(5, 60.0, clock=clock)
    limiter.count = 5
    clock.now += 120

    status = limiter.get_status()

    assert status["current_count"] == 0
    assert status["remaining_requests"] == 5
    assert status["resets_in"] == 0.0


def test_invalid_configuration_rejected():
    with pytest.raises(ValueError):
        RateLimiter(0, 60.0)
    with pytest.raises(ValueError):
        RateLimiter(10, 0)
