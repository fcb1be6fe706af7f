"""
Tests for the retrying backoff executor
"""

import pytest
from unittest.mock import AsyncMock

from verifyx.backoff import BackoffExecutor
from verifyx.errors import (
    ExhaustedRetries,
    FatalOracleError,
    RateLimited,
    TransientOracleFailure,
)
from verifyx.rate_limiter import RateLimiter


@pytest.fixture
def limiter(clock):
    return RateLimiter(1000, 60.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def executor(limiter, sleeps):
    return BackoffExecutor(limiter, sleep=sleeps)


def test_delay_grows_geometrically_and_is_capped(executor):
    assert executor.delay_for(1) == pytest.approx(0.5)
    assert executor.delay_for(2) == pytest.approx(0.75)
    assert executor.delay_for(3) == pytest.approx(1.125)
    assert executor.delay_for(10) == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_success_on_first_call(executor, limiter, sleeps):
    operation = AsyncMock(return_value="ok")

    assert await executor.execute_with_retry(operation) == "ok"
    assert operation.await_count == 1
    assert sleeps.calls == []
    assert limiter.count == 1


@pytest.mark.asyncio
async def test_transient_failure_is_retried_then_counters_reset(executor, sleeps):
    operation = AsyncMock(side_effect=[TransientOracleFailure("503"), "ok"])

    assert await executor.execute_with_retry(operation) == "ok"
    assert sleeps.calls == [pytest.approx(0.5)]
    assert executor.attempt == 0


@pytest.mark.asyncio
async def test_unclassified_exception_is_treated_as_transient(executor, sleeps):
    operation = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

    assert await executor.execute_with_retry(operation) == "ok"
    assert sleeps.calls == [pytest.approx(0.5)]


@pytest.mark.asyncio
async def test_exhausted_retries_chain_last_error(executor, limiter, sleeps):
    last = TransientOracleFailure("still down")
    operation = AsyncMock(side_effect=[TransientOracleFailure("down"),
                                       TransientOracleFailure("down"), last])

    with pytest.raises(ExhaustedRetries) as excinfo:
        await executor.execute_with_retry(operation)

    assert excinfo.value.attempts == 3
    assert excinfo.value.last_error is last
    assert excinfo.value.__cause__ is last
    assert sleeps.calls == [pytest.approx(0.5), pytest.approx(0.75)]
    assert limiter.count == 3
    assert executor.attempt == 0


@pytest.mark.asyncio
async def test_rate_limit_honors_server_hint(executor, sleeps):
    operation = AsyncMock(side_effect=[RateLimited(retry_after=7), "ok"])

    assert await executor.execute_with_retry(operation) == "ok"
    assert sleeps.calls == [7]


@pytest.mark.asyncio
async def test_rate_limit_without_hint_uses_fallback(executor, sleeps):
    operation = AsyncMock(side_effect=[RateLimited(), "ok"])

    assert await executor.execute_with_retry(operation) == "ok"
    assert sleeps.calls == [pytest.approx(30.0)]


@pytest.mark.asyncio
async def test_rate_limit_does_not_consume_attempts(executor, sleeps):
    operation = AsyncMock(side_effect=[
        RateLimited(retry_after=1),
        TransientOracleFailure("503"),
        RateLimited(retry_after=1),
        TransientOracleFailure("503"),
        "ok",
    ])

    assert await executor.execute_with_retry(operation) == "ok"
    assert sleeps.calls == [1, pytest.approx(0.5), 1, pytest.approx(0.75)]


@pytest.mark.asyncio
async def test_rate_limit_allowance_is_bounded(limiter, sleeps):
    executor = BackoffExecutor(limiter, max_rate_limit_retries=2, sleep=sleeps)
    operation = AsyncMock(side_effect=RateLimited())

    with pytest.raises(ExhaustedRetries) as excinfo:
        await executor.execute_with_retry(operation)

    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, RateLimited)
    assert sleeps.calls == [pytest.approx(30.0), pytest.approx(30.0)]


@pytest.mark.asyncio
async def test_fatal_error_is_not_retried(executor, sleeps):
    operation = AsyncMock(side_effect=FatalOracleError("401 unauthorized"))

    with pytest.raises(FatalOracleError):
        await executor.execute_with_retry(operation)

    assert operation.await_count == 1
    assert sleeps.calls == []


def test_max_attempts_must_be_positive(limiter):
    with pytest.raises(ValueError):
        BackoffExecutor(limiter, max_attempts=0)


@pytest.mark.asyncio
async def test_next_failure_after_success_starts_from_first_delay(executor, sleeps):
    await executor.execute_with_retry(
        AsyncMock(side_effect=[TransientOracleFailure("a"), TransientOracleFailure("b"), "ok"])
    )
    await executor.execute_with_retry(AsyncMock(side_effect=[TransientOracleFailure("c"), "ok"]))

    assert sleeps.calls == [pytest.approx(0.5), pytest.approx(0.75), pytest.approx(0.5)]
