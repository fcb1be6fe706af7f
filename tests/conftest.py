"""
Shared fixtures: fake time and quiet settings
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from verifyx.secure_config import SecureConfig
from verifyx.settings import Settings


class FakeClock:
    """Monotonic clock whose sleep advances time instead of waiting"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        target = self.now + seconds
        # Let other tasks run, as a real sleep would
        await asyncio.sleep(0)
        self.now = max(self.now, target)


class FakeWallClock:
    """Timezone-aware datetime clock for the progress tracker"""

    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def sleeps():
    """Recording no-op sleep"""
    recorded = []

    async def fake_sleep(seconds: float):
        recorded.append(seconds)

    fake_sleep.calls = recorded
    return fake_sleep


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        use_real_llm=False,
        rate_limit_requests=1000,
        batch_delay=0.0,
        log_level="WARNING",
    )


@pytest.fixture
def secure_config():
    return SecureConfig(config_paths=[], environ={})
