from __future__ import annotations

import pytest

from selfheal.core.resolver import ElementResolver
from selfheal.utils.config import Settings
from tests.fakes import FakeClock, FakeDriver


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, MAX_ATTEMPTS=3, RETRY_DELAY_SECONDS=2.0, STRATEGY_TIMEOUT_MS=20000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def make_resolver(driver: FakeDriver, clock: FakeClock, settings: Settings):
    """Resolver on the fake driver/clock; single-probe strategies and no retry delay unless overridden."""

    def _make(**kwargs) -> ElementResolver:
        kwargs.setdefault("strategy_timeout_ms", 0)
        kwargs.setdefault("poll_interval_ms", 250)
        kwargs.setdefault("delay_seconds", 0)
        kwargs.setdefault("sleep", clock.sleep)
        return ElementResolver(driver, settings=settings, clock=clock.monotonic, **kwargs)

    return _make
