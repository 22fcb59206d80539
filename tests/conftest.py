"""Shared test fixtures and configuration for all tests.

This conftest.py provides a controllable clock and sleep so retry loops can be
tested without waiting on the wall clock.
"""

from datetime import datetime, timedelta, timezone

import pytest

from retrykit.config import Settings

EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manual clock whose sleeps advance time instantly.

    Usage:
        def test_something(fake_clock):
            retrier = Retrier(..., clock=fake_clock, sleep=fake_clock.sleep)
            ...
            assert fake_clock.sleeps == [0.1, 0.1]
    """

    def __init__(self, start: datetime = EPOCH):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)

    async def async_sleep(self, seconds: float) -> None:
        self.sleep(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fresh FakeClock starting at EPOCH."""
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with safe defaults for local testing (no .env lookup).

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RETRY_MAX_ATTEMPTS = 5
    """
    return Settings(
        _env_file=None,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        RETRY_MAX_ATTEMPTS=3,
        RETRY_BACKOFF_MS=100,
        RETRY_MAX_DELAY_MS=30_000,
        RETRY_JITTER_MS=0,
        RETRY_TIMEOUT_SECONDS=None,
        HTTP_BASE_URL="http://api.test",
        HTTP_TIMEOUT_SECONDS=5.0,
        METRICS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def create_failing_operation():
    """Factory fixture for operations that raise ``n`` times, then return ``value``.

    Usage:
        def test_something(create_failing_operation):
            operation = create_failing_operation(2)
            ...
            assert operation.calls == 3
    """

    def _create(n: int, error_type: type[Exception] = ConnectionError, value="ok"):
        def operation():
            operation.calls += 1
            if operation.calls <= n:
                raise error_type(f"failure {operation.calls}")
            return value

        operation.calls = 0
        return operation

    return _create
