"""
Unit tests for shared configuration, errors, retry and circuit breaker.
"""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError as ModelValidationError

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitBreakerState
from shared.config import SyncSettings, get_settings
from shared.errors import FetchError, WriteError
from shared.retry import RetryConfig, RetryError, compute_delay, retry_on_exception
from shared.test_helpers import FakeClock, TestEnvironment


class TestSyncSettings:
    """Test cases for SyncSettings."""

    def test_defaults(self):
        settings = SyncSettings(_env_file=None)

        assert settings.clients_ttl_seconds == 120
        assert settings.revenue_summary_ttl_seconds == 300
        assert settings.trends_ttl_seconds == 600
        assert settings.monthly_revenue_target == 75000.0

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DASHBOARD_CLIENTS_TTL_SECONDS", "45")
        monkeypatch.setenv("DASHBOARD_LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.clients_ttl_seconds == 45
        assert settings.log_level == "debug"

    def test_overrides(self):
        settings = get_settings(**TestEnvironment.get_test_settings_overrides())

        assert settings.env == "test"
        assert settings.retry_max_attempts == 2

    def test_resource_ttls(self):
        ttls = SyncSettings(stats_ttl_seconds=90).resource_ttls()

        assert ttls["client-stats"] == ttls["project-stats"] == 90
        assert ttls["monthly-trends"] == ttls["revenue-by-type"] == 600

    def test_ttl_must_be_positive(self):
        with pytest.raises(ModelValidationError):
            SyncSettings(default_ttl_seconds=0)


class TestErrors:
    def test_fetch_error_response(self):
        error = FetchError("clients", ConnectionError("offline"))

        response = error.to_response()

        assert response.code == "FETCH_ERROR"
        assert response.key == "clients"
        assert response.details["cause"] == "ConnectionError"

    def test_write_error(self):
        cause = ValueError("rejected")
        error = WriteError("projects", cause)

        assert error.code == "WRITE_ERROR"
        assert error.cause is cause
        assert "projects" in str(error)


class TestRetry:
    """Test cases for retry_on_exception."""

    def test_compute_delay_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)

        assert compute_delay(1, config) == 1.0
        assert compute_delay(3, config) == 4.0
        assert compute_delay(10, config) == 5.0

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        outcomes = [ConnectionError("a"), ConnectionError("b"), "ok"]
        calls = []

        @retry_on_exception((ConnectionError,), RetryConfig(max_attempts=3, base_delay=0.0, jitter=False))
        async def load():
            calls.append(1)
            outcome = outcomes[len(calls) - 1]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await load() == "ok"
        assert len(calls) == 3
        assert load.__name__ == "load"

    @pytest.mark.asyncio
    async def test_exhausted(self):
        @retry_on_exception((ConnectionError,), RetryConfig(max_attempts=2, base_delay=0.0))
        async def load():
            raise ConnectionError("down")

        with pytest.raises(RetryError) as exc_info:
            await load()

        assert exc_info.value.attempts == 2
        assert exc_info.value.code == "RETRY_EXHAUSTED"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_other_exceptions_not_retried(self):
        calls = []

        @retry_on_exception((ConnectionError,), RetryConfig(max_attempts=3, base_delay=0.0))
        async def load():
            calls.append(1)
            raise KeyError("x")

        with pytest.raises(KeyError):
            await load()

        assert len(calls) == 1


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker("test", failure_threshold=2, recovery_timeout=30.0, clock=clock)

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        failing = AsyncMock(side_effect=ConnectionError("down"))

        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        assert breaker.state is CircuitBreakerState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            await breaker.call(AsyncMock())

    @pytest.mark.asyncio
    async def test_half_open_then_closed(self, breaker, clock):
        failing = AsyncMock(side_effect=ConnectionError("down"))
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        clock.advance(30)
        assert breaker.state is CircuitBreakerState.HALF_OPEN

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.get_state()["state"] == "closed"
        assert breaker.get_state()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, breaker, clock):
        failing = AsyncMock(side_effect=ConnectionError("down"))
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)
        clock.advance(31)

        with pytest.raises(ConnectionError):
            await breaker.call(failing)

        assert breaker.state is CircuitBreakerState.OPEN
