# tests/services/test_circuit_breaker.py
"""
Tests for the circuit breaker implementation.
"""

import time
from unittest.mock import Mock

import pytest

from app.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from app.services.exceptions import ProviderUnavailableError, SymbolNotFoundError


def fail(breaker: CircuitBreaker, exc: Exception | None = None) -> None:
    with pytest.raises(type(exc) if exc else RuntimeError):
        with breaker:
            raise exc or RuntimeError("boom")


class TestCircuitBreakerInit:
    """Tests for circuit breaker initialization."""

    def test_default_values(self):
        breaker = CircuitBreaker(name="test")

        assert breaker.name == "test"
        assert breaker.failure_threshold == 5
        assert breaker.recovery_timeout == 60.0
        assert breaker.half_open_max_calls == 1
        assert breaker.state == CircuitState.CLOSED

    def test_invalid_failure_threshold(self):
        with pytest.raises(ValueError, match="failure_threshold must be at least 1"):
            CircuitBreaker(name="test", failure_threshold=0)

    def test_invalid_recovery_timeout(self):
        with pytest.raises(ValueError, match="recovery_timeout cannot be negative"):
            CircuitBreaker(name="test", recovery_timeout=-1)

    def test_invalid_half_open_max_calls(self):
        with pytest.raises(ValueError, match="half_open_max_calls must be at least 1"):
            CircuitBreaker(name="test", half_open_max_calls=0)


class TestClosedState:
    """Tests for the closed state."""

    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(name="test", failure_threshold=3)

        for _ in range(3):
            fail(breaker)

        assert breaker.state == CircuitState.OPEN

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(name="test", failure_threshold=2)

        fail(breaker)
        with breaker:
            pass
        fail(breaker)

        assert breaker.state == CircuitState.CLOSED

    def test_excluded_exception_is_not_a_failure(self):
        breaker = CircuitBreaker(
            name="test",
            failure_threshold=1,
            excluded_exceptions=(SymbolNotFoundError,),
        )

        fail(breaker, SymbolNotFoundError("DOGE", "test"))

        assert breaker.state == CircuitState.CLOSED
        assert breaker.stats.successful_calls == 1

    def test_exceptions_propagate(self):
        breaker = CircuitBreaker(name="test")

        with pytest.raises(ProviderUnavailableError):
            with breaker:
                raise ProviderUnavailableError("test", "down")


class TestOpenState:
    """Tests for the open state."""

    def test_rejects_calls(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=60)
        fail(breaker)

        with pytest.raises(CircuitBreakerOpen) as exc_info:
            with breaker:
                pytest.fail("call should not run")

        assert exc_info.value.breaker_name == "test"
        assert 0 < exc_info.value.time_remaining <= 60
        assert breaker.stats.rejected_calls == 1

    def test_force_open(self):
        breaker = CircuitBreaker(name="test")
        breaker.force_open()

        assert breaker.is_open


class TestHalfOpenState:
    """Tests for recovery through half-open."""

    def test_half_open_after_timeout(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=0.05)
        fail(breaker)

        time.sleep(0.1)

        assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_success_closes(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=0.05)
        fail(breaker)
        time.sleep(0.1)

        with breaker:
            pass

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=0.05)
        fail(breaker)
        time.sleep(0.1)

        fail(breaker)

        assert breaker.state == CircuitState.OPEN

    def test_half_open_limits_trial_calls(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=0.05)
        fail(breaker)
        time.sleep(0.1)

        with breaker:
            with pytest.raises(CircuitBreakerOpen):
                with breaker:
                    pass


class TestDecoratorAndReset:
    """Tests for decorator usage and manual reset."""

    def test_decorator(self):
        breaker = CircuitBreaker(name="test")
        func = Mock(return_value=42)

        wrapped = breaker(func)

        assert wrapped(1, key="v") == 42
        func.assert_called_once_with(1, key="v")
        assert breaker.stats.total_calls == 1

    def test_reset(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1)
        fail(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        with breaker:
            pass
