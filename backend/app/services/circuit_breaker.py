# backend/app/services/circuit_breaker.py
"""
Circuit breaker guarding calls to external price sources.

States:
    CLOSED    - calls pass through, consecutive failures are counted
    OPEN      - calls are rejected with CircuitBreakerOpen
    HALF_OPEN - after recovery_timeout, a limited number of probe calls pass

Transitions:
    CLOSED -> OPEN       failure_threshold consecutive failures
    OPEN -> HALF_OPEN    recovery_timeout elapsed since the last failure
    HALF_OPEN -> CLOSED  a probe succeeds
    HALF_OPEN -> OPEN    a probe fails

Usage:
    breaker = CircuitBreaker(name="price-source-coinbase_public")

    try:
        with breaker:
            quote = source.fetch_quote("BTC")
    except CircuitBreakerOpen:
        ...  # move on to the next source
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Callable, TypeVar, Any

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised instead of calling the guarded service while the breaker is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until a probe call will be allowed
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreakerStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


@dataclass
class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Attributes:
        name: Identifier used in logs and in CircuitBreakerOpen
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds the circuit stays open
        half_open_max_calls: Probe calls allowed while half-open
        excluded_exceptions: Exceptions that do not count as failures
            (e.g. an unknown symbol says nothing about source health)
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    half_open_max_calls: int = 1
    excluded_exceptions: tuple[type[Exception], ...] = field(default_factory=tuple)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitBreakerStats = field(default_factory=CircuitBreakerStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh_state()
            return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        """Snapshot of the counters."""
        with self._lock:
            return CircuitBreakerStats(**vars(self._stats))

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    # Callers of the underscore helpers below must hold self._lock

    def _refresh_state(self) -> None:
        if self._state == CircuitState.OPEN and self._seconds_until_probe() == 0.0:
            self._transition_to(CircuitState.HALF_OPEN)

    def _seconds_until_probe(self) -> float:
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._opened_at = time.monotonic()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        else:
            self._failure_count = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}': {old_state.value} -> {new_state.value}")

    def __enter__(self) -> "CircuitBreaker":
        """
        Raises:
            CircuitBreakerOpen: If the call is not allowed right now
        """
        with self._lock:
            self._stats.total_calls += 1
            self._refresh_state()

            allowed = self._state == CircuitState.CLOSED
            if self._state == CircuitState.HALF_OPEN and self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                allowed = True

            if not allowed:
                self._stats.rejected_calls += 1
                raise CircuitBreakerOpen(self.name, self._seconds_until_probe())
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            if exc_val is None or isinstance(exc_val, self.excluded_exceptions):
                self._stats.successful_calls += 1
                if self._state == CircuitState.HALF_OPEN:
                    self._transition_to(CircuitState.CLOSED)
                else:
                    self._failure_count = 0
            else:
                self._stats.failed_calls += 1
                self._failure_count += 1
                if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                    self._transition_to(CircuitState.OPEN)
        return False

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with self:
                return func(*args, **kwargs)
        return wrapper

    def reset(self) -> None:
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Open the circuit now, e.g. when a source is known to be down."""
        with self._lock:
            self._transition_to(CircuitState.OPEN)
