"""Circuit breaker pattern implementation for external service protection.

This module provides a three-state circuit breaker that stops sending
requests to the KRA API once it appears persistently broken, then probes
cautiously before fully resuming.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..constants import (
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_RECOVERY_TIMEOUT_SECONDS,
    CIRCUIT_SUCCESSES_TO_CLOSE,
)
from ..logs.logger import logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    enabled: bool = True
    failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD
    recovery_timeout: float = CIRCUIT_RECOVERY_TIMEOUT_SECONDS
    success_threshold: int = CIRCUIT_SUCCESSES_TO_CLOSE
    name: str = "kra_api"


@dataclass(frozen=True)
class CircuitBreakerSnapshot:
    """Point-in-time view of the breaker counters."""

    state: CircuitBreakerState
    failure_count: int
    success_count: int
    last_failure_time: float | None


class CircuitBreaker:
    """Three-state circuit breaker gating whole logical requests.

    CLOSED: Normal operation, requests pass through
    OPEN: Service is failing, requests fail fast
    HALF_OPEN: Testing if service has recovered

    The breaker never executes anything itself: callers ask
    ``can_execute()`` once per logical request and report the outcome with
    ``record_success()`` / ``record_failure()``. All state access is guarded
    by a lock so it can be shared between threads and tasks; the lock is
    never held across I/O.
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize circuit breaker with configuration.

        Args:
            config: Circuit breaker configuration
            clock: Monotonic time source, injectable for tests
        """
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float | None = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def state(self) -> CircuitBreakerState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def success_count(self) -> int:
        with self._lock:
            return self._success_count

    @property
    def last_failure_time(self) -> float | None:
        with self._lock:
            return self._last_failure_time

    def snapshot(self) -> CircuitBreakerSnapshot:
        with self._lock:
            return CircuitBreakerSnapshot(
                state=self._state,
                failure_count=self._failure_count,
                success_count=self._success_count,
                last_failure_time=self._last_failure_time,
            )

    def can_execute(self) -> bool:
        """Return whether a logical request may be attempted.

        The only side effect is the OPEN -> HALF_OPEN transition once the
        recovery timeout has elapsed since the last failure.
        """
        if not self.config.enabled:
            return True

        with self._lock:
            if self._state is not CircuitBreakerState.OPEN:
                return True
            if not self._should_attempt_recovery():
                return False
            self._state = CircuitBreakerState.HALF_OPEN
            self._success_count = 0

        logger.log_event("circuit", "half_open", name=self.name)
        return True

    def record_success(self) -> None:
        """Record a successful logical request."""
        if not self.config.enabled:
            return

        closed = False
        with self._lock:
            if self._state is CircuitBreakerState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._reset()
                    closed = True
            elif self._state is CircuitBreakerState.CLOSED:
                self._failure_count = 0

        if closed:
            logger.log_event("circuit", "closed", name=self.name)

    def record_failure(self) -> None:
        """Record a failed logical request and potentially open the circuit."""
        if not self.config.enabled:
            return

        event: str | None = None
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            failures = self._failure_count

            if self._state is CircuitBreakerState.HALF_OPEN:
                # Any failure while probing re-opens the circuit
                self._state = CircuitBreakerState.OPEN
                self._success_count = 0
                event = "reopened"
            elif (
                self._state is CircuitBreakerState.CLOSED
                and self._failure_count >= self.config.failure_threshold
            ):
                self._state = CircuitBreakerState.OPEN
                self._success_count = 0
                event = "opened"

        if event:
            logger.log_event(
                "circuit", event, level=logging.WARNING, name=self.name, failures=failures
            )

    def reset(self) -> None:
        """Force the breaker back to CLOSED with zeroed counters."""
        with self._lock:
            self._reset()
        logger.log_event("circuit", "reset", name=self.name)

    def _should_attempt_recovery(self) -> bool:
        """Check if enough time has passed to attempt recovery."""
        if self._last_failure_time is None:
            return True
        return (self._clock() - self._last_failure_time) >= self.config.recovery_timeout

    def _reset(self) -> None:
        """Reset circuit breaker to initial state."""
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = None

    @property
    def is_open(self) -> bool:
        """Check if circuit breaker is currently open."""
        return self.state == CircuitBreakerState.OPEN

    @property
    def is_closed(self) -> bool:
        """Check if circuit breaker is currently closed."""
        return self.state == CircuitBreakerState.CLOSED

    @property
    def is_half_open(self) -> bool:
        """Check if circuit breaker is currently half-open."""
        return self.state == CircuitBreakerState.HALF_OPEN
