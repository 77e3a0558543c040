"""Utility package for the KRA client.

Exposed classes:
    CircuitBreaker: Three-state breaker gating requests to the KRA API.
    CircuitBreakerConfig: Immutable breaker settings.
    CircuitBreakerState: CLOSED / OPEN / HALF_OPEN.
"""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerSnapshot,
    CircuitBreakerState,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerSnapshot",
    "CircuitBreakerState",
]
