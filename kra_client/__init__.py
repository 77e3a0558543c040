"""Async client for the Kenya Revenue Authority GavaConnect APIs.

OAuth2 client-credentials tokens are cached and attached to every call;
transient failures are retried with backoff and a circuit breaker stops
traffic to a persistently failing upstream.
"""

from .client import KraClient
from .config import CircuitBreakerSettings, KraConfig, RetryConfig
from .errors import (
    ApiError,
    AuthError,
    AuthErrorKind,
    CircuitOpenError,
    ConfigError,
    KraError,
    RateLimitError,
    TokenStoreError,
    TransportError,
)

__version__ = "1.0.0"

__all__ = [
    "KraClient",
    "KraConfig",
    "RetryConfig",
    "CircuitBreakerSettings",
    "KraError",
    "ConfigError",
    "TransportError",
    "CircuitOpenError",
    "TokenStoreError",
    "AuthError",
    "AuthErrorKind",
    "RateLimitError",
    "ApiError",
    "__version__",
]
