"""Configuration package exports."""

from .model import (
    DEFAULT_CACHE_DIR,
    ENV_FIELDS,
    CircuitBreakerSettings,
    KraConfig,
    RetryConfig,
)

__all__ = [
    "KraConfig",
    "RetryConfig",
    "CircuitBreakerSettings",
    "ENV_FIELDS",
    "DEFAULT_CACHE_DIR",
]
