"""Client error taxonomy and error logging helpers."""

from .handling import error_category, log_error  # noqa: F401
from .internal import (  # noqa: F401
    OAUTH_ERROR_KINDS,
    ApiError,
    AuthError,
    AuthErrorKind,
    CircuitOpenError,
    ConfigError,
    KraError,
    RateLimitContext,
    RateLimitError,
    TokenStoreError,
    TransportError,
)

__all__ = [
    "KraError",
    "ConfigError",
    "TransportError",
    "CircuitOpenError",
    "TokenStoreError",
    "AuthError",
    "AuthErrorKind",
    "OAUTH_ERROR_KINDS",
    "RateLimitError",
    "RateLimitContext",
    "ApiError",
    "error_category",
    "log_error",
]
