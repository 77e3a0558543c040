"""
Configuration constants for the KRA GavaConnect client

This module contains the defaults used throughout the client.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, logs a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, logs a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Token lifetimes
TOKEN_EXPIRY_BUFFER_SECONDS = _get_env_int(
    "KRA_TOKEN_EXPIRY_BUFFER_SECONDS", 300
)  # Subtracted from expires_in before caching
TOKEN_DEFAULT_EXPIRES_IN_SECONDS = _get_env_int(
    "KRA_TOKEN_DEFAULT_EXPIRES_IN_SECONDS", 3600
)  # Assumed when the token endpoint omits expires_in
REFRESH_TOKEN_TTL_SECONDS = _get_env_int(
    "KRA_REFRESH_TOKEN_TTL_SECONDS", 86400
)  # Refresh tokens are kept for 24h
TOKEN_CACHE_TTL_SECONDS = _get_env_int(
    "KRA_TOKEN_CACHE_TTL_SECONDS", 3300
)  # Access token TTL when none is given

# Retry/backoff constants
RETRY_MAX_ATTEMPTS = _get_env_int("KRA_RETRY_MAX_ATTEMPTS", 3)
RETRY_BASE_DELAY_MS = _get_env_int("KRA_RETRY_BASE_DELAY_MS", 500)
RETRY_MAX_DELAY_MS = _get_env_int("KRA_RETRY_MAX_DELAY_MS", 10000)
RETRY_JITTER_FRACTION = _get_env_float("KRA_RETRY_JITTER_FRACTION", 0.20)
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Circuit breaker constants
CIRCUIT_FAILURE_THRESHOLD = _get_env_int(
    "KRA_CIRCUIT_FAILURE_THRESHOLD", 5
)  # Consecutive failures before opening
CIRCUIT_RECOVERY_TIMEOUT_SECONDS = _get_env_float(
    "KRA_CIRCUIT_RECOVERY_TIMEOUT_SECONDS", 60.0
)  # Time spent OPEN before a trial request
CIRCUIT_SUCCESSES_TO_CLOSE = 2  # Consecutive HALF_OPEN successes required to close

# Network/HTTP constants
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_int(
    "KRA_HTTP_REQUEST_TIMEOUT_SECONDS", 30
)  # Default HTTP request timeout
HTTP_CONNECT_TIMEOUT_SECONDS = _get_env_int(
    "KRA_HTTP_CONNECT_TIMEOUT_SECONDS", 10
)  # Connection establishment timeout

# Endpoints
TOKEN_PATH = "/oauth/token"
SANDBOX_BASE_URL = "https://api-sandbox.developer.go.ke"
PRODUCTION_BASE_URL = "https://api.developer.go.ke"
ETIMS_SANDBOX_URL = "https://etims-api-sbx.kra.go.ke"
ETIMS_PRODUCTION_URL = "https://etims-api.kra.go.ke/etims-api"

# Token cache keys
ACCESS_TOKEN_KEY = "kra_oauth_token"
REFRESH_TOKEN_KEY = "kra_oauth_refresh_token"
