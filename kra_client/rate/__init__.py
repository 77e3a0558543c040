"""Rate limiting and retry toolkit."""

from .rate_limit_headers import (  # noqa: F401
    RateLimitContext,
    get_header,
    parse_rate_limit_headers,
)
from .retry_policies import (  # noqa: F401
    DEFAULT_RETRIABLE_EXCEPTIONS,
    DEFAULT_RETRY_POLICY,
    RetryPolicy,
)

__all__ = [
    "RateLimitContext",
    "get_header",
    "parse_rate_limit_headers",
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "DEFAULT_RETRIABLE_EXCEPTIONS",
]
