"""Header parsing utilities for KRA rate limiting.

Separated from the error types to allow isolated testing and reuse.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

RETRY_AFTER_HEADER = "Retry-After"
RATE_LIMIT_LIMIT_HEADER = "X-RateLimit-Limit"
RATE_LIMIT_USED_HEADER = "X-RateLimit-Used"


@dataclass(frozen=True)
class RateLimitContext:
    """Rate limit state reported by the remote service on a 429.

    Attributes:
        retry_after: Seconds until requests may resume, or None if unknown.
        limit: Maximum number of requests allowed in the window.
        used: Number of requests already consumed in the window.
    """

    retry_after: int | None = None
    limit: int | None = None
    used: int | None = None

    @property
    def remaining(self) -> int | None:
        if self.limit is not None and self.used is not None:
            return self.limit - self.used
        return None


def get_header(headers: Mapping[str, object], name: str) -> str | None:
    """Case-insensitive header lookup returning the first value if multi-valued."""
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if isinstance(key, str) and key.lower() == lowered:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value)


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        # HTTP-date form of Retry-After is not interpreted
        return None


def parse_rate_limit_headers(headers: Mapping[str, object]) -> RateLimitContext:
    """Parse ``Retry-After``, ``X-RateLimit-Limit`` and ``X-RateLimit-Used``.

    Missing or unparsable headers yield None fields.
    """
    return RateLimitContext(
        retry_after=_parse_int(get_header(headers, RETRY_AFTER_HEADER)),
        limit=_parse_int(get_header(headers, RATE_LIMIT_LIMIT_HEADER)),
        used=_parse_int(get_header(headers, RATE_LIMIT_USED_HEADER)),
    )


__all__ = [
    "RateLimitContext",
    "get_header",
    "parse_rate_limit_headers",
]
