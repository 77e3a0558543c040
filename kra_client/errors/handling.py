from __future__ import annotations

import logging
from typing import Any

from ..logging_config import log_structured_error
from .internal import (
    ApiError,
    AuthError,
    CircuitOpenError,
    KraError,
    RateLimitError,
    TokenStoreError,
    TransportError,
)


def error_category(error: BaseException) -> str:
    """Map an exception to the aggregation category used in error reports."""
    if isinstance(error, TransportError | OSError | ConnectionError | TimeoutError):
        return "network"
    if isinstance(error, AuthError):
        return "auth"
    if isinstance(error, RateLimitError):
        return "ratelimit"
    if isinstance(error, CircuitOpenError):
        return "circuit"
    if isinstance(error, TokenStoreError):
        return "token_store"
    if isinstance(error, ApiError):
        return "api"
    if isinstance(error, KraError):
        return "internal"
    return "unknown"


def log_error(
    message: str,
    error: BaseException,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Logs an error message with the associated exception details.

    The error is categorized and recorded through structured logging for
    aggregation.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
        level: Logging level for the record.
    """
    error_context = dict(context or {})
    if isinstance(error, KraError) and error.http_status is not None:
        error_context.setdefault("http_status", error.http_status)
    log_structured_error(
        error_type=error_category(error),
        message=f"{message}: {str(error)}",
        exception=error if isinstance(error, Exception) else None,
        context=error_context,
        level=level,
    )


__all__ = ["error_category", "log_error"]
