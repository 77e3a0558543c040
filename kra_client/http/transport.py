"""Circuit-breaker + retry orchestration around a raw sender."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from ..errors.handling import log_error
from ..errors.internal import ApiError, CircuitOpenError, RateLimitError, TransportError
from ..logs.logger import logger
from ..rate.retry_policies import RetryPolicy
from ..utils.circuit_breaker import CircuitBreaker
from .models import HttpRequest, HttpResponse

# Raw transport failures that are wrapped into TransportError
TRANSPORT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    aiohttp.ClientError,
    TimeoutError,
    OSError,
)


class Sender(Protocol):
    """Anything able to send one request and return the read response."""

    async def send(self, request: HttpRequest) -> HttpResponse:
        ...


class ResilientTransport:
    """Dispatch pipeline: breaker gate, bounded retries, outcome classification.

    The breaker is consulted once per logical request and receives exactly
    one success or failure report per request that was allowed through.
    Every HTTP status >= 400, 4xx included, counts as a breaker failure.

    Args:
        sender: Raw sender performing single attempts.
        circuit_breaker: Breaker owned by this transport.
        retry_policy: Retry configuration applied around each attempt.
    """

    def __init__(
        self,
        sender: Sender,
        *,
        circuit_breaker: CircuitBreaker | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.sender = sender
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.retry_policy = retry_policy or RetryPolicy()

    def reset_circuit_breaker(self) -> None:
        self.circuit_breaker.reset()

    async def send(self, request: HttpRequest) -> HttpResponse:
        """Send ``request`` and return the response when its status is below 400.

        Raises:
            CircuitOpenError: The breaker refused the request; nothing was sent.
            TransportError: Connection failure or timeout after all attempts.
            RateLimitError: The final answer was HTTP 429.
            ApiError: The final answer was any other HTTP status >= 400.
        """
        breaker = self.circuit_breaker
        if not breaker.can_execute():
            logger.log_event(
                "circuit", "blocked", level=logging.WARNING, name=breaker.name,
                method=request.method, url=request.url,
            )
            raise CircuitOpenError(breaker.name)

        context = {"method": request.method, "url": request.url}
        try:
            response = await self.retry_policy.execute(
                lambda: self.sender.send(request), context=context
            )
        except TRANSPORT_EXCEPTIONS as e:
            breaker.record_failure()
            logger.log_event(
                "transport", "error", level=logging.WARNING,
                error_type=type(e).__name__, **context,
            )
            error = TransportError(f"Request failed: {type(e).__name__}: {e}")
            log_error("KRA request failed", error, context)
            raise error from e

        logger.log_event("transport", "response", level=logging.DEBUG, status=response.status, **context)

        if response.status == 429:
            breaker.record_failure()
            rate_error = RateLimitError.from_headers(response.headers)
            logger.log_event(
                "transport", "rate_limited", level=logging.WARNING,
                retry_after=rate_error.retry_after, **context,
            )
            raise rate_error

        if response.status >= 400:
            breaker.record_failure()
            logger.log_event(
                "transport", "api_error", level=logging.WARNING, status=response.status, **context
            )
            raise ApiError.from_response(response.json_or_empty(), response.status)

        breaker.record_success()
        return response
