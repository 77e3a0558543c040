"""Retry policy abstraction.

Provides a declarative description of retry behaviour (exponential backoff
with jitter, retryable status codes and exception types) and executes an
async request-sending operation under it. Per-attempt logging is performed
here so callers don't duplicate it.

The attempt loop is driven by Tenacity: each attempt's outcome (response or
exception) is kept as a value and only surfaced once the policy decides to
stop, either because the outcome is final or the attempt budget is spent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from random import Random, SystemRandom
from typing import Any, TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
)

from ..constants import (
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_FRACTION,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_MS,
    RETRYABLE_STATUS_CODES,
)
from ..logs.logger import logger

_rand = SystemRandom()

T = TypeVar("T")

# Connection failures, resets and timeouts. Anything else is not retried.
DEFAULT_RETRIABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    TimeoutError,
    ConnectionError,
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Immutable retry configuration plus the logic to apply it.

    Delays are expressed in milliseconds. For attempt ``n`` (1-indexed) the
    wait is ``min(base_delay_ms * 2**(n-1), max_delay_ms)`` with a uniform
    integer jitter of ``± delay * jitter`` applied, clamped at zero.
    """

    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS
    jitter: float = RETRY_JITTER_FRACTION
    retry_on: frozenset[int] = RETRYABLE_STATUS_CODES
    retriable: tuple[type[BaseException], ...] = DEFAULT_RETRIABLE_EXCEPTIONS
    rng: Random | None = field(default=None, compare=False)
    sleep: Callable[[float], Awaitable[Any]] | None = field(default=None, compare=False)

    def base_delay_for(self, attempt: int) -> int:
        """Backoff for ``attempt`` (1-indexed) in ms, before jitter."""
        exponent = max(attempt - 1, 0)
        return int(min(self.base_delay_ms * (2**exponent), self.max_delay_ms))

    def compute_delay_ms(self, attempt: int) -> int:
        delay = self.base_delay_for(attempt)
        if self.jitter > 0:
            spread = int(delay * self.jitter)
            delay += (self.rng or _rand).randint(-spread, spread)
        return max(0, delay)

    def compute_delay(self, attempt: int) -> float:
        """Delay in seconds to wait after ``attempt`` (1-indexed) failed."""
        return self.compute_delay_ms(attempt) / 1000.0

    def is_retryable_status(self, status: int | None) -> bool:
        return status is not None and status in self.retry_on

    def is_retriable(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retriable)

    def _is_retryable_result(self, result: Any) -> bool:
        return self.is_retryable_status(getattr(result, "status", None))

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        context: Mapping[str, object] | None = None,
    ) -> T:
        """Run ``operation`` up to ``max_attempts`` times.

        A response whose ``status`` is retryable, or a retriable exception,
        triggers a sleep and another attempt while attempts remain. Any other
        response is returned as-is; any other exception is re-raised. Once the
        budget is spent the last response is returned or the last exception
        re-raised.

        Args:
            operation: Zero-argument callable returning an awaitable for one
                attempt. Plain lambdas wrapping a coroutine call are fine.
            context: Extra fields (``method``, ``url``) for retry log events.
        """
        log_context: dict[str, object] = {"method": "", "url": ""}
        log_context.update(context or {})
        max_attempts = max(1, self.max_attempts)

        def wait(retry_state: RetryCallState) -> float:
            return self.compute_delay(retry_state.attempt_number)

        def before_sleep(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            wait_time = retry_state.next_action.sleep if retry_state.next_action else 0.0
            fields = dict(
                log_context,
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                wait_time=round(wait_time, 3),
            )
            if outcome is not None and outcome.failed:
                exc = outcome.exception()
                logger.log_event(
                    "retry",
                    "exception",
                    level=logging.WARNING,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    **fields,
                )
            else:
                status = getattr(outcome.result(), "status", None) if outcome else None
                logger.log_event("retry", "status", level=logging.WARNING, status=status, **fields)

        def give_up(retry_state: RetryCallState) -> T:
            logger.log_event(
                "retry",
                "give_up",
                level=logging.WARNING,
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                **log_context,
            )
            # Last response is returned, last exception re-raised.
            return retry_state.outcome.result()  # type: ignore[union-attr]

        retrying = AsyncRetrying(
            sleep=self.sleep or asyncio.sleep,
            stop=stop_after_attempt(max_attempts),
            wait=wait,
            retry=retry_if_exception(self.is_retriable) | retry_if_result(self._is_retryable_result),
            before_sleep=before_sleep,
            retry_error_callback=give_up,
        )
        async def attempt() -> T:
            return await operation()

        return await retrying(attempt)


DEFAULT_RETRY_POLICY = RetryPolicy()

__all__ = [
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "DEFAULT_RETRIABLE_EXCEPTIONS",
]
