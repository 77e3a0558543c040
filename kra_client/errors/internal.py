"""Centralized client error hierarchy.

These exceptions are the only failures surfaced to callers of the client.
Raw aiohttp / JSON / OS errors never escape the transport; they are wrapped
into one of the categories below.

Classes:
  KraError           – Base for all client errors.
  ConfigError        – Missing or invalid configuration.
  TransportError     – Connection failures and timeouts (no remote data).
  CircuitOpenError   – Request refused locally, no network attempt made.
  TokenStoreError    – Token cache backend failure.
  AuthError          – OAuth2 / token failures, categorized by AuthErrorKind.
  RateLimitError     – HTTP 429 signalled by the remote service.
  ApiError           – Any other HTTP >= 400 answer from the remote service.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from enum import Enum
from typing import Any

from ..rate.rate_limit_headers import RateLimitContext, parse_rate_limit_headers


class KraError(Exception):
    """Base class for all client errors with metadata support.

    Attributes:
        http_status: HTTP status associated with the failure, if any.
        error_code: Remote or local error code, if any.
        details: Structured details reported by the remote service.
    """

    def __init__(
        self,
        message: str = "",
        *,
        http_status: int | None = None,
        error_code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.error_code = error_code
        # Copy into a plain container to avoid unexpected mutations from caller.
        if isinstance(details, Mapping):
            self.details: Any = dict(details)
        elif isinstance(details, list):
            self.details = list(details)
        else:
            self.details = details if details is not None else []

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a dictionary for logging purposes."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "http_status": self.http_status,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigError(KraError):
    """Raised when required configuration is missing or invalid."""


class TransportError(KraError):
    """Raised for connection failures, resets and timeouts.

    Carries no structured remote data; the original exception is chained.
    """


class CircuitOpenError(KraError):
    """Raised when the circuit breaker refuses a request.

    No network attempt was made. Callers should apply their own backoff
    rather than retrying immediately.
    """

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Circuit breaker '{name}' is open. Too many consecutive failures.",
            error_code="CIRCUIT_OPEN",
        )
        self.circuit_name = name


class TokenStoreError(KraError):
    """Raised when the token cache backend fails to read, write or delete."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message, error_code="TOKEN_STORE_ERROR")
        self.operation = operation


class AuthErrorKind(str, Enum):
    """Subcategories of authentication failures."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    INVALID_GRANT = "INVALID_GRANT"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    OAUTH_SERVER_ERROR = "OAUTH_SERVER_ERROR"


_DEFAULT_AUTH_STATUS = {
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.TOKEN_EXPIRED: 401,
    AuthErrorKind.TOKEN_REFRESH_FAILED: 401,
    AuthErrorKind.INVALID_GRANT: 400,
    AuthErrorKind.MISSING_CREDENTIALS: 400,
    AuthErrorKind.OAUTH_SERVER_ERROR: 500,
}

OAUTH_ERROR_KINDS = {
    "invalid_client": AuthErrorKind.INVALID_CREDENTIALS,
    "invalid_grant": AuthErrorKind.INVALID_GRANT,
    "invalid_request": AuthErrorKind.MISSING_CREDENTIALS,
    "unauthorized_client": AuthErrorKind.INVALID_CREDENTIALS,
    "unsupported_grant_type": AuthErrorKind.INVALID_GRANT,
}


class AuthError(KraError):
    """Raised when obtaining or using an access token fails.

    Args:
        message: Descriptive error message.
        kind: Failure subcategory.
        http_status: Status returned by the server; defaults per kind.
        details: Decoded response body, if any.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        kind: AuthErrorKind = AuthErrorKind.INVALID_CREDENTIALS,
        *,
        http_status: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(
            message,
            http_status=http_status if http_status is not None else _DEFAULT_AUTH_STATUS[kind],
            error_code=kind.value,
            details=details,
        )
        self.kind = kind

    @classmethod
    def from_oauth_response(cls, body: Mapping[str, Any], http_status: int) -> AuthError:
        """Map an OAuth2 error body (``error`` / ``error_description``) to an AuthError."""
        error = body.get("error") or "invalid_request"
        description = body.get("error_description") or "An error occurred during authentication"
        kind = OAUTH_ERROR_KINDS.get(str(error), AuthErrorKind.OAUTH_SERVER_ERROR)
        return cls(str(description), kind, http_status=http_status, details=body)

    @property
    def is_invalid_credentials(self) -> bool:
        return self.kind is AuthErrorKind.INVALID_CREDENTIALS

    @property
    def is_token_expired(self) -> bool:
        return self.kind is AuthErrorKind.TOKEN_EXPIRED


class RateLimitError(KraError):
    """Raised when the remote service answers HTTP 429.

    Args:
        message: Optional error message.
        context: Rate limit details parsed from the response headers.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        context: RateLimitContext | None = None,
        http_status: int = 429,
    ) -> None:
        super().__init__(message, http_status=http_status, error_code="RATE_LIMIT_EXCEEDED")
        self.context = context or RateLimitContext()

    @classmethod
    def from_headers(cls, headers: Mapping[str, object], http_status: int = 429) -> RateLimitError:
        return cls(
            "Rate limit exceeded. Please try again later.",
            context=parse_rate_limit_headers(headers),
            http_status=http_status,
        )

    @property
    def retry_after(self) -> int | None:
        return self.context.retry_after

    @property
    def limit(self) -> int | None:
        return self.context.limit

    @property
    def used(self) -> int | None:
        return self.context.used

    @property
    def remaining(self) -> int | None:
        return self.context.remaining

    def reset_at(self) -> float | None:
        """Epoch seconds at which the rate limit is expected to reset."""
        if self.context.retry_after is None:
            return None
        return time.time() + self.context.retry_after


class ApiError(KraError):
    """Raised for HTTP >= 400 answers other than 429.

    Attributes:
        body: The decoded JSON body (empty dict when absent or not JSON).
    """

    PIN_NOT_FOUND = "PIN_NOT_FOUND"
    INVALID_PIN_FORMAT = "INVALID_PIN_FORMAT"
    TCC_NOT_FOUND = "TCC_NOT_FOUND"
    TCC_EXPIRED = "TCC_EXPIRED"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"

    def __init__(
        self,
        message: str = "API request failed",
        *,
        http_status: int | None = None,
        error_code: str | None = None,
        details: Any = None,
        body: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, http_status=http_status, error_code=error_code, details=details)
        self.body: dict[str, Any] = dict(body) if body else {}

    @classmethod
    def from_response(cls, body: Mapping[str, Any], http_status: int) -> ApiError:
        message = body.get("message") or body.get("error") or "API request failed"
        code = body.get("code") or body.get("error_code")
        details = body.get("details") or body.get("errors") or []
        return cls(
            str(message),
            http_status=http_status,
            error_code=str(code) if code is not None else None,
            details=details,
            body=body,
        )

    @property
    def is_not_found(self) -> bool:
        return self.http_status == 404

    @property
    def is_bad_request(self) -> bool:
        return self.http_status == 400

    @property
    def is_unauthorized(self) -> bool:
        return self.http_status == 401

    @property
    def is_forbidden(self) -> bool:
        return self.http_status == 403

    @property
    def is_server_error(self) -> bool:
        return self.http_status is not None and self.http_status >= 500

    @property
    def is_pin_not_found(self) -> bool:
        return self.error_code == self.PIN_NOT_FOUND

    @property
    def is_tcc_not_found(self) -> bool:
        return self.error_code == self.TCC_NOT_FOUND

    @property
    def is_tcc_expired(self) -> bool:
        return self.error_code == self.TCC_EXPIRED


__all__ = [
    "KraError",
    "ConfigError",
    "TransportError",
    "CircuitOpenError",
    "TokenStoreError",
    "AuthErrorKind",
    "AuthError",
    "OAUTH_ERROR_KINDS",
    "RateLimitError",
    "RateLimitContext",
    "ApiError",
]
