"""OAuth2 client-credentials token acquisition."""

from __future__ import annotations

import logging
from typing import Any

from ..constants import (
    TOKEN_DEFAULT_EXPIRES_IN_SECONDS,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    TOKEN_PATH,
)
from ..errors.handling import log_error
from ..errors.internal import ApiError, AuthError, AuthErrorKind, TransportError
from ..http.models import HttpRequest
from ..http.transport import ResilientTransport
from ..logs.logger import logger
from .cache import TokenCache


def _parse_expires_in(raw: Any) -> int:
    if isinstance(raw, bool):
        return TOKEN_DEFAULT_EXPIRES_IN_SECONDS
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return TOKEN_DEFAULT_EXPIRES_IN_SECONDS


class TokenAuthenticator:
    """Provides bearer tokens for the KRA API.

    Tokens are served from the cache while it holds one. On a miss the
    client-credentials grant is exchanged at ``{base_url}/oauth/token``
    through the shared transport, without an Authorization header.

    Concurrent misses are not serialized: two callers may both run the
    exchange, in which case the last write to the cache wins.

    Args:
        transport: Shared resilient transport.
        cache: Token cache holding access and refresh tokens.
        client_id: OAuth2 client ID.
        client_secret: OAuth2 client secret.
        base_url: API base URL the token path is appended to.
    """

    def __init__(
        self,
        transport: ResilientTransport,
        cache: TokenCache,
        *,
        client_id: str,
        client_secret: str,
        base_url: str,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.client_id = client_id
        self._client_secret = client_secret
        self.base_url = base_url.rstrip("/")

    @property
    def token_url(self) -> str:
        return f"{self.base_url}{TOKEN_PATH}"

    async def get_token(self) -> str:
        """Return a valid access token, exchanging credentials on a cache miss.

        Raises:
            AuthError: The token endpoint rejected the request or answered
                without an access token.
            RateLimitError: The token endpoint answered HTTP 429.
            CircuitOpenError: The breaker refused the exchange.
            TokenStoreError: The cache backend failed.
        """
        cached = await self.cache.get_access_token()
        if cached:
            logger.log_event("auth", "cache_hit", level=logging.DEBUG)
            return cached
        return await self._request_new_token()

    async def refresh_token(self) -> str:
        """Drop the cached access token and obtain a new one.

        The cached refresh token is not redeemed; a fresh client-credentials
        exchange is performed instead.
        """
        logger.log_event("auth", "refresh_forced")
        await self.cache.clear_access_token()
        return await self._request_new_token()

    async def clear_tokens(self) -> None:
        """Delete both cached tokens. Tokens already handed out stay usable."""
        await self.cache.clear()
        logger.log_event("auth", "tokens_cleared")

    def _token_request(self) -> HttpRequest:
        return HttpRequest(
            method="POST",
            url=self.token_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            data={
                "client_id": self.client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            },
        )

    async def _request_new_token(self) -> str:
        logger.log_event("auth", "token_request")
        try:
            response = await self.transport.send(self._token_request())
        except ApiError as e:
            error = AuthError.from_oauth_response(e.body, e.http_status or 500)
            self._report_rejection(error)
            raise error from e
        except TransportError as e:
            error = AuthError(
                f"Failed to obtain access token: {e.message}",
                AuthErrorKind.OAUTH_SERVER_ERROR,
            )
            log_error("Token exchange failed", error)
            raise error from e

        body = response.json_or_empty()
        if response.status != 200:
            error = AuthError.from_oauth_response(body, response.status)
            self._report_rejection(error)
            raise error

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            error = AuthError(
                "Invalid OAuth2 response: missing access_token",
                AuthErrorKind.OAUTH_SERVER_ERROR,
                http_status=response.status,
                details=body,
            )
            log_error("Malformed token response", error)
            raise error

        expires_in = _parse_expires_in(body.get("expires_in", TOKEN_DEFAULT_EXPIRES_IN_SECONDS))
        ttl = expires_in - TOKEN_EXPIRY_BUFFER_SECONDS
        await self.cache.set_access_token(access_token, ttl)

        refresh = body.get("refresh_token")
        if refresh:
            await self.cache.set_refresh_token(str(refresh))

        logger.log_event("auth", "token_obtained", ttl=ttl)
        return access_token

    def _report_rejection(self, error: AuthError) -> None:
        logger.log_event(
            "auth", "token_rejected", level=logging.WARNING,
            error=error.error_code, status=error.http_status,
        )
        log_error("Token endpoint rejected the request", error)
