"""Shared request plumbing for KRA API resources."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..auth_token.client import TokenAuthenticator
from ..errors.internal import ApiError, AuthError, AuthErrorKind
from ..http.models import HttpRequest
from ..http.transport import ResilientTransport
from ..logs.logger import logger


class Resource:
    """Base class for endpoint groups.

    Every call obtains a bearer token, sends through the shared transport and
    decodes the JSON body. A 401 from the API drops the cached access token
    and the call is repeated once with a fresh one.

    Args:
        transport: Shared resilient transport.
        auth: Token provider.
        base_url: Base URL the endpoint paths are appended to.
    """

    def __init__(
        self,
        transport: ResilientTransport,
        auth: TokenAuthenticator,
        base_url: str,
    ) -> None:
        self.transport = transport
        self.auth = auth
        self.base_url = base_url.rstrip("/")

    def _headers(self, token: str, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {token}"
        headers["Accept"] = "application/json"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        extra = dict(headers or {})
        if json_body is not None:
            extra.setdefault("Content-Type", "application/json")
        url = f"{self.base_url}{endpoint}"

        def build(token: str) -> HttpRequest:
            return HttpRequest(
                method=method,
                url=url,
                headers=self._headers(token, extra),
                params=dict(params) if params else None,
                json=json_body,
            )

        token = await self.auth.get_token()
        try:
            response = await self.transport.send(build(token))
        except ApiError as e:
            if not e.is_unauthorized:
                raise
            logger.log_event(
                "auth", "unauthorized_retry", level=logging.WARNING, method=method, url=url
            )
        else:
            return response.json_or_empty()

        token = await self.auth.refresh_token()
        try:
            response = await self.transport.send(build(token))
        except ApiError as e:
            if e.is_unauthorized:
                raise AuthError(
                    "Access token rejected after refresh",
                    AuthErrorKind.TOKEN_EXPIRED,
                    details=e.body,
                ) from e
            raise
        return response.json_or_empty()

    async def get(self, endpoint: str, params: Mapping[str, str] | None = None) -> dict[str, Any]:
        return await self._request("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        data: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request("POST", endpoint, json_body=data if data is not None else {}, headers=headers)
