"""Raw aiohttp-backed sender: one request in, one fully read response out."""

from __future__ import annotations

import aiohttp

from ..constants import HTTP_CONNECT_TIMEOUT_SECONDS, HTTP_REQUEST_TIMEOUT_SECONDS
from .models import HttpRequest, HttpResponse


class AiohttpSender:
    """Sends ``HttpRequest`` objects over an ``aiohttp.ClientSession``.

    No retries, no status classification. aiohttp and timeout exceptions
    propagate unchanged so the retry layer can decide what to do with them.

    When no session is supplied one is created on first use (inside the
    running loop) and closed by ``close()``. A supplied session is never
    closed here.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: float = HTTP_REQUEST_TIMEOUT_SECONDS,
        connect_timeout: float = HTTP_CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=connect_timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def send(self, request: HttpRequest) -> HttpResponse:
        async with self.session.request(
            request.method,
            request.url,
            headers=request.headers,
            params=request.params,
            data=request.data,
            json=request.json,
            timeout=self.timeout,
        ) as resp:
            body = await resp.read()
            headers: dict[str, str] = {}
            for name, value in resp.headers.items():
                # First value wins for repeated headers
                headers.setdefault(name, value)
            return HttpResponse(status=resp.status, headers=headers, body=body)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None if self._owns_session else self._session
