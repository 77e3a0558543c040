"""Access/refresh token cache on top of a ``TokenStore``."""

from __future__ import annotations

from ..constants import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    REFRESH_TOKEN_TTL_SECONDS,
    TOKEN_CACHE_TTL_SECONDS,
)
from .store import TokenStore


class TokenCache:
    """Holds the current access token and the refresh token under fixed keys.

    The two keys expire independently and are never written as a unit.
    """

    def __init__(self, store: TokenStore, *, default_ttl: float = TOKEN_CACHE_TTL_SECONDS) -> None:
        self.store = store
        self.default_ttl = default_ttl

    async def get_access_token(self) -> str | None:
        return await self.store.get(ACCESS_TOKEN_KEY)

    async def set_access_token(self, token: str, ttl: float | None = None) -> None:
        await self.store.set(ACCESS_TOKEN_KEY, token, self.default_ttl if ttl is None else ttl)

    async def clear_access_token(self) -> None:
        await self.store.delete(ACCESS_TOKEN_KEY)

    async def get_refresh_token(self) -> str | None:
        return await self.store.get(REFRESH_TOKEN_KEY)

    async def set_refresh_token(self, token: str, ttl: float = REFRESH_TOKEN_TTL_SECONDS) -> None:
        await self.store.set(REFRESH_TOKEN_KEY, token, ttl)

    async def clear(self) -> None:
        """Delete both cached tokens."""
        await self.store.delete(ACCESS_TOKEN_KEY)
        await self.store.delete(REFRESH_TOKEN_KEY)
