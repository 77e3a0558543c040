"""Token storage, caching and OAuth2 acquisition."""

from .cache import TokenCache
from .client import TokenAuthenticator
from .store import (
    FileTokenStore,
    MemoryTokenStore,
    RedisTokenStore,
    TokenStore,
    create_token_store,
)

__all__ = [
    "TokenStore",
    "MemoryTokenStore",
    "FileTokenStore",
    "RedisTokenStore",
    "create_token_store",
    "TokenCache",
    "TokenAuthenticator",
]
