"""TTL-aware key/value storage backends for OAuth tokens.

Each backend implements the ``TokenStore`` capability (async ``get`` /
``set`` / ``delete``). A miss and an expired entry look the same to callers.
Backend failures are raised as ``TokenStoreError`` and never retried here.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import tempfile
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..errors.internal import ConfigError, TokenStoreError
from ..logs.logger import logger

if TYPE_CHECKING:
    from ..config.model import KraConfig

TOKEN_FILE_NAME = "kra_tokens.json"


class TokenStore(Protocol):
    """Capability interface for token persistence."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        ...


class MemoryTokenStore:
    """Process-local store. Entries expire lazily on read."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: float) -> None:
        with self._lock:
            if ttl <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileTokenStore:
    """JSON file store shared between processes on the same host.

    The whole file is rewritten atomically (temp file + ``os.replace``) on
    every change. Blocking I/O runs in the default executor under an
    ``asyncio.Lock`` so writes from one event loop never interleave.
    Expiry uses wall-clock epoch seconds since entries outlive the process.
    """

    def __init__(self, directory: str | os.PathLike[str], filename: str = TOKEN_FILE_NAME) -> None:
        self.path = Path(directory) / filename
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            data = await self._run(self._load)
            entry = data.get(key)
            if not isinstance(entry, dict):
                return None
            expires_at = entry.get("expires_at")
            value = entry.get("value")
            if not isinstance(value, str) or not isinstance(expires_at, int | float):
                return None
            if time.time() >= expires_at:
                data.pop(key, None)
                await self._run(self._write, data)
                return None
            return value

    async def set(self, key: str, value: str, ttl: float) -> None:
        async with self._lock:
            data = await self._run(self._load)
            if ttl <= 0:
                data.pop(key, None)
            else:
                data[key] = {"value": value, "expires_at": time.time() + ttl}
            await self._run(self._write, data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await self._run(self._load)
            if key in data:
                del data[key]
                await self._run(self._write, data)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except OSError as e:
            raise TokenStoreError(
                f"Token file access failed: {type(e).__name__}: {e}", operation=func.__name__.lstrip("_")
            ) from e

    def _load(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError:
            self._quarantine()
            return {}
        if not isinstance(data, dict):
            self._quarantine()
            return {}
        return data

    def _quarantine(self) -> None:
        """Move an unreadable token file aside so the next write starts clean."""
        logger.log_event("token_store", "corrupted", level=logging.WARNING, path=str(self.path))
        backup = self.path.with_name(f"{self.path.name}.corrupt")
        try:
            os.replace(self.path, backup)
        except OSError as e:
            logger.log_event(
                "token_store", "backup_failed", level=logging.WARNING, path=str(backup), error=str(e)
            )

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                temp_path = tmp.name
                json.dump(data, tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
            temp_path = None
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass


class RedisTokenStore:
    """Store backed by a ``redis.asyncio.Redis`` client.

    Expiry is delegated to Redis (``SET key value EX ttl``).
    """

    def __init__(self, client: Any, *, prefix: str = "") -> None:
        self._client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "") -> RedisTokenStore:
        return cls(Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as e:
            raise TokenStoreError(f"Redis get failed: {e}", operation="get") from e
        if raw is None:
            return None
        return raw.decode() if isinstance(raw, bytes) else str(raw)

    async def set(self, key: str, value: str, ttl: float) -> None:
        try:
            if ttl <= 0:
                await self._client.delete(self._key(key))
                return
            await self._client.set(self._key(key), value, ex=max(1, math.ceil(ttl)))
        except RedisError as e:
            raise TokenStoreError(f"Redis set failed: {e}", operation="set") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as e:
            raise TokenStoreError(f"Redis delete failed: {e}", operation="delete") from e

    async def close(self) -> None:
        await self._client.aclose()


def create_token_store(config: KraConfig) -> TokenStore:
    """Build the backend selected by ``config.cache_driver``."""
    driver = config.cache_driver
    if driver == "memory":
        return MemoryTokenStore()
    if driver == "file":
        return FileTokenStore(config.cache_dir)
    if driver == "redis":
        if not config.redis_url:
            raise ConfigError("KRA_REDIS_URL is required for the redis cache driver")
        return RedisTokenStore.from_url(config.redis_url, prefix=config.redis_prefix)
    raise ConfigError(f"Unsupported cache driver: {driver}")


__all__ = [
    "TokenStore",
    "MemoryTokenStore",
    "FileTokenStore",
    "RedisTokenStore",
    "create_token_store",
    "TOKEN_FILE_NAME",
]
