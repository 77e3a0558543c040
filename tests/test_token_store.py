"""Tests for token store backends and the token cache wrapper."""

from __future__ import annotations

import asyncio
import json
import os
import stat
from unittest.mock import AsyncMock

import pytest
from freezegun import freeze_time
from redis.exceptions import RedisError

from kra_client.auth_token.cache import TokenCache
from kra_client.auth_token.store import (
    TOKEN_FILE_NAME,
    FileTokenStore,
    MemoryTokenStore,
    RedisTokenStore,
    create_token_store,
)
from kra_client.config.model import KraConfig
from kra_client.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from kra_client.errors import ConfigError, TokenStoreError


class TestMemoryTokenStore:
    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_store):
        await memory_store.set("k", "v", 10)
        assert await memory_store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_miss(self, memory_store):
        assert await memory_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_expires_at_ttl(self, memory_store, clock):
        await memory_store.set("k", "v", 10)
        clock.advance(9.99)
        assert await memory_store.get("k") == "v"
        clock.advance(0.01)
        assert await memory_store.get("k") is None
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_delete(self, memory_store):
        await memory_store.set("k", "v", 10)
        await memory_store.delete("k")
        await memory_store.delete("k")
        assert await memory_store.get("k") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -5])
    async def test_non_positive_ttl_removes_key(self, memory_store, ttl):
        await memory_store.set("k", "old", 10)
        await memory_store.set("k", "new", ttl)
        assert await memory_store.get("k") is None

    @pytest.mark.asyncio
    async def test_keys_expire_independently(self, memory_store, clock):
        await memory_store.set("a", "1", 5)
        await memory_store.set("b", "2", 50)
        clock.advance(10)
        assert await memory_store.get("a") is None
        assert await memory_store.get("b") == "2"


class TestFileTokenStore:
    @pytest.mark.asyncio
    async def test_round_trip_across_instances(self, tmp_path):
        await FileTokenStore(tmp_path).set("k", "v", 100)
        assert await FileTokenStore(tmp_path).get("k") == "v"

    @pytest.mark.asyncio
    async def test_expiry_uses_wall_clock(self, tmp_path):
        store = FileTokenStore(tmp_path)
        with freeze_time("2024-05-01 12:00:00") as frozen:
            await store.set(ACCESS_TOKEN_KEY, "abc", 3300)
            frozen.move_to("2024-05-01 12:54:59")
            assert await store.get(ACCESS_TOKEN_KEY) == "abc"
            frozen.move_to("2024-05-01 12:55:00")
            assert await store.get(ACCESS_TOKEN_KEY) is None

        data = json.loads((tmp_path / TOKEN_FILE_NAME).read_text())
        assert ACCESS_TOKEN_KEY not in data

    @pytest.mark.asyncio
    async def test_file_is_owner_only(self, tmp_path):
        await FileTokenStore(tmp_path).set("k", "v", 100)
        mode = stat.S_IMODE(os.stat(tmp_path / TOKEN_FILE_NAME).st_mode)
        assert mode == 0o600

    @pytest.mark.asyncio
    async def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "nested" / "cache"
        await FileTokenStore(target).set("k", "v", 100)
        assert (target / TOKEN_FILE_NAME).exists()

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = FileTokenStore(tmp_path)
        await store.set("a", "1", 100)
        await store.set("b", "2", 100)
        await store.delete("a")
        await store.delete("never-set")
        assert await store.get("a") is None
        assert await store.get("b") == "2"

    @pytest.mark.asyncio
    async def test_non_positive_ttl_removes_key(self, tmp_path):
        store = FileTokenStore(tmp_path)
        await store.set("k", "v", 100)
        await store.set("k", "v2", 0)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_corrupted_file_recovered_as_empty(self, tmp_path, caplog):
        caplog.set_level("WARNING", logger="kra_client")
        path = tmp_path / TOKEN_FILE_NAME
        path.write_text("{not json", encoding="utf-8")
        store = FileTokenStore(tmp_path)

        assert await store.get("k") is None
        assert (tmp_path / f"{TOKEN_FILE_NAME}.corrupt").exists()
        assert any("Corrupted token cache" in r.getMessage() for r in caplog.records)

        await store.set("k", "v", 100)
        assert await store.get("k") == "v"

    @pytest.mark.asyncio
    async def test_non_object_json_treated_as_empty(self, tmp_path):
        (tmp_path / TOKEN_FILE_NAME).write_text("[1, 2, 3]", encoding="utf-8")
        assert await FileTokenStore(tmp_path).get("k") is None

    @pytest.mark.asyncio
    async def test_malformed_entry_is_a_miss(self, tmp_path):
        (tmp_path / TOKEN_FILE_NAME).write_text(
            json.dumps({"k": {"value": 5, "expires_at": "soon"}}), encoding="utf-8"
        )
        assert await FileTokenStore(tmp_path).get("k") is None

    @pytest.mark.asyncio
    async def test_io_error_raises_token_store_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        store = FileTokenStore(blocker)
        with pytest.raises(TokenStoreError):
            await store.get("k")
        with pytest.raises(TokenStoreError):
            await store.set("k", "v", 100)

    @pytest.mark.asyncio
    async def test_concurrent_writes_keep_every_key(self, tmp_path):
        store = FileTokenStore(tmp_path)
        keys = [f"key-{i}" for i in range(10)]

        await asyncio.gather(*(store.set(key, key.upper(), 100) for key in keys))
        values = await asyncio.gather(*(store.get(key) for key in keys), store.set("extra", "x", 100))

        assert values[:-1] == [key.upper() for key in keys]
        data = json.loads((tmp_path / TOKEN_FILE_NAME).read_text())
        assert set(data) == {*keys, "extra"}
        assert await FileTokenStore(tmp_path).get("key-3") == "KEY-3"


class TestRedisTokenStore:
    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, client):
        client.get.return_value = b"abc"
        store = RedisTokenStore(client, prefix="kra:")
        assert await store.get(ACCESS_TOKEN_KEY) == "abc"
        client.get.assert_awaited_once_with("kra:kra_oauth_token")

    @pytest.mark.asyncio
    async def test_get_miss(self, client):
        client.get.return_value = None
        assert await RedisTokenStore(client).get("k") is None

    @pytest.mark.asyncio
    async def test_set_uses_expiry_in_seconds(self, client):
        store = RedisTokenStore(client, prefix="p:")
        await store.set("k", "v", 3300)
        client.set.assert_awaited_once_with("p:k", "v", ex=3300)

    @pytest.mark.asyncio
    async def test_fractional_ttl_rounds_up(self, client):
        await RedisTokenStore(client).set("k", "v", 0.2)
        client.set.assert_awaited_once_with("k", "v", ex=1)

    @pytest.mark.asyncio
    async def test_non_positive_ttl_deletes(self, client):
        await RedisTokenStore(client).set("k", "v", -1)
        client.delete.assert_awaited_once_with("k")
        client.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_errors_wrapped(self, client):
        client.get.side_effect = RedisError("down")
        client.set.side_effect = RedisError("down")
        client.delete.side_effect = RedisError("down")
        store = RedisTokenStore(client)
        with pytest.raises(TokenStoreError) as exc_info:
            await store.get("k")
        assert exc_info.value.operation == "get"
        with pytest.raises(TokenStoreError):
            await store.set("k", "v", 10)
        with pytest.raises(TokenStoreError):
            await store.delete("k")

    @pytest.mark.asyncio
    async def test_close(self, client):
        await RedisTokenStore(client).close()
        client.aclose.assert_awaited_once()


class TestCreateTokenStore:
    def test_memory(self):
        config = KraConfig(client_id="id", client_secret="s", cache_driver="memory")
        assert isinstance(create_token_store(config), MemoryTokenStore)

    def test_file(self, tmp_path):
        config = KraConfig(client_id="id", client_secret="s", cache_driver="file", cache_dir=str(tmp_path))
        store = create_token_store(config)
        assert isinstance(store, FileTokenStore)
        assert store.path == tmp_path / TOKEN_FILE_NAME

    def test_redis(self):
        config = KraConfig(
            client_id="id",
            client_secret="s",
            cache_driver="redis",
            redis_url="redis://localhost:6379/0",
            redis_prefix="app:",
        )
        store = create_token_store(config)
        assert isinstance(store, RedisTokenStore)
        assert store.prefix == "app:"

    def test_redis_requires_url(self):
        config = KraConfig(client_id="id", client_secret="s", cache_driver="redis")
        with pytest.raises(ConfigError):
            create_token_store(config)


class TestTokenCache:
    @pytest.mark.asyncio
    async def test_access_token_default_ttl(self, memory_store, clock):
        cache = TokenCache(memory_store)
        await cache.set_access_token("abc")
        clock.advance(3299)
        assert await cache.get_access_token() == "abc"
        clock.advance(1)
        assert await cache.get_access_token() is None

    @pytest.mark.asyncio
    async def test_custom_default_ttl(self, memory_store, clock):
        cache = TokenCache(memory_store, default_ttl=60)
        await cache.set_access_token("abc")
        clock.advance(60)
        assert await cache.get_access_token() is None

    @pytest.mark.asyncio
    async def test_keys(self, memory_store):
        cache = TokenCache(memory_store)
        await cache.set_access_token("abc", 100)
        await cache.set_refresh_token("xyz")
        assert await memory_store.get(ACCESS_TOKEN_KEY) == "abc"
        assert await memory_store.get(REFRESH_TOKEN_KEY) == "xyz"

    @pytest.mark.asyncio
    async def test_clear_access_token_keeps_refresh(self, memory_store):
        cache = TokenCache(memory_store)
        await cache.set_access_token("abc", 100)
        await cache.set_refresh_token("xyz")
        await cache.clear_access_token()
        assert await cache.get_access_token() is None
        assert await cache.get_refresh_token() == "xyz"

    @pytest.mark.asyncio
    async def test_clear(self, memory_store):
        cache = TokenCache(memory_store)
        await cache.set_access_token("abc", 100)
        await cache.set_refresh_token("xyz")
        await cache.clear()
        assert await cache.get_access_token() is None
        assert await cache.get_refresh_token() is None
