"""Tests for KraClient wiring and lifecycle."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from kra_client import KraClient
from kra_client.api.resources import EtimsResource, PinResource
from kra_client.auth_token.store import MemoryTokenStore, RedisTokenStore
from kra_client.config import KraConfig
from kra_client.constants import ACCESS_TOKEN_KEY
from kra_client.errors import ApiError, CircuitOpenError, ConfigError
from kra_client.http.sender import AiohttpSender
from kra_client.rate.retry_policies import RetryPolicy
from tests.fixtures.kra_fixtures import BASE_URL, PIN_VALID, KraApiSender, make_response


@pytest.fixture
def sender():
    return KraApiSender()


@pytest.fixture
def client(kra_config, sender, breaker, sleep):
    return KraClient(
        kra_config,
        sender=sender,
        circuit_breaker=breaker,
        retry_policy=RetryPolicy(max_attempts=1, sleep=sleep),
    )


class TestConstruction:
    def test_missing_credentials_rejected(self):
        with pytest.raises(ConfigError):
            KraClient(KraConfig(client_id="", client_secret="s", cache_driver="memory"))

    def test_reads_environment_when_no_config(self, monkeypatch):
        monkeypatch.setenv("KRA_CLIENT_ID", "env-client")
        monkeypatch.setenv("KRA_CLIENT_SECRET", "env-secret")
        monkeypatch.setenv("KRA_CACHE_DRIVER", "memory")
        client = KraClient()
        assert client.config.client_id == "env-client"
        assert isinstance(client.token_store, MemoryTokenStore)
        assert isinstance(client._sender, AiohttpSender)

    def test_components_built_from_config(self, kra_config):
        config = kra_config.model_copy(
            update={"retry": kra_config.retry.model_copy(update={"max_attempts": 5})}
        )
        client = KraClient(config, sender=KraApiSender())
        assert client.retry_policy.max_attempts == 5
        assert client.circuit_breaker.config.failure_threshold == 5
        assert client.transport.circuit_breaker is client.circuit_breaker
        assert client.transport.retry_policy is client.retry_policy
        assert client.auth.token_url == f"{BASE_URL}/oauth/token"
        assert client.token_cache.default_ttl == config.cache_ttl

    def test_injected_token_store_used(self, kra_config):
        store = MemoryTokenStore()
        client = KraClient(kra_config, sender=KraApiSender(), token_store=store)
        assert client.token_store is store
        assert client.token_cache.store is store

    @pytest.mark.asyncio
    async def test_empty_injected_store_kept_over_configured_driver(self, kra_config):
        config = kra_config.model_copy(update={"cache_driver": "file"})
        store = MemoryTokenStore()
        assert len(store) == 0
        client = KraClient(config, sender=KraApiSender(make_response(200, PIN_VALID)), token_store=store)
        assert client.token_store is store
        assert client._owns_store is False

        await client.pin.validate("A1")
        assert await store.get(ACCESS_TOKEN_KEY) == "abc"

    def test_creation_logged(self, kra_config, caplog):
        caplog.set_level("INFO", logger="kra_client")
        KraClient(kra_config, sender=KraApiSender())
        assert any("KRA client ready" in r.getMessage() for r in caplog.records)


class TestResources:
    def test_resources_are_created_once(self, client):
        assert isinstance(client.pin, PinResource)
        assert client.pin is client.pin
        assert client.etims is client.etims
        assert client.tcc is not client.pin

    def test_resources_share_pipeline(self, client):
        resources = [
            client.pin, client.tcc, client.taxpayer, client.returns,
            client.eslip, client.excise, client.etims,
        ]
        assert all(r.transport is client.transport for r in resources)
        assert all(r.auth is client.auth for r in resources)

    def test_etims_uses_its_own_base_url_and_client_id(self, client, kra_config):
        etims = client.etims
        assert isinstance(etims, EtimsResource)
        assert etims.base_url == kra_config.etims_base_url
        assert etims.api_key == "test-client"
        assert client.pin.base_url == kra_config.base_url

    @pytest.mark.asyncio
    async def test_end_to_end_pin_validation(self, client, sender):
        sender.add(make_response(200, PIN_VALID))
        result = await client.pin.validate("A123456789B")
        assert result.is_active
        assert sender.token_requests[0].data["client_secret"] == "test-secret"
        assert sender.api_requests[0].headers["Authorization"] == "Bearer abc"


class TestSharedBreaker:
    @pytest.mark.asyncio
    async def test_failures_across_resources_open_one_breaker(self, client, sender, breaker):
        sender.add(make_response(503), make_response(503), make_response(503))
        with pytest.raises(ApiError):
            await client.pin.validate("A1")
        with pytest.raises(ApiError):
            await client.tcc.validate("A1", "T1")
        with pytest.raises(ApiError):
            await client.excise.check("L1")
        assert breaker.is_open

        with pytest.raises(CircuitOpenError):
            await client.eslip.verify("PRN1")
        assert len(sender.api_requests) == 3

    @pytest.mark.asyncio
    async def test_reset_circuit_breaker(self, client, sender, breaker):
        for _ in range(3):
            breaker.record_failure()
        client.reset_circuit_breaker()
        assert breaker.is_closed
        sender.add(make_response(200, {"isValid": True}))
        assert await client.excise.is_valid("L1") is True


class TestTokens:
    @pytest.mark.asyncio
    async def test_clear_tokens_forces_new_exchange(self, client, sender):
        sender.add(make_response(200, PIN_VALID), make_response(200, PIN_VALID))
        await client.pin.validate("A1")
        await client.clear_tokens()
        await client.pin.validate("A1")
        assert len(sender.token_requests) == 2

    @pytest.mark.asyncio
    async def test_clients_with_separate_stores_do_not_share_tokens(self, kra_config):
        first_sender = KraApiSender(make_response(200, PIN_VALID))
        second_sender = KraApiSender(make_response(200, PIN_VALID))
        await KraClient(kra_config, sender=first_sender).pin.validate("A1")
        await KraClient(kra_config, sender=second_sender).pin.validate("A1")
        assert len(first_sender.token_requests) == 1
        assert len(second_sender.token_requests) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes_sender(self, kra_config):
        with patch.object(AiohttpSender, "close", new_callable=AsyncMock) as close:
            async with KraClient(kra_config) as client:
                assert isinstance(client._sender, AiohttpSender)
            close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_owned_redis_store_closed(self, kra_config):
        config = kra_config.model_copy(
            update={"cache_driver": "redis", "redis_url": "redis://localhost:6379/0"}
        )
        client = KraClient(config, sender=KraApiSender())
        assert isinstance(client.token_store, RedisTokenStore)
        with patch.object(RedisTokenStore, "close", new_callable=AsyncMock) as close:
            await client.close()
        close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_injected_redis_store_left_open(self, kra_config):
        redis_client = AsyncMock()
        store = RedisTokenStore(redis_client)
        client = KraClient(kra_config, sender=KraApiSender(), token_store=store)
        await client.close()
        redis_client.aclose.assert_not_called()

    @pytest.mark.asyncio
    async def test_supplied_session_not_closed(self, kra_config):
        session = AsyncMock()
        session.closed = False
        client = KraClient(kra_config, session=session)
        await client.close()
        session.close.assert_not_called()
