"""Top-level KRA GavaConnect client."""

from __future__ import annotations

from typing import Any

import aiohttp

from .api.resources import (
    ESlipResource,
    EtimsResource,
    ExciseResource,
    PinResource,
    ReturnsResource,
    TaxpayerResource,
    TccResource,
)
from .auth_token.cache import TokenCache
from .auth_token.client import TokenAuthenticator
from .auth_token.store import RedisTokenStore, TokenStore, create_token_store
from .config.model import KraConfig
from .http.sender import AiohttpSender
from .http.transport import ResilientTransport, Sender
from .logs.logger import logger
from .rate.retry_policies import RetryPolicy
from .utils.circuit_breaker import CircuitBreaker


class KraClient:
    """Entry point owning the request pipeline and the endpoint resources.

    One client holds exactly one circuit breaker, retry policy, transport,
    token cache and authenticator. Resources are created on first access and
    share them.

    Args:
        config: Client configuration. Read from ``KRA_*`` environment
            variables when omitted.
        session: Existing aiohttp session to send through; never closed by
            the client.
        token_store: Token backend overriding ``config.cache_driver``.
        sender: Raw sender overriding the aiohttp one (used by tests).
        retry_policy: Retry policy overriding ``config.retry``.
        circuit_breaker: Breaker overriding ``config.circuit_breaker``.

    Raises:
        ConfigError: When the client ID or secret is missing.
    """

    def __init__(
        self,
        config: KraConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        token_store: TokenStore | None = None,
        sender: Sender | None = None,
        retry_policy: RetryPolicy | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        self.config = config or KraConfig.from_env()
        self.config.validate_credentials()

        self._sender = sender if sender is not None else AiohttpSender(
            session,
            timeout=self.config.timeout,
            connect_timeout=self.config.connect_timeout,
        )
        self.circuit_breaker = (
            circuit_breaker
            if circuit_breaker is not None
            else CircuitBreaker(self.config.circuit_breaker.to_breaker_config())
        )
        self.retry_policy = retry_policy if retry_policy is not None else self.config.retry.to_policy()
        self.transport = ResilientTransport(
            self._sender,
            circuit_breaker=self.circuit_breaker,
            retry_policy=self.retry_policy,
        )
        self.token_store = token_store if token_store is not None else create_token_store(self.config)
        self._owns_store = token_store is None
        self.token_cache = TokenCache(self.token_store, default_ttl=self.config.cache_ttl)
        self.auth = TokenAuthenticator(
            self.transport,
            self.token_cache,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret.get_secret_value(),
            base_url=self.config.base_url,
        )
        self._resources: dict[str, Any] = {}
        logger.log_event(
            "client",
            "created",
            environment=self.config.environment,
            cache_driver=self.config.cache_driver,
        )

    def _resource(self, name: str, factory: Any) -> Any:
        resource = self._resources.get(name)
        if resource is None:
            resource = factory()
            self._resources[name] = resource
        return resource

    @property
    def pin(self) -> PinResource:
        return self._resource(
            "pin", lambda: PinResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def tcc(self) -> TccResource:
        return self._resource(
            "tcc", lambda: TccResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def taxpayer(self) -> TaxpayerResource:
        return self._resource(
            "taxpayer", lambda: TaxpayerResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def returns(self) -> ReturnsResource:
        return self._resource(
            "returns", lambda: ReturnsResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def eslip(self) -> ESlipResource:
        return self._resource(
            "eslip", lambda: ESlipResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def excise(self) -> ExciseResource:
        return self._resource(
            "excise", lambda: ExciseResource(self.transport, self.auth, self.config.base_url)
        )

    @property
    def etims(self) -> EtimsResource:
        return self._resource(
            "etims",
            lambda: EtimsResource(
                self.transport,
                self.auth,
                self.config.etims_base_url,
                api_key=self.config.client_id,
            ),
        )

    async def clear_tokens(self) -> None:
        await self.auth.clear_tokens()

    def reset_circuit_breaker(self) -> None:
        self.transport.reset_circuit_breaker()

    async def close(self) -> None:
        """Release the session and token backend created by this client."""
        if isinstance(self._sender, AiohttpSender):
            await self._sender.close()
        if self._owns_store and isinstance(self.token_store, RedisTokenStore):
            await self.token_store.close()
        logger.log_event("client", "closed")

    async def __aenter__(self) -> KraClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
