from random import Random

import pytest

from kra_client.auth_token.cache import TokenCache
from kra_client.auth_token.client import TokenAuthenticator
from kra_client.auth_token.store import MemoryTokenStore
from kra_client.config.model import KraConfig
from kra_client.http.transport import ResilientTransport
from kra_client.rate.retry_policies import RetryPolicy
from kra_client.utils.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from tests.fixtures.kra_fixtures import BASE_URL, KraApiSender, ManualClock, SleepRecorder


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def retry_policy(sleep):
    """Default retry settings with a recorded, non-waiting sleep."""
    return RetryPolicy(sleep=sleep, rng=Random(1234))


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        CircuitBreakerConfig(failure_threshold=3, recovery_timeout=60.0, name="test_api"),
        clock=clock,
    )


@pytest.fixture
def memory_store(clock):
    return MemoryTokenStore(clock=clock)


@pytest.fixture
def token_cache(memory_store):
    return TokenCache(memory_store)


@pytest.fixture
def api_sender():
    return KraApiSender()


@pytest.fixture
def transport(api_sender, breaker, retry_policy):
    return ResilientTransport(api_sender, circuit_breaker=breaker, retry_policy=retry_policy)


@pytest.fixture
def authenticator(transport, token_cache):
    return TokenAuthenticator(
        transport,
        token_cache,
        client_id="test-client",
        client_secret="test-secret",
        base_url=BASE_URL,
    )


@pytest.fixture
def kra_config(tmp_path):
    return KraConfig(
        client_id="test-client",
        client_secret="test-secret",
        cache_driver="memory",
        cache_dir=str(tmp_path),
    )
