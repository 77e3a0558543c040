from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from ..constants import (
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_RECOVERY_TIMEOUT_SECONDS,
    ETIMS_PRODUCTION_URL,
    ETIMS_SANDBOX_URL,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    HTTP_REQUEST_TIMEOUT_SECONDS,
    PRODUCTION_BASE_URL,
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_FRACTION,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_MS,
    RETRYABLE_STATUS_CODES,
    SANDBOX_BASE_URL,
    TOKEN_CACHE_TTL_SECONDS,
)
from ..errors.internal import ConfigError
from ..rate.retry_policies import RetryPolicy
from ..utils.circuit_breaker import CircuitBreakerConfig

DEFAULT_CACHE_DIR = os.path.join(tempfile.gettempdir(), "kra-token-cache")

# Environment variable -> KraConfig field
ENV_FIELDS: dict[str, str] = {
    "KRA_CLIENT_ID": "client_id",
    "KRA_CLIENT_SECRET": "client_secret",
    "KRA_ENVIRONMENT": "environment",
    "KRA_SANDBOX_BASE_URL": "sandbox_base_url",
    "KRA_PROD_BASE_URL": "prod_base_url",
    "KRA_ETIMS_SANDBOX_URL": "etims_sandbox_url",
    "KRA_ETIMS_PROD_URL": "etims_prod_url",
    "KRA_CACHE_DRIVER": "cache_driver",
    "KRA_CACHE_TTL": "cache_ttl",
    "KRA_CACHE_DIR": "cache_dir",
    "KRA_REDIS_URL": "redis_url",
    "KRA_REDIS_PREFIX": "redis_prefix",
    "KRA_TIMEOUT": "timeout",
    "KRA_RETRY_ATTEMPTS": "retry_attempts",
    "KRA_ETIMS_CERT_PATH": "etims_cert_path",
    "KRA_ETIMS_KEY_PATH": "etims_key_path",
}


class RetryConfig(BaseModel):
    """Retry settings. Delays are in milliseconds.

    Accepts both the long field names and the short ``attempts`` /
    ``base_delay`` / ``max_delay`` keys.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(
        default=RETRY_MAX_ATTEMPTS, ge=1, validation_alias=AliasChoices("max_attempts", "attempts")
    )
    base_delay_ms: int = Field(
        default=RETRY_BASE_DELAY_MS, ge=0, validation_alias=AliasChoices("base_delay_ms", "base_delay")
    )
    max_delay_ms: int = Field(
        default=RETRY_MAX_DELAY_MS, ge=0, validation_alias=AliasChoices("max_delay_ms", "max_delay")
    )
    jitter: float = Field(default=RETRY_JITTER_FRACTION, ge=0.0, le=1.0)
    retry_on: frozenset[int] = RETRYABLE_STATUS_CODES

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            jitter=self.jitter,
            retry_on=frozenset(self.retry_on),
        )


class CircuitBreakerSettings(BaseModel):
    """Circuit breaker settings. ``recovery_timeout`` is in seconds."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    failure_threshold: int = Field(default=CIRCUIT_FAILURE_THRESHOLD, ge=1)
    recovery_timeout: float = Field(default=CIRCUIT_RECOVERY_TIMEOUT_SECONDS, ge=0)

    def to_breaker_config(self, name: str = "kra_api") -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            enabled=self.enabled,
            failure_threshold=self.failure_threshold,
            recovery_timeout=self.recovery_timeout,
            name=name,
        )


class KraConfig(BaseModel):
    """Static configuration for a ``KraClient``.

    Attributes:
        client_id: OAuth2 client ID (also sent as eTIMS ``X-API-Key``).
        client_secret: OAuth2 client secret; hidden from ``repr``.
        environment: ``sandbox`` or ``production``; selects the base URLs.
        cache_driver: Token store backend, ``memory``, ``file`` or ``redis``.
        cache_ttl: Access token TTL used when none is supplied, in seconds.
        timeout: Total HTTP request timeout in seconds.
        etims_cert_path: Client certificate for eTIMS mTLS.
        etims_key_path: Private key for eTIMS mTLS.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    environment: Literal["sandbox", "production"] = "sandbox"
    sandbox_base_url: str = SANDBOX_BASE_URL
    prod_base_url: str = PRODUCTION_BASE_URL
    etims_sandbox_url: str = ETIMS_SANDBOX_URL
    etims_prod_url: str = ETIMS_PRODUCTION_URL
    cache_driver: Literal["memory", "file", "redis"] = "file"
    cache_ttl: int = Field(default=TOKEN_CACHE_TTL_SECONDS, ge=1)
    cache_dir: str = DEFAULT_CACHE_DIR
    redis_url: str | None = None
    redis_prefix: str = "kra:"
    timeout: int = Field(default=HTTP_REQUEST_TIMEOUT_SECONDS, ge=1)
    connect_timeout: int = Field(default=HTTP_CONNECT_TIMEOUT_SECONDS, ge=1)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)
    etims_cert_path: str | None = None
    etims_key_path: str | None = None

    @field_validator("environment", "cache_driver", mode="before")
    @classmethod
    def _normalize_choice(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            # "array" is the historical name of the in-memory driver
            if v == "array":
                return "memory"
        return v

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KraConfig:
        """Create a config from a mapping.

        A top-level ``retry_attempts`` is applied to ``retry.max_attempts``
        unless the ``retry`` section sets it explicitly.

        Raises:
            ConfigError: When a value fails validation.
        """
        payload = dict(data)
        attempts = payload.pop("retry_attempts", None)
        if attempts is not None:
            retry = payload.get("retry")
            retry_data = dict(retry) if isinstance(retry, Mapping) else {}
            if "max_attempts" not in retry_data and "attempts" not in retry_data:
                retry_data["max_attempts"] = attempts
            payload["retry"] = retry_data
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ConfigError(f"Invalid KRA configuration: {e}") from e

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> KraConfig:
        """Create a config from ``KRA_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            **overrides: Field values taking precedence over the environment.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for name, field_name in ENV_FIELDS.items():
            value = env.get(name)
            if value is not None and value != "":
                data[field_name] = value
        data.update(overrides)
        return cls.from_dict(data)

    @property
    def is_sandbox(self) -> bool:
        return self.environment == "sandbox"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def base_url(self) -> str:
        return (self.sandbox_base_url if self.is_sandbox else self.prod_base_url).rstrip("/")

    @property
    def etims_base_url(self) -> str:
        return (self.etims_sandbox_url if self.is_sandbox else self.etims_prod_url).rstrip("/")

    @property
    def has_etims_mtls(self) -> bool:
        return self.etims_cert_path is not None and self.etims_key_path is not None

    def validate_credentials(self) -> None:
        """Raise ``ConfigError`` when the client ID or secret is empty."""
        if not self.client_id.strip():
            raise ConfigError("KRA client_id is required")
        if not self.client_secret.get_secret_value().strip():
            raise ConfigError("KRA client_secret is required")

    def redacted(self) -> dict[str, Any]:
        """Return a loggable view of the configuration without secrets."""
        return {
            "client_id": self.client_id,
            "client_secret": "***REDACTED***",
            "environment": self.environment,
            "base_url": self.base_url,
            "etims_base_url": self.etims_base_url,
            "cache_driver": self.cache_driver,
            "cache_ttl": self.cache_ttl,
            "timeout": self.timeout,
            "retry_attempts": self.retry.max_attempts,
            "etims_cert_path": "***SET***" if self.etims_cert_path else None,
            "etims_key_path": "***SET***" if self.etims_key_path else None,
            "retry_config": self.retry.model_dump(),
            "circuit_breaker_config": self.circuit_breaker.model_dump(),
        }
