"""Tests for the client error taxonomy and error logging helpers."""

import logging

import pytest
from freezegun import freeze_time

from kra_client.errors import (
    ApiError,
    AuthError,
    AuthErrorKind,
    CircuitOpenError,
    ConfigError,
    KraError,
    RateLimitContext,
    RateLimitError,
    TokenStoreError,
    TransportError,
    error_category,
    log_error,
)
from kra_client.logging_config import error_aggregator


class TestKraError:
    def test_defaults(self):
        err = KraError("boom")
        assert str(err) == "boom"
        assert err.http_status is None
        assert err.error_code is None
        assert err.details == []

    def test_details_copied(self):
        details = {"field": "pin"}
        err = KraError("x", details=details)
        details["field"] = "changed"
        assert err.details == {"field": "pin"}

    def test_to_dict(self):
        err = ApiError("Not found", http_status=404, error_code="NOT_FOUND")
        assert err.to_dict() == {
            "type": "ApiError",
            "message": "Not found",
            "http_status": 404,
            "error_code": "NOT_FOUND",
            "details": [],
        }

    @pytest.mark.parametrize(
        "cls", [ConfigError, TransportError, AuthError, RateLimitError, ApiError]
    )
    def test_all_errors_share_base(self, cls):
        assert issubclass(cls, KraError)


class TestAuthError:
    @pytest.mark.parametrize(
        "kind,status",
        [
            (AuthErrorKind.INVALID_CREDENTIALS, 401),
            (AuthErrorKind.TOKEN_EXPIRED, 401),
            (AuthErrorKind.TOKEN_REFRESH_FAILED, 401),
            (AuthErrorKind.INVALID_GRANT, 400),
            (AuthErrorKind.MISSING_CREDENTIALS, 400),
            (AuthErrorKind.OAUTH_SERVER_ERROR, 500),
        ],
    )
    def test_default_status_per_kind(self, kind, status):
        err = AuthError("x", kind)
        assert err.http_status == status
        assert err.error_code == kind.value

    def test_explicit_status_wins(self):
        assert AuthError("x", AuthErrorKind.INVALID_GRANT, http_status=401).http_status == 401

    def test_predicates(self):
        assert AuthError().is_invalid_credentials
        assert AuthError("x", AuthErrorKind.TOKEN_EXPIRED).is_token_expired

    def test_unknown_oauth_error_is_server_error(self):
        err = AuthError.from_oauth_response({"error": "server_error"}, 503)
        assert err.kind is AuthErrorKind.OAUTH_SERVER_ERROR
        assert err.details == {"error": "server_error"}


class TestRateLimitError:
    def test_from_headers(self):
        err = RateLimitError.from_headers(
            {"retry-after": "12", "x-ratelimit-limit": "100", "x-ratelimit-used": "40"}
        )
        assert err.http_status == 429
        assert err.error_code == "RATE_LIMIT_EXCEEDED"
        assert err.retry_after == 12
        assert err.remaining == 60

    def test_without_headers(self):
        err = RateLimitError()
        assert err.retry_after is None
        assert err.remaining is None
        assert err.reset_at() is None

    @freeze_time("2024-05-01 12:00:00")
    def test_reset_at(self):
        err = RateLimitError(context=RateLimitContext(retry_after=30))
        assert err.reset_at() == pytest.approx(1714564800 + 30)


class TestApiError:
    @pytest.mark.parametrize(
        "status,predicate",
        [
            (400, "is_bad_request"),
            (401, "is_unauthorized"),
            (403, "is_forbidden"),
            (404, "is_not_found"),
            (500, "is_server_error"),
            (503, "is_server_error"),
        ],
    )
    def test_status_predicates(self, status, predicate):
        assert getattr(ApiError(http_status=status), predicate)

    def test_code_predicates(self):
        assert ApiError(error_code=ApiError.TCC_NOT_FOUND).is_tcc_not_found
        assert ApiError(error_code=ApiError.TCC_EXPIRED).is_tcc_expired
        assert not ApiError(error_code=ApiError.TCC_EXPIRED).is_pin_not_found

    def test_numeric_code_stringified(self):
        err = ApiError.from_response({"code": 4001}, 400)
        assert err.error_code == "4001"

    def test_body_kept(self):
        err = ApiError.from_response({"message": "m", "extra": 1}, 422)
        assert err.body == {"message": "m", "extra": 1}


class TestCircuitOpenAndStoreErrors:
    def test_circuit_open(self):
        err = CircuitOpenError("kra_api")
        assert err.circuit_name == "kra_api"
        assert err.error_code == "CIRCUIT_OPEN"
        assert "kra_api" in err.message
        assert err.http_status is None

    def test_token_store(self):
        err = TokenStoreError("disk full", operation="set")
        assert err.operation == "set"
        assert err.error_code == "TOKEN_STORE_ERROR"


class TestErrorHandling:
    @pytest.mark.parametrize(
        "error,category",
        [
            (TransportError("x"), "network"),
            (TimeoutError(), "network"),
            (AuthError(), "auth"),
            (RateLimitError(), "ratelimit"),
            (CircuitOpenError("c"), "circuit"),
            (TokenStoreError("x"), "token_store"),
            (ApiError(), "api"),
            (ConfigError("x"), "internal"),
            (ValueError("x"), "unknown"),
        ],
    )
    def test_error_category(self, error, category):
        assert error_category(error) == category

    def test_log_error_records_status(self, caplog):
        caplog.set_level(logging.ERROR, logger="kra_client")
        log_error("PIN lookup failed", ApiError("Not found", http_status=404))
        message = caplog.records[-1].getMessage()
        assert message.startswith("[API] PIN lookup failed: Not found")
        assert "http_status=404" in message
        assert error_aggregator.get_error_summary()["api"]["total_count"] == 1

    def test_log_error_level(self, caplog):
        caplog.set_level(logging.WARNING, logger="kra_client")
        log_error("slow", RateLimitError(), level=logging.WARNING)
        assert caplog.records[-1].levelno == logging.WARNING
