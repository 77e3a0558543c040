"""KRA GavaConnect endpoint groups.

Each resource issues one or two calls through the shared pipeline and maps
the JSON answer to a result model. If new endpoints are needed, prefer adding
focused methods here instead of sprinkling raw request logic across modules.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..auth_token.client import TokenAuthenticator
from ..http.transport import ResilientTransport
from .base import Resource
from .models import (
    ESlipResult,
    EtimsInvoice,
    EtimsResponse,
    NilReturnResult,
    PinResult,
    TaxpayerProfile,
    TccResult,
)


class PinResource(Resource):
    """KRA PIN validation."""

    VALIDATE_ENDPOINT = "/pin/validate"
    CHECK_BY_ID_ENDPOINT = "/pin/check-by-id"

    async def validate(self, pin: str) -> PinResult:
        data = await self.get(self.VALIDATE_ENDPOINT, {"pin": pin})
        return PinResult.from_response(data)

    async def validate_by_id(self, id_number: str) -> PinResult:
        """Look up the PIN registered against a national ID number."""
        data = await self.get(self.CHECK_BY_ID_ENDPOINT, {"idNumber": id_number})
        return PinResult.from_response(data)

    async def exists(self, pin: str) -> bool:
        result = await self.validate(pin)
        return result.is_valid is True


class TccResource(Resource):
    """Tax Compliance Certificate validation."""

    VALIDATE_ENDPOINT = "/tcc/validate"

    async def validate(self, pin: str, tcc_number: str) -> TccResult:
        data = await self.get(self.VALIDATE_ENDPOINT, {"pin": pin, "tccNumber": tcc_number})
        return TccResult.from_response(data)

    async def is_valid(self, pin: str, tcc_number: str) -> bool:
        """True when the certificate status is VALID."""
        result = await self.validate(pin, tcc_number)
        return result.is_valid_status


class TaxpayerResource(Resource):
    OBLIGATIONS_ENDPOINT = "/taxpayer/obligations"
    LIABILITIES_ENDPOINT = "/taxpayer/liabilities"

    async def get_obligations(self, pin: str) -> dict[str, Any]:
        return await self.get(self.OBLIGATIONS_ENDPOINT, {"pin": pin})

    async def get_liabilities(self, pin: str) -> dict[str, Any]:
        return await self.get(self.LIABILITIES_ENDPOINT, {"pin": pin})

    async def get_profile(self, pin: str) -> TaxpayerProfile:
        """Combine the ``items`` of the obligations and liabilities calls."""
        obligations = await self.get_obligations(pin)
        liabilities = await self.get_liabilities(pin)
        return TaxpayerProfile.from_response(
            {
                "kraPin": pin,
                "obligations": obligations.get("items") or [],
                "liabilities": liabilities.get("items") or [],
            }
        )


class ReturnsResource(Resource):
    """Tax return filing."""

    NIL_ENDPOINT = "/returns/nil"
    ITAX_ENDPOINT = "/itax/submit"

    async def file_nil(self, data: Mapping[str, Any]) -> NilReturnResult:
        result = await self.post(self.NIL_ENDPOINT, dict(data))
        return NilReturnResult.from_response(result)

    async def submit_to_itax(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return await self.post(self.ITAX_ENDPOINT, dict(data))


class ESlipResource(Resource):
    VERIFY_ENDPOINT = "/eslip/verify"

    async def verify(self, prn: str) -> ESlipResult:
        data = await self.get(self.VERIFY_ENDPOINT, {"prn": prn})
        return ESlipResult.from_response(data)

    async def is_valid(self, prn: str) -> bool:
        result = await self.verify(prn)
        return result.is_valid is True


class ExciseResource(Resource):
    """Excise license checks."""

    CHECK_ENDPOINT = "/excise/check"

    async def check(self, license_number: str) -> dict[str, Any]:
        return await self.get(self.CHECK_ENDPOINT, {"licenseNumber": license_number})

    async def is_valid(self, license_number: str) -> bool:
        result = await self.check(license_number)
        return result.get("isValid") is True


class EtimsResource(Resource):
    """eTIMS invoice, stock and purchase submission.

    Talks to the eTIMS base URL and adds ``X-API-Key`` carrying the client ID
    on every call.
    """

    INVOICE_ENDPOINT = "/etims/invoice"
    STOCK_ENDPOINT = "/etims/stock"
    PURCHASE_ENDPOINT = "/etims/purchase"

    def __init__(
        self,
        transport: ResilientTransport,
        auth: TokenAuthenticator,
        base_url: str,
        *,
        api_key: str,
    ) -> None:
        super().__init__(transport, auth, base_url)
        self.api_key = api_key

    def _etims_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "X-API-Key": self.api_key}

    async def submit_invoice(self, invoice: EtimsInvoice | Mapping[str, Any]) -> EtimsResponse:
        if not isinstance(invoice, EtimsInvoice):
            invoice = EtimsInvoice.from_dict(invoice)
        data = await self.post(
            self.INVOICE_ENDPOINT, invoice.to_request_dict(), headers=self._etims_headers()
        )
        return EtimsResponse.from_response(data)

    async def submit_stock_movement(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return await self.post(self.STOCK_ENDPOINT, dict(data), headers=self._etims_headers())

    async def submit_purchase(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return await self.post(self.PURCHASE_ENDPOINT, dict(data), headers=self._etims_headers())
