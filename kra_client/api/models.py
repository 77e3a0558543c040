"""Typed results for KRA API responses.

Field extraction is tolerant: a missing key or a value of the wrong type
yields None rather than an error, since the upstream payloads are loosely
specified.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any


def _get_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _get_bool(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    return value if isinstance(value, bool) else None


def _get_float(data: Mapping[str, Any], key: str) -> float | None:
    value = data.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _get_list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    return list(value) if isinstance(value, list) else []


def _upper(value: str | None) -> str:
    return (value or "").upper()


@dataclass
class PinResult:
    """Result of a PIN lookup by PIN or by national ID."""

    kra_pin: str | None = None
    taxpayer_name: str | None = None
    pin_status: str | None = None
    taxpayer_type: str | None = None
    registration_date: str | None = None
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None
    tax_obligations: str | None = None
    id_number: str | None = None
    id_type: str | None = None
    is_valid: bool | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> PinResult:
        return cls(
            kra_pin=_get_str(data, "kraPin"),
            taxpayer_name=_get_str(data, "taxpayerName"),
            pin_status=_get_str(data, "pinStatus"),
            taxpayer_type=_get_str(data, "taxpayerType"),
            registration_date=_get_str(data, "registrationDate"),
            email=_get_str(data, "email"),
            phone_number=_get_str(data, "phoneNumber"),
            address=_get_str(data, "address"),
            tax_obligations=_get_str(data, "taxObligations"),
            id_number=_get_str(data, "idNumber"),
            id_type=_get_str(data, "idType"),
            is_valid=_get_bool(data, "isValid"),
            message=_get_str(data, "message"),
        )

    @property
    def is_active(self) -> bool:
        return _upper(self.pin_status) == "ACTIVE"

    def tax_obligations_list(self) -> list[str]:
        """Split the comma-separated obligations string."""
        if not self.tax_obligations:
            return []
        return [item.strip() for item in self.tax_obligations.split(",") if item.strip()]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TccResult:
    """Result of a Tax Compliance Certificate validation."""

    kra_pin: str | None = None
    taxpayer_name: str | None = None
    tcc_number: str | None = None
    status: str | None = None
    expiry_date: str | None = None
    issue_date: str | None = None
    is_valid: bool | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> TccResult:
        return cls(
            kra_pin=_get_str(data, "kraPin"),
            taxpayer_name=_get_str(data, "taxpayerName"),
            tcc_number=_get_str(data, "tccNumber"),
            status=_get_str(data, "status"),
            expiry_date=_get_str(data, "expiryDate"),
            issue_date=_get_str(data, "issueDate"),
            is_valid=_get_bool(data, "isValid"),
            message=_get_str(data, "message"),
        )

    @property
    def is_valid_status(self) -> bool:
        return _upper(self.status) == "VALID"

    @property
    def is_expired(self) -> bool:
        return _upper(self.status) == "EXPIRED"

    @property
    def is_revoked(self) -> bool:
        return _upper(self.status) == "REVOKED"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TaxpayerProfile:
    """Taxpayer details plus their obligations and liabilities."""

    kra_pin: str | None = None
    taxpayer_name: str | None = None
    taxpayer_type: str | None = None
    status: str | None = None
    registration_date: str | None = None
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None
    postal_code: str | None = None
    town: str | None = None
    obligations: list[Any] = field(default_factory=list)
    liabilities: list[Any] = field(default_factory=list)

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> TaxpayerProfile:
        return cls(
            kra_pin=_get_str(data, "kraPin"),
            taxpayer_name=_get_str(data, "taxpayerName"),
            taxpayer_type=_get_str(data, "taxpayerType"),
            status=_get_str(data, "status"),
            registration_date=_get_str(data, "registrationDate"),
            email=_get_str(data, "email"),
            phone_number=_get_str(data, "phoneNumber"),
            address=_get_str(data, "address"),
            postal_code=_get_str(data, "postalCode"),
            town=_get_str(data, "town"),
            obligations=_get_list(data, "obligations"),
            liabilities=_get_list(data, "liabilities"),
        )

    @property
    def is_active(self) -> bool:
        return _upper(self.status) == "ACTIVE"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class NilReturnResult:
    """Acknowledgement of a nil return filing."""

    acknowledgement_number: str | None = None
    filed_at: str | None = None
    pin: str | None = None
    obligation: str | None = None
    period: str | None = None
    status: str | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> NilReturnResult:
        return cls(
            acknowledgement_number=_get_str(data, "acknowledgementNumber"),
            filed_at=_get_str(data, "filedAt"),
            pin=_get_str(data, "pin"),
            obligation=_get_str(data, "obligation"),
            period=_get_str(data, "period"),
            status=_get_str(data, "status"),
            message=_get_str(data, "message"),
        )

    @property
    def is_successful(self) -> bool:
        return self.acknowledgement_number is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ESlipResult:
    """Verification result for a payment registration number (PRN)."""

    prn: str | None = None
    is_valid: bool | None = None
    amount: float | None = None
    payment_date: str | None = None
    tax_type: str | None = None
    payer_pin: str | None = None
    payer_name: str | None = None
    status: str | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> ESlipResult:
        return cls(
            prn=_get_str(data, "prn"),
            is_valid=_get_bool(data, "isValid"),
            amount=_get_float(data, "amount"),
            payment_date=_get_str(data, "paymentDate"),
            tax_type=_get_str(data, "taxType"),
            payer_pin=_get_str(data, "payerPin"),
            payer_name=_get_str(data, "payerName"),
            status=_get_str(data, "status"),
            message=_get_str(data, "message"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EtimsInvoice:
    """Sales invoice submitted to eTIMS."""

    invoice_number: str | None = None
    buyer_pin: str | None = None
    buyer_name: str | None = None
    invoice_date: str | None = None
    currency: str | None = None
    items: list[Any] = field(default_factory=list)
    total_excl_vat: float | None = None
    total_vat: float | None = None
    total_incl_vat: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EtimsInvoice:
        """Build from the camelCase wire representation."""
        return cls(
            invoice_number=_get_str(data, "invoiceNumber"),
            buyer_pin=_get_str(data, "buyerPin"),
            buyer_name=_get_str(data, "buyerName"),
            invoice_date=_get_str(data, "invoiceDate"),
            currency=_get_str(data, "currency"),
            items=_get_list(data, "items"),
            total_excl_vat=_get_float(data, "totalExclVat"),
            total_vat=_get_float(data, "totalVat"),
            total_incl_vat=_get_float(data, "totalInclVat"),
        )

    def to_request_dict(self) -> dict[str, Any]:
        return {
            "invoiceNumber": self.invoice_number,
            "buyerPin": self.buyer_pin,
            "buyerName": self.buyer_name,
            "invoiceDate": self.invoice_date,
            "currency": self.currency,
            "items": list(self.items),
            "totalExclVat": self.total_excl_vat,
            "totalVat": self.total_vat,
            "totalInclVat": self.total_incl_vat,
        }


@dataclass
class EtimsResponse:
    """eTIMS acknowledgement for a submitted invoice."""

    invoice_id: str | None = None
    control_unit: str | None = None
    qr_code: str | None = None
    submitted_at: str | None = None
    status: str | None = None
    message: str | None = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> EtimsResponse:
        return cls(
            invoice_id=_get_str(data, "invoiceId"),
            control_unit=_get_str(data, "controlUnit"),
            qr_code=_get_str(data, "qrCode"),
            submitted_at=_get_str(data, "submittedAt"),
            status=_get_str(data, "status"),
            message=_get_str(data, "message"),
        )

    @property
    def is_successful(self) -> bool:
        return self.invoice_id is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
