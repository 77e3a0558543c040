"""KRA API resources and result models."""

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
from .resources import (
    ESlipResource,
    EtimsResource,
    ExciseResource,
    PinResource,
    ReturnsResource,
    TaxpayerResource,
    TccResource,
)

__all__ = [
    "Resource",
    "PinResource",
    "TccResource",
    "TaxpayerResource",
    "ReturnsResource",
    "ESlipResource",
    "ExciseResource",
    "EtimsResource",
    "PinResult",
    "TccResult",
    "TaxpayerProfile",
    "NilReturnResult",
    "ESlipResult",
    "EtimsInvoice",
    "EtimsResponse",
]
