"""HTTP layer: request/response models, raw sender and resilient transport."""

from .models import HttpRequest, HttpResponse
from .sender import AiohttpSender
from .transport import TRANSPORT_EXCEPTIONS, ResilientTransport, Sender

__all__ = [
    "HttpRequest",
    "HttpResponse",
    "AiohttpSender",
    "ResilientTransport",
    "Sender",
    "TRANSPORT_EXCEPTIONS",
]
