"""Request/response value types exchanged with the raw sender."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..rate.rate_limit_headers import get_header


@dataclass(frozen=True)
class HttpRequest:
    """An outbound HTTP request.

    Attributes:
        method: HTTP verb, upper case.
        url: Absolute URL without query string.
        headers: Request headers.
        params: Query parameters.
        data: Form fields, sent ``application/x-www-form-urlencoded``.
        json: JSON body. Mutually exclusive with ``data``.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] | None = None
    data: dict[str, str] | None = None
    json: Any = None

    def with_headers(self, **extra: str) -> HttpRequest:
        """Return a copy with ``extra`` merged over the existing headers."""
        return HttpRequest(
            method=self.method,
            url=self.url,
            headers={**self.headers, **extra},
            params=self.params,
            data=self.data,
            json=self.json,
        )


@dataclass(frozen=True)
class HttpResponse:
    """A fully read HTTP response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status < 400

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return get_header(self.headers, name)

    def json(self) -> Any:
        """Decode the body as JSON; raises ``ValueError`` when it isn't."""
        return json.loads(self.body)

    def json_or_empty(self) -> dict[str, Any]:
        """Decode the body as a JSON object, or ``{}`` when absent or invalid."""
        if not self.body:
            return {}
        try:
            data = self.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
