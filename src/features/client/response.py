"""Fully buffered response returned by the client."""

import json
from typing import TYPE_CHECKING, Any

import httpx

from src.features.client.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN


if TYPE_CHECKING:
    from src.features.client.request import Request


class Response:
    """Result of the final attempt of a call.

    Attributes:
        request: The request that produced this response.
        raw: Transport response, None when the transport call failed.
        body: Fully buffered response body.
        status_code: HTTP status code, 0 when no response was received.
    """

    def __init__(
        self,
        request: "Request",
        raw: httpx.Response | None = None,
        body: bytes = b"",
        status_code: int = 0,
    ) -> None:
        self.request = request
        self.raw = raw
        self.body = body
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"Response(status_code={self.status_code}, bytes={len(self.body)})"

    @property
    def headers(self) -> httpx.Headers:
        """Response headers, empty when no response was received."""
        if self.raw is None:
            return httpx.Headers()
        return self.raw.headers

    @property
    def ok(self) -> bool:
        """Check if the status code is 2xx."""
        return HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX

    @property
    def text(self) -> str:
        """Body decoded with the response charset (UTF-8 fallback)."""
        encoding = "utf-8"
        if self.raw is not None and self.raw.charset_encoding:
            encoding = self.raw.charset_encoding
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON.
        """
        return json.loads(self.body)
