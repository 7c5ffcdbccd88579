"""Request builder, body sources and per-attempt profiling."""

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from src.features.client.errors import BodyConstructionError
from src.features.client.models import BasicAuth


CONTENT_TYPE_JSON = "application/json; charset=utf-8"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"
CONTENT_TYPE_TEXT = "text/plain; charset={encoding}"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"


class BodySource(Protocol):
    """Re-readable source of request body bytes."""

    content_type: str | None

    def render(self) -> bytes:
        """Serialize the body. Must return identical bytes on every call."""
        ...


@dataclass(frozen=True)
class JsonBody:
    """JSON-encoded body."""

    value: Any
    content_type: str | None = CONTENT_TYPE_JSON

    def render(self) -> bytes:
        try:
            return json.dumps(
                self.value, ensure_ascii=False, separators=(",", ":")
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            msg = f"Cannot encode JSON body: {e}"
            raise BodyConstructionError(msg) from e


@dataclass(frozen=True)
class FormBody:
    """application/x-www-form-urlencoded body."""

    fields: tuple[tuple[str, str], ...]
    content_type: str | None = CONTENT_TYPE_FORM

    def render(self) -> bytes:
        try:
            return urlencode(self.fields).encode("ascii")
        except (TypeError, UnicodeEncodeError) as e:
            msg = f"Cannot encode form body: {e}"
            raise BodyConstructionError(msg) from e


@dataclass(frozen=True)
class TextBody:
    """Plain text body encoded with a fixed charset."""

    text: str
    encoding: str = "utf-8"
    content_type: str | None = None

    def render(self) -> bytes:
        try:
            return self.text.encode(self.encoding)
        except (LookupError, UnicodeEncodeError) as e:
            msg = f"Cannot encode text body as {self.encoding}: {e}"
            raise BodyConstructionError(msg) from e


@dataclass(frozen=True)
class BytesBody:
    """Raw bytes body."""

    data: bytes
    content_type: str | None = CONTENT_TYPE_OCTET_STREAM

    def render(self) -> bytes:
        return self.data


@dataclass
class Profile:
    """Timestamps of the most recent attempt.

    Every attempt overwrites the previous values.
    """

    request_start: datetime | None = None
    request_done: datetime | None = None
    receiving_start: datetime | None = None
    receiving_done: datetime | None = None

    @property
    def request_cost(self) -> timedelta:
        """Time spent sending the request and waiting for headers."""
        return _elapsed(self.request_start, self.request_done)

    @property
    def receiving_cost(self) -> timedelta:
        """Time spent reading the response body."""
        return _elapsed(self.receiving_start, self.receiving_done)

    def mark_request_start(self) -> None:
        self.request_start = _now()
        self.request_done = None
        self.receiving_start = None
        self.receiving_done = None

    def mark_request_done(self) -> None:
        self.request_done = _now()

    def mark_receiving_start(self) -> None:
        self.receiving_start = _now()

    def mark_receiving_done(self) -> None:
        self.receiving_done = _now()


def _now() -> datetime:
    return datetime.now(UTC)


def _elapsed(start: datetime | None, end: datetime | None) -> timedelta:
    if start is None or end is None:
        return timedelta(0)
    return end - start


class Request:
    """Mutable description of a single outbound call.

    Built by the caller, consumed by ``Client.do``. Mutators return the
    request so calls can be chained:

        request = (
            client.new_request()
            .with_method("POST")
            .with_path("/v1/items")
            .with_json_body({"name": "widget"})
        )

    Attributes:
        headers: Case-insensitive header multimap sent with the request.
        profile: Timestamps of the most recent attempt.
        raw: Transport request, built by the client and rebuilt per retry.
    """

    def __init__(self) -> None:
        self.headers = httpx.Headers()
        self.profile = Profile()
        self.raw: httpx.Request | None = None
        self._method = "GET"
        self._path = ""
        self._params: list[tuple[str, str]] = []
        self._body: BodySource | None = None
        self._basic_auth: BasicAuth | None = None
        self._bearer_token: str | None = None
        self._circuit_name = ""

    def __repr__(self) -> str:
        return f"Request(method={self._method!r}, path={self._path!r})"

    @property
    def method(self) -> str:
        return self._method

    @property
    def path(self) -> str:
        return self._path

    @property
    def params(self) -> list[tuple[str, str]]:
        return list(self._params)

    @property
    def basic_auth(self) -> BasicAuth | None:
        return self._basic_auth

    @property
    def bearer_token(self) -> str | None:
        return self._bearer_token

    @property
    def circuit_name(self) -> str:
        return self._circuit_name

    @property
    def has_body(self) -> bool:
        return self._body is not None

    def with_method(self, method: str) -> "Request":
        self._method = method.upper()
        return self

    def with_path(self, path: str) -> "Request":
        self._path = path
        return self

    def with_header(self, name: str, value: str) -> "Request":
        """Set a header, replacing any existing values."""
        self.headers[name] = value
        return self

    def with_headers(self, headers: Mapping[str, str]) -> "Request":
        for name, value in headers.items():
            self.headers[name] = value
        return self

    def with_query_param(self, name: str, value: str) -> "Request":
        """Append a query parameter. Repeated names are kept."""
        self._params.append((name, value))
        return self

    def with_query_params(
        self, params: Mapping[str, str] | Sequence[tuple[str, str]]
    ) -> "Request":
        items = params.items() if isinstance(params, Mapping) else params
        for name, value in items:
            self._params.append((name, value))
        return self

    def with_json_body(self, value: Any) -> "Request":
        return self._set_body(JsonBody(value))

    def with_form_body(
        self, fields: Mapping[str, str] | Sequence[tuple[str, str]]
    ) -> "Request":
        items = fields.items() if isinstance(fields, Mapping) else fields
        return self._set_body(FormBody(tuple((k, v) for k, v in items)))

    def with_text_body(self, text: str, encoding: str = "utf-8") -> "Request":
        body = TextBody(
            text,
            encoding=encoding,
            content_type=CONTENT_TYPE_TEXT.format(encoding=encoding),
        )
        return self._set_body(body)

    def with_bytes_body(
        self, data: bytes, content_type: str | None = CONTENT_TYPE_OCTET_STREAM
    ) -> "Request":
        return self._set_body(BytesBody(bytes(data), content_type=content_type))

    def with_body(self, source: BodySource) -> "Request":
        """Use a custom body source."""
        return self._set_body(source)

    def with_basic_auth(self, username: str, password: str = "") -> "Request":
        """Override the client's basic auth for this request."""
        self._basic_auth = BasicAuth(username=username, password=password)
        return self

    def with_bearer_token(self, token: str) -> "Request":
        """Override the client's bearer token for this request."""
        self._bearer_token = token
        return self

    def with_circuit_name(self, name: str) -> "Request":
        """Route this request through a named circuit."""
        self._circuit_name = name
        return self

    def body(self) -> bytes:
        """Render the request body.

        Safe to call any number of times; every call returns the same bytes.

        Returns:
            Body bytes, empty when no body is set.

        Raises:
            BodyConstructionError: If the body source cannot be serialized.
        """
        if self._body is None:
            return b""
        return self._body.render()

    def rewind(self) -> None:
        """Rebuild the transport request with a fresh body stream.

        Method, URL, headers and extensions of the current transport request
        are kept; only the body is re-rendered.

        Raises:
            BodyConstructionError: If the body source cannot be serialized.
            RuntimeError: If the transport request was never built.
        """
        if self.raw is None:
            msg = "Transport request has not been built"
            raise RuntimeError(msg)
        previous = self.raw
        self.raw = httpx.Request(
            previous.method,
            previous.url,
            headers=previous.headers,
            content=self.body(),
            extensions=dict(previous.extensions),
        )

    def _set_body(self, source: BodySource) -> "Request":
        # A Content-Type set by the caller wins over the body's default.
        previous = self._body.content_type if self._body is not None else None
        current = self.headers.get("content-type")
        self._body = source
        if source.content_type and current in (None, previous):
            self.headers["Content-Type"] = source.content_type
        return self
