"""Lifecycle hooks invoked at fixed points of the request pipeline.

Four chains exist, each run in registration order:

- before-request hooks run before the transport request exists and may
  reject the call by raising;
- request hooks run once the transport request is built, before the
  first attempt, and typically inject credentials or headers;
- retry hooks run after every attempt and vote on retrying;
- response hooks run once after the attempt loop with the final response.

Chains are tuples fixed at client construction. Options replace a chain
wholesale; nothing is appended at call time.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING

from src.features.client.constants import (
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from src.features.client.dump import build_dump
from src.features.client.errors import HookError, TransportError
from src.features.client.request import Request
from src.features.client.response import Response


if TYPE_CHECKING:
    from src.features.client.client import Client


BeforeRequestHook = Callable[["Client", Request], None]
RequestHook = Callable[["Client", Request], None]
ResponseHook = Callable[["Client", Response], None]
RetryHook = Callable[[Response, Exception | None], bool]


# Before-request hooks


def merge_default_headers(client: "Client", request: Request) -> None:
    """Copy the client's default headers onto the request.

    Headers already set on the request are left untouched.
    """
    for name, value in client.config.headers.items():
        if name not in request.headers:
            request.headers[name] = value


def require_headers(*names: str) -> BeforeRequestHook:
    """Build a hook rejecting requests that lack any of ``names``."""

    def hook(client: "Client", request: Request) -> None:  # noqa: ARG001
        missing = [name for name in names if name not in request.headers]
        if missing:
            msg = f"Missing required headers: {', '.join(missing)}"
            raise HookError(msg, chain="before_request")

    return hook


# Request hooks


def apply_basic_auth(client: "Client", request: Request) -> None:
    """Set basic auth from the request, falling back to the client."""
    auth = request.basic_auth or client.config.basic_auth
    if auth is None or request.raw is None:
        return
    request.raw.headers["Authorization"] = auth.header_value()


def apply_bearer_token(client: "Client", request: Request) -> None:
    """Set a bearer token from the request, falling back to the client.

    The client-level token is skipped when the request carries its own
    basic auth.
    """
    if request.raw is None:
        return
    token = request.bearer_token
    if token is None and request.basic_auth is None:
        token = client.config.bearer_token
    if token:
        request.raw.headers["Authorization"] = f"Bearer {token}"


def apply_cookies(client: "Client", request: Request) -> None:
    """Append the client's cookies to the Cookie header."""
    cookies = client.config.cookies
    if not cookies or request.raw is None:
        return
    rendered = "; ".join(f"{name}={value}" for name, value in cookies.items())
    existing = request.raw.headers.get("cookie")
    request.raw.headers["Cookie"] = f"{existing}; {rendered}" if existing else rendered


# Response hooks


def log_response(client: "Client", response: Response) -> None:
    """Dump the finished call at the client's configured verbosity."""
    fields = build_dump(
        response, client.config.dump_level, client.config.dump_body_limit
    )
    if fields:
        client.logger.debug("http_dump", **fields)


# Retry hooks


def retry_on_transport_error(response: Response, error: Exception | None) -> bool:  # noqa: ARG001
    """Vote retry when the attempt failed at the transport level."""
    return isinstance(error, TransportError)


def retry_on_server_error(response: Response, error: Exception | None) -> bool:  # noqa: ARG001
    """Vote retry on 5xx responses."""
    return (
        HTTP_STATUS_SERVER_ERROR_MIN
        <= response.status_code
        < HTTP_STATUS_SERVER_ERROR_MAX
    )


def retry_on_rate_limited(response: Response, error: Exception | None) -> bool:  # noqa: ARG001
    """Vote retry on 429 Too Many Requests."""
    return response.status_code == HTTP_STATUS_TOO_MANY_REQUESTS


def retry_on_status(*status_codes: int) -> RetryHook:
    """Build a hook voting retry on the given status codes."""
    codes = frozenset(status_codes)

    def hook(response: Response, error: Exception | None) -> bool:  # noqa: ARG001
        return response.status_code in codes

    return hook


DEFAULT_BEFORE_REQUEST_HOOKS: tuple[BeforeRequestHook, ...] = (merge_default_headers,)
DEFAULT_REQUEST_HOOKS: tuple[RequestHook, ...] = (
    apply_basic_auth,
    apply_bearer_token,
    apply_cookies,
)
DEFAULT_RESPONSE_HOOKS: tuple[ResponseHook, ...] = (log_response,)
DEFAULT_RETRY_HOOKS: tuple[RetryHook, ...] = ()
