"""Configuration model for the HTTP client."""

import re
from collections.abc import Callable
from typing import Annotated, Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.features.client.backoff import BackoffStrategy
from src.features.client.constants import DEFAULT_DUMP_BODY_LIMIT, MAX_RETRY
from src.features.client.errors import ConfigError
from src.features.client.hooks import (
    DEFAULT_BEFORE_REQUEST_HOOKS,
    DEFAULT_REQUEST_HOOKS,
    DEFAULT_RESPONSE_HOOKS,
    DEFAULT_RETRY_HOOKS,
    RetryHook,
)
from src.features.client.models import (
    BasicAuth,
    CircuitSettings,
    DumpLevel,
    TransportSettings,
)


# RFC 9110 token characters
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class ClientConfig(BaseModel):
    """Immutable configuration of a ``Client``.

    Built once, usually through ``new(*options)``, and shared read-only by
    every call made through the client.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", arbitrary_types_allowed=True
    )

    base_url: str = Field(default="", description="Prefix joined with request paths")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Default headers for every request"
    )
    basic_auth: BasicAuth | None = None
    bearer_token: str | None = None
    cookies: dict[str, str] = Field(default_factory=dict)
    retry: Annotated[int, Field(ge=0, le=MAX_RETRY)] = 0
    backoff: BackoffStrategy | None = None
    # Client-facing hook aliases reference Client by name, which is not
    # importable here; the fields are typed by arity only.
    before_request_hooks: tuple[Callable[..., None], ...] = (
        DEFAULT_BEFORE_REQUEST_HOOKS
    )
    request_hooks: tuple[Callable[..., None], ...] = DEFAULT_REQUEST_HOOKS
    response_hooks: tuple[Callable[..., None], ...] = DEFAULT_RESPONSE_HOOKS
    retry_hooks: tuple[RetryHook, ...] = DEFAULT_RETRY_HOOKS
    dump_level: DumpLevel = DumpLevel.STD
    dump_body_limit: Annotated[int, Field(ge=0)] = DEFAULT_DUMP_BODY_LIMIT
    transport: TransportSettings = Field(default_factory=TransportSettings)
    http_transport: httpx.BaseTransport | None = Field(
        default=None, description="Replaces the default network transport"
    )
    logger: Any = Field(default=None, description="structlog logger for the client")
    log_level: int | None = None
    default_circuit_name: str = ""
    circuits: tuple[str, ...] = ()
    circuit: CircuitSettings = Field(default_factory=CircuitSettings)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure a non-empty base URL is an absolute HTTP(S) URL."""
        if not v:
            return v
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            msg = f"Invalid base URL: {e}"
            raise ValueError(msg) from e
        if url.scheme not in ("http", "https") or not url.host:
            msg = f"Base URL must be an absolute http(s) URL: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("headers")
    @classmethod
    def validate_header_names(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject header names that are not valid HTTP tokens."""
        for name in v:
            if not _TOKEN.match(name):
                msg = f"Invalid header name: {name!r}"
                raise ValueError(msg)
        return v

    @field_validator("bearer_token")
    @classmethod
    def validate_bearer_token(cls, v: str | None) -> str | None:
        """An empty token is a configuration mistake, not 'no token'."""
        if v is not None and not v.strip():
            msg = "Bearer token must not be empty"
            raise ValueError(msg)
        return v

    @field_validator("circuits")
    @classmethod
    def validate_circuits(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Circuit names must be non-empty."""
        if any(not name for name in v):
            msg = "Circuit names must not be empty"
            raise ValueError(msg)
        return v

    def evolve(self, **changes: Any) -> "ClientConfig":
        """Return a validated copy with ``changes`` applied.

        Raises:
            ConfigError: If the resulting configuration is invalid.
        """
        try:
            return type(self).model_validate({**dict(self), **changes})
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    def circuit_names(self) -> tuple[str, ...]:
        """Circuits to register, including the default circuit."""
        names = list(self.circuits)
        if self.default_circuit_name and self.default_circuit_name not in names:
            names.append(self.default_circuit_name)
        return tuple(names)


def is_valid_method(method: str) -> bool:
    """Check if a method is a valid HTTP token."""
    return bool(_TOKEN.match(method))
