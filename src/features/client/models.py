"""Value objects shared by the client configuration and the pipeline."""

import base64
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.features.client.constants import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_ERROR_THRESHOLD_PERCENTAGE,
    DEFAULT_KEEPALIVE_EXPIRY_SECONDS,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_KEEPALIVE_CONNECTIONS,
    DEFAULT_NUM_BUCKETS,
    DEFAULT_REQUEST_VOLUME_THRESHOLD,
    DEFAULT_REQUIRED_SUCCESSES,
    DEFAULT_ROLLING_WINDOW_SECONDS,
    DEFAULT_SLEEP_WINDOW_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)


class DumpLevel(str, Enum):
    """Verbosity of request/response dumps written by the response hook.

    - NONE: Nothing is dumped
    - STD: Method, URL, status, timings and redacted headers
    - BODY: STD plus request and response bodies (truncated)
    """

    NONE = "none"
    STD = "std"
    BODY = "body"


class BasicAuth(BaseModel):
    """Credentials for HTTP basic authentication."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: Annotated[str, Field(min_length=1)]
    password: str = ""

    def header_value(self) -> str:
        """Render the Authorization header value."""
        token = f"{self.username}:{self.password}".encode()
        return f"Basic {base64.b64encode(token).decode('ascii')}"

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r}, password='[REDACTED]')"


class CircuitSettings(BaseModel):
    """Tuning applied to every circuit breaker created by the registry.

    The breaker opens once the error rate across the rolling window reaches
    ``error_threshold_percentage`` with at least ``request_volume_threshold``
    calls observed. After ``sleep_window_seconds`` a trial call is let
    through; ``required_successes`` trial successes close it again.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_threshold_percentage: Annotated[int, Field(ge=1, le=100)] = (
        DEFAULT_ERROR_THRESHOLD_PERCENTAGE
    )
    request_volume_threshold: Annotated[int, Field(ge=1)] = (
        DEFAULT_REQUEST_VOLUME_THRESHOLD
    )
    rolling_window_seconds: Annotated[float, Field(gt=0.0)] = (
        DEFAULT_ROLLING_WINDOW_SECONDS
    )
    num_buckets: Annotated[int, Field(ge=1, le=1000)] = DEFAULT_NUM_BUCKETS
    sleep_window_seconds: Annotated[float, Field(gt=0.0)] = (
        DEFAULT_SLEEP_WINDOW_SECONDS
    )
    required_successes: Annotated[int, Field(ge=1)] = DEFAULT_REQUIRED_SUCCESSES

    @property
    def bucket_width_seconds(self) -> float:
        """Width of a single rolling-window bucket."""
        return self.rolling_window_seconds / self.num_buckets


class TransportSettings(BaseModel):
    """Connection pool and timeout settings for the pooled httpx client.

    ``timeout_seconds`` is the deadline of one attempt, from dial to the last
    body byte. ``connect_timeout_seconds`` caps the dial and TLS handshake
    within it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: Annotated[float, Field(gt=0.0, le=3600.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    connect_timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = (
        DEFAULT_CONNECT_TIMEOUT_SECONDS
    )
    max_connections: Annotated[int, Field(ge=1)] = DEFAULT_MAX_CONNECTIONS
    max_keepalive_connections: Annotated[int, Field(ge=0)] = (
        DEFAULT_MAX_KEEPALIVE_CONNECTIONS
    )
    keepalive_expiry_seconds: Annotated[float, Field(ge=0.0)] = (
        DEFAULT_KEEPALIVE_EXPIRY_SECONDS
    )
    trust_env: bool = Field(
        default=True, description="Read proxy settings from the environment"
    )
    follow_redirects: bool = True
    verify_tls: bool = True

    @model_validator(mode="after")
    def validate_pool(self) -> "TransportSettings":
        """Idle connections cannot outnumber the pool."""
        if self.max_keepalive_connections > self.max_connections:
            msg = "max_keepalive_connections must not exceed max_connections"
            raise ValueError(msg)
        return self
