"""Outbound HTTP client with lifecycle hooks, retries, and circuit breaking.

This module provides:
- A request pipeline with before-request, request, retry and response hooks
- A bounded retry loop with pluggable backoff strategies
- Named circuit breakers that stop retries once a dependency is unhealthy
- Header redaction and request/response dumps for logging
- Per-client metrics
"""

from src.features.client.backoff import (
    BackoffStrategy,
    ConstantBackoff,
    ExponentialBackoff,
    ExponentialJitterBackoff,
    LinearBackoff,
    no_backoff,
)
from src.features.client.circuit import (
    Circuit,
    CircuitRegistry,
    ErrorRateOpener,
    PyBreakerCircuit,
    build_breaker,
)
from src.features.client.client import Client, new
from src.features.client.config import ClientConfig
from src.features.client.dump import redact_headers, redact_url_credentials
from src.features.client.errors import (
    BodyConstructionError,
    ClientError,
    ConfigError,
    HookError,
    RequestCancelledError,
    RequestConstructionError,
    ResponseReadError,
    TransportError,
)
from src.features.client.hooks import (
    DEFAULT_BEFORE_REQUEST_HOOKS,
    DEFAULT_REQUEST_HOOKS,
    DEFAULT_RESPONSE_HOOKS,
    DEFAULT_RETRY_HOOKS,
    BeforeRequestHook,
    RequestHook,
    ResponseHook,
    RetryHook,
    apply_basic_auth,
    apply_bearer_token,
    apply_cookies,
    log_response,
    merge_default_headers,
    require_headers,
    retry_on_rate_limited,
    retry_on_server_error,
    retry_on_status,
    retry_on_transport_error,
)
from src.features.client.metrics import ClientMetrics
from src.features.client.models import (
    BasicAuth,
    CircuitSettings,
    DumpLevel,
    TransportSettings,
)
from src.features.client.options import (
    Option,
    with_backoff,
    with_base_url,
    with_basic_auth,
    with_bearer_token,
    with_before_request_hooks,
    with_circuit_settings,
    with_circuits,
    with_cookies,
    with_default_circuit_name,
    with_dump_body_limit,
    with_dump_level,
    with_header,
    with_headers,
    with_http_transport,
    with_log_level,
    with_logger,
    with_request_hooks,
    with_response_hooks,
    with_retry,
    with_retry_hooks,
    with_timeout,
    with_transport_settings,
)
from src.features.client.request import Profile, Request
from src.features.client.response import Response


__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "new",
    # Request / Response
    "Request",
    "Response",
    "Profile",
    # Errors
    "ClientError",
    "ConfigError",
    "BodyConstructionError",
    "HookError",
    "RequestConstructionError",
    "TransportError",
    "ResponseReadError",
    "RequestCancelledError",
    # Backoff
    "BackoffStrategy",
    "ConstantBackoff",
    "LinearBackoff",
    "ExponentialBackoff",
    "ExponentialJitterBackoff",
    "no_backoff",
    # Circuits
    "Circuit",
    "CircuitRegistry",
    "ErrorRateOpener",
    "PyBreakerCircuit",
    "build_breaker",
    # Hooks
    "BeforeRequestHook",
    "RequestHook",
    "ResponseHook",
    "RetryHook",
    "DEFAULT_BEFORE_REQUEST_HOOKS",
    "DEFAULT_REQUEST_HOOKS",
    "DEFAULT_RESPONSE_HOOKS",
    "DEFAULT_RETRY_HOOKS",
    "merge_default_headers",
    "require_headers",
    "apply_basic_auth",
    "apply_bearer_token",
    "apply_cookies",
    "log_response",
    "retry_on_transport_error",
    "retry_on_server_error",
    "retry_on_rate_limited",
    "retry_on_status",
    # Models
    "BasicAuth",
    "CircuitSettings",
    "DumpLevel",
    "TransportSettings",
    # Metrics
    "ClientMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
    # Options
    "Option",
    "with_backoff",
    "with_base_url",
    "with_basic_auth",
    "with_bearer_token",
    "with_before_request_hooks",
    "with_circuit_settings",
    "with_circuits",
    "with_cookies",
    "with_default_circuit_name",
    "with_dump_body_limit",
    "with_dump_level",
    "with_header",
    "with_headers",
    "with_http_transport",
    "with_log_level",
    "with_logger",
    "with_request_hooks",
    "with_response_hooks",
    "with_retry",
    "with_retry_hooks",
    "with_timeout",
    "with_transport_settings",
]
