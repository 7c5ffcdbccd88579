"""Construction options for ``new``.

Each option returns a function producing a validated copy of the
configuration. ``new`` applies them in order; the first invalid option
raises ``ConfigError`` and aborts construction.
"""

from collections.abc import Callable, Mapping
from typing import Any

import httpx

from src.features.client.backoff import BackoffStrategy
from src.features.client.config import ClientConfig
from src.features.client.errors import ConfigError
from src.features.client.hooks import (
    BeforeRequestHook,
    RequestHook,
    ResponseHook,
    RetryHook,
)
from src.features.client.models import (
    BasicAuth,
    CircuitSettings,
    DumpLevel,
    TransportSettings,
)
from src.features.observability.logging import parse_log_level


Option = Callable[[ClientConfig], ClientConfig]


def with_base_url(base_url: str) -> Option:
    return lambda config: config.evolve(base_url=base_url)


def with_header(name: str, value: str) -> Option:
    """Add one default header, keeping the others."""
    return lambda config: config.evolve(headers={**config.headers, name: value})


def with_headers(headers: Mapping[str, str]) -> Option:
    """Replace the default headers."""
    return lambda config: config.evolve(headers=dict(headers))


def with_basic_auth(username: str, password: str = "") -> Option:
    def apply(config: ClientConfig) -> ClientConfig:
        auth = _build(BasicAuth, username=username, password=password)
        return config.evolve(basic_auth=auth)

    return apply


def with_bearer_token(token: str) -> Option:
    return lambda config: config.evolve(bearer_token=token)


def with_cookies(cookies: Mapping[str, str]) -> Option:
    return lambda config: config.evolve(cookies=dict(cookies))


def with_retry(retry: int) -> Option:
    """Allow up to ``retry`` retries, i.e. ``retry + 1`` attempts."""
    return lambda config: config.evolve(retry=retry)


def with_backoff(strategy: BackoffStrategy | None) -> Option:
    """Set the backoff strategy. Without one, calls are never retried."""
    return lambda config: config.evolve(backoff=strategy)


def with_before_request_hooks(*hooks: BeforeRequestHook) -> Option:
    return lambda config: config.evolve(before_request_hooks=hooks)


def with_request_hooks(*hooks: RequestHook) -> Option:
    return lambda config: config.evolve(request_hooks=hooks)


def with_response_hooks(*hooks: ResponseHook) -> Option:
    return lambda config: config.evolve(response_hooks=hooks)


def with_retry_hooks(*hooks: RetryHook) -> Option:
    return lambda config: config.evolve(retry_hooks=hooks)


def with_dump_level(level: DumpLevel | str) -> Option:
    return lambda config: config.evolve(dump_level=level)


def with_dump_body_limit(limit: int) -> Option:
    return lambda config: config.evolve(dump_body_limit=limit)


def with_timeout(seconds: float) -> Option:
    """Set the per-attempt deadline, covering the send and the body read."""

    def apply(config: ClientConfig) -> ClientConfig:
        settings = _build(
            TransportSettings,
            **{**config.transport.model_dump(), "timeout_seconds": seconds},
        )
        return config.evolve(transport=settings)

    return apply


def with_transport_settings(settings: TransportSettings) -> Option:
    return lambda config: config.evolve(transport=settings)


def with_http_transport(transport: httpx.BaseTransport) -> Option:
    """Replace the network transport, e.g. with ``httpx.MockTransport``."""
    return lambda config: config.evolve(http_transport=transport)


def with_logger(logger: Any) -> Option:
    """Log through ``logger`` instead of the process-wide structlog logger."""
    return lambda config: config.evolve(logger=logger)


def with_log_level(level: int | str) -> Option:
    """Log through a client-owned logger filtered at ``level``."""

    def apply(config: ClientConfig) -> ClientConfig:
        try:
            parsed = parse_log_level(level)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return config.evolve(log_level=parsed)

    return apply


def with_default_circuit_name(name: str) -> Option:
    """Route requests without a circuit name through ``name``."""
    return lambda config: config.evolve(default_circuit_name=name)


def with_circuits(*names: str) -> Option:
    """Register circuit breakers under ``names``."""
    return lambda config: config.evolve(
        circuits=tuple(dict.fromkeys((*config.circuits, *names)))
    )


def with_circuit_settings(settings: CircuitSettings | None = None, **overrides: Any) -> Option:
    """Tune every circuit breaker.

    Args:
        settings: Complete settings, defaults to the current ones.
        **overrides: Individual ``CircuitSettings`` fields to change.
    """

    def apply(config: ClientConfig) -> ClientConfig:
        base = settings or config.circuit
        tuned = _build(CircuitSettings, **{**base.model_dump(), **overrides})
        return config.evolve(circuit=tuned)

    return apply


def _build(model: Any, **values: Any) -> Any:
    try:
        return model(**values)
    except ValueError as e:
        raise ConfigError(str(e)) from e
