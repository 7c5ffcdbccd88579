"""Factory for the pooled httpx client used as the transport.

Also holds the per-attempt deadline plumbing: ``timeout_seconds`` bounds a
whole attempt, from dial to the last body byte, not each socket operation.
"""

import time
from collections.abc import Iterator

import httpx

from src.features.client.models import TransportSettings


class AttemptDeadlineExceeded(httpx.ReadTimeout):
    """Raised while streaming a body once the attempt deadline has passed."""


def build_http_client(
    settings: TransportSettings,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build the pooled httpx client shared by every call of a client.

    Connections are reused across calls. ``connect_timeout_seconds`` bounds
    the TCP dial and the TLS handshake. The client-wide ``timeout_seconds``
    is only the fallback; each attempt sets its own timeouts from the time
    left before its deadline (see ``attempt_timeout``).

    Args:
        settings: Pool and timeout settings.
        transport: Optional transport replacing the default HTTP transport.

    Returns:
        Configured httpx client.
    """
    timeout = httpx.Timeout(
        settings.timeout_seconds,
        connect=settings.connect_timeout_seconds,
    )
    limits = httpx.Limits(
        max_connections=settings.max_connections,
        max_keepalive_connections=settings.max_keepalive_connections,
        keepalive_expiry=settings.keepalive_expiry_seconds,
    )
    return httpx.Client(
        transport=transport,
        timeout=timeout,
        limits=limits,
        verify=settings.verify_tls,
        trust_env=settings.trust_env,
        follow_redirects=settings.follow_redirects,
    )


def attempt_deadline(settings: TransportSettings) -> float:
    """Return the monotonic time by which an attempt starting now must end."""
    return time.monotonic() + settings.timeout_seconds


def attempt_timeout(settings: TransportSettings, deadline: float) -> dict[str, float]:
    """Build the request ``timeout`` extension for the time left before ``deadline``.

    httpx keeps a timeout already set on a request instead of applying the
    client default, so this caps every socket operation of the attempt.
    """
    remaining = max(deadline - time.monotonic(), 0.001)
    timeout = httpx.Timeout(
        remaining,
        connect=min(settings.connect_timeout_seconds, remaining),
    )
    return timeout.as_dict()


class DeadlineStream(httpx.SyncByteStream):
    """Body stream that fails once the attempt deadline passes.

    Socket timeouts bound the gap between chunks only; a server trickling
    bytes just under that gap is cut off here.
    """

    def __init__(self, stream: httpx.SyncByteStream, deadline: float) -> None:
        self._stream = stream
        self._deadline = deadline

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            if time.monotonic() > self._deadline:
                msg = "Attempt deadline exceeded while reading the response body"
                raise AttemptDeadlineExceeded(msg)
            yield chunk

    def close(self) -> None:
        self._stream.close()
