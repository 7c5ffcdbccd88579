"""Metrics collection for the HTTP client."""

from collections import Counter
from threading import Lock


class ClientMetrics:
    """Thread-safe counters for one client.

    Tracks:
    - attempts and retries
    - responses by status code
    - transport failures
    - loops stopped by an open circuit
    - bytes received and cumulative call duration
    """

    def __init__(self) -> None:
        """Initialize the metrics collector."""
        self._lock = Lock()
        self._responses: Counter[int] = Counter()
        self._attempts = 0
        self._retries = 0
        self._transport_failures = 0
        self._circuit_open_stops = 0
        self._bytes_total = 0
        self._duration_ms_total = 0.0
        self._calls = 0

    def record_attempt(self) -> None:
        with self._lock:
            self._attempts += 1

    def record_retry(self) -> None:
        with self._lock:
            self._retries += 1

    def record_response(self, status_code: int, bytes_received: int) -> None:
        """Record a received response.

        Args:
            status_code: HTTP status code.
            bytes_received: Size of the buffered body.
        """
        with self._lock:
            self._responses[status_code] += 1
            self._bytes_total += bytes_received

    def record_transport_failure(self) -> None:
        with self._lock:
            self._transport_failures += 1

    def record_circuit_open_stop(self) -> None:
        with self._lock:
            self._circuit_open_stops += 1

    def record_call(self, duration_ms: float) -> None:
        """Record a finished ``do`` call.

        Args:
            duration_ms: Wall time of the call in milliseconds.
        """
        with self._lock:
            self._calls += 1
            self._duration_ms_total += duration_ms

    @property
    def attempts(self) -> int:
        with self._lock:
            return self._attempts

    @property
    def retries(self) -> int:
        with self._lock:
            return self._retries

    @property
    def avg_duration_ms(self) -> float:
        """Average call duration in milliseconds."""
        with self._lock:
            if self._calls == 0:
                return 0.0
            return self._duration_ms_total / self._calls

    def to_dict(self) -> dict[str, int | float | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "http_attempts_total": self._attempts,
                "http_retry_total": self._retries,
                "http_responses_total": dict(self._responses),
                "http_transport_failures_total": self._transport_failures,
                "http_circuit_open_stops_total": self._circuit_open_stops,
                "http_bytes_total": self._bytes_total,
                "http_duration_ms_total": self._duration_ms_total,
                "http_call_count": self._calls,
            }

    def reset(self) -> None:
        """Reset all counters."""
        with self._lock:
            self._responses.clear()
            self._attempts = 0
            self._retries = 0
            self._transport_failures = 0
            self._circuit_open_stops = 0
            self._bytes_total = 0
            self._duration_ms_total = 0.0
            self._calls = 0
