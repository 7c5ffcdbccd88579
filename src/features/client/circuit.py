"""Named circuit breakers consulted by the client per request.

The breaker state machine itself is pybreaker's. This module adapts it to the
two operations the pipeline needs (guarded execution and an open check),
adds an error-rate opener over a bucketed rolling window, and keeps the
name -> breaker registry.
"""

import sys
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, NoReturn, Protocol, TypeVar

import pybreaker
import structlog

from src.features.client.errors import TransportError
from src.features.client.models import CircuitSettings


logger = structlog.get_logger()

T = TypeVar("T")


class Circuit(Protocol):
    """Failure-isolation guard for one named dependency."""

    @property
    def name(self) -> str: ...

    def execute(self, action: Callable[[], T]) -> T:
        """Run ``action`` and account its outcome.

        Raises:
            TransportError: If the circuit refuses the call.
        """
        ...

    def is_open(self) -> bool: ...


@dataclass
class _Bucket:
    index: int
    successes: int = 0
    failures: int = 0


class ErrorRateOpener(pybreaker.CircuitBreakerListener):  # type: ignore[misc]
    """Opens a closed breaker when the rolling error rate crosses a threshold.

    Outcomes are counted in ``num_buckets`` buckets spanning
    ``rolling_window_seconds``. The breaker is opened once at least
    ``request_volume_threshold`` outcomes are in the window and failures
    make up ``error_threshold_percentage`` percent or more of them.
    """

    def __init__(
        self,
        settings: CircuitSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._buckets: deque[_Bucket] = deque()
        self._lock = threading.Lock()

    def success(self, cb: pybreaker.CircuitBreaker) -> None:  # noqa: ARG002
        self._record(failed=False)

    def failure(self, cb: pybreaker.CircuitBreaker, exc: BaseException) -> None:  # noqa: ARG002
        tripped = self._record(failed=True)
        if tripped and cb.current_state == pybreaker.STATE_CLOSED:
            cb.open()

    def state_change(
        self, cb: pybreaker.CircuitBreaker, old_state: Any, new_state: Any  # noqa: ARG002
    ) -> None:
        if getattr(new_state, "name", None) == pybreaker.STATE_CLOSED:
            self.reset()

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def totals(self) -> tuple[int, int]:
        """Return (total, failures) over the current window."""
        with self._lock:
            self._expire(self._current_index())
            return self._sum()

    def _record(self, *, failed: bool) -> bool:
        index = self._current_index()
        with self._lock:
            self._expire(index)
            if not self._buckets or self._buckets[-1].index != index:
                self._buckets.append(_Bucket(index=index))
            bucket = self._buckets[-1]
            if failed:
                bucket.failures += 1
            else:
                bucket.successes += 1
            total, failures = self._sum()

        if total < self._settings.request_volume_threshold:
            return False
        return failures * 100 >= self._settings.error_threshold_percentage * total

    def _current_index(self) -> int:
        return int(self._clock() // self._settings.bucket_width_seconds)

    def _expire(self, index: int) -> None:
        oldest = index - self._settings.num_buckets + 1
        while self._buckets and self._buckets[0].index < oldest:
            self._buckets.popleft()

    def _sum(self) -> tuple[int, int]:
        successes = sum(b.successes for b in self._buckets)
        failures = sum(b.failures for b in self._buckets)
        return successes + failures, failures


class CircuitLogListener(pybreaker.CircuitBreakerListener):  # type: ignore[misc]
    """Logs breaker state transitions."""

    def __init__(self, log: Any) -> None:
        self._log = log

    def state_change(
        self, cb: pybreaker.CircuitBreaker, old_state: Any, new_state: Any
    ) -> None:
        self._log.info(
            "circuit_state_change",
            circuit=cb.name,
            old=getattr(old_state, "name", None),
            new=getattr(new_state, "name", None),
        )


class PyBreakerCircuit:
    """Circuit backed by a ``pybreaker.CircuitBreaker``.

    pybreaker's own ``call`` holds the breaker lock while the guarded action
    runs. Here the lock is held only to admit the call and, afterwards, to
    feed the outcome through the breaker, so guarded sends run concurrently.
    While half-open, one trial call is admitted at a time.
    """

    def __init__(self, breaker: pybreaker.CircuitBreaker) -> None:
        self._breaker = breaker
        self._lock = threading.Lock()
        self._trial_in_flight = False

    def __repr__(self) -> str:
        return f"PyBreakerCircuit(name={self.name!r}, state={self.state!r})"

    @property
    def name(self) -> str:
        return str(self._breaker.name)

    @property
    def breaker(self) -> pybreaker.CircuitBreaker:
        return self._breaker

    @property
    def state(self) -> str:
        return str(self._breaker.current_state)

    def execute(self, action: Callable[[], T]) -> T:
        """Run ``action`` under the breaker's accounting.

        Exceptions raised by ``action`` count as failures and propagate
        unchanged.

        Raises:
            TransportError: If the breaker is open and refuses the call.
        """
        trial = self._admit()
        try:
            result = action()
        except Exception as e:
            self._record(e, trial=trial)
            raise
        except BaseException:
            self._release(trial=trial)
            raise
        self._record(None, trial=trial)
        return result

    def is_open(self) -> bool:
        return self._breaker.current_state == pybreaker.STATE_OPEN

    def _admit(self) -> bool:
        """Check the breaker state; returns True for a half-open trial."""
        with self._lock:
            state = self._breaker.current_state
            if state == pybreaker.STATE_OPEN:
                if self._cooldown_remaining() > 0:
                    self._refuse("Timeout not elapsed yet, circuit breaker still open")
                self._breaker.half_open()
                state = pybreaker.STATE_HALF_OPEN
            if state == pybreaker.STATE_HALF_OPEN:
                if self._trial_in_flight:
                    self._refuse("Trial call in flight, circuit breaker half-open")
                self._trial_in_flight = True
                return True
            return False

    def _record(self, error: Exception | None, *, trial: bool) -> None:
        def replay() -> None:
            if error is not None:
                raise error

        with self._lock:
            if trial:
                self._trial_in_flight = False
            state = self._breaker.current_state
            # State moved on while the action ran; the outcome is stale.
            if state == pybreaker.STATE_OPEN or (
                state == pybreaker.STATE_HALF_OPEN and not trial
            ):
                return
            try:
                self._breaker.call(replay)
            except Exception as e:
                if e is not error:
                    raise

    def _release(self, *, trial: bool) -> None:
        if trial:
            with self._lock:
                self._trial_in_flight = False

    def _cooldown_remaining(self) -> float:
        opened_at = self._breaker._state_storage.opened_at  # noqa: SLF001
        if opened_at is None:
            return 0.0
        reopen_at = opened_at + timedelta(seconds=self._breaker.reset_timeout)
        return (reopen_at - datetime.now(UTC)).total_seconds()

    def _refuse(self, reason: str) -> NoReturn:
        msg = f"Circuit '{self.name}' is open"
        raise TransportError(msg, circuit_name=self.name) from (
            pybreaker.CircuitBreakerError(reason)
        )


def build_breaker(
    name: str,
    settings: CircuitSettings,
    log: Any = None,
    clock: Callable[[], float] = time.monotonic,
) -> pybreaker.CircuitBreaker:
    """Create a pybreaker breaker tuned by ``settings``.

    Args:
        name: Circuit name.
        settings: Breaker tuning.
        log: Logger for state transitions.
        clock: Monotonic clock used by the rolling window.

    Returns:
        Configured breaker.
    """
    listeners: list[pybreaker.CircuitBreakerListener] = [
        ErrorRateOpener(settings, clock=clock),
        CircuitLogListener(log or logger.bind(component="circuit")),
    ]
    return pybreaker.CircuitBreaker(
        # Closed breakers open only through ErrorRateOpener.
        fail_max=sys.maxsize,
        reset_timeout=settings.sleep_window_seconds,
        success_threshold=settings.required_successes,
        throw_new_error_on_trip=False,
        listeners=listeners,
        name=name,
    )


class CircuitRegistry:
    """Maps circuit names to breakers.

    Populated while the client is constructed and read-only afterwards.
    Lookups of unknown or empty names return None, meaning the transport
    call runs unguarded.
    """

    def __init__(
        self,
        settings: CircuitSettings | None = None,
        log: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or CircuitSettings()
        self._log = log
        self._clock = clock
        self._circuits: dict[str, Circuit] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self._circuits

    def __len__(self) -> int:
        return len(self._circuits)

    @property
    def settings(self) -> CircuitSettings:
        return self._settings

    def register(self, name: str, circuit: Circuit | None = None) -> Circuit:
        """Register a circuit under ``name``.

        Args:
            name: Circuit name.
            circuit: Prebuilt circuit; a pybreaker circuit is built if None.

        Returns:
            The registered circuit. Registering an existing name returns the
            circuit already registered.

        Raises:
            ValueError: If ``name`` is empty.
        """
        if not name:
            msg = "Circuit name must not be empty"
            raise ValueError(msg)
        with self._lock:
            existing = self._circuits.get(name)
            if existing is not None:
                return existing
            if circuit is None:
                breaker = build_breaker(name, self._settings, self._log, self._clock)
                circuit = PyBreakerCircuit(breaker)
            self._circuits[name] = circuit
            return circuit

    def get(self, name: str) -> Circuit | None:
        """Look up a circuit by name."""
        if not name:
            return None
        return self._circuits.get(name)

    def names(self) -> list[str]:
        return sorted(self._circuits)
