"""HTTP client with lifecycle hooks, retries, and circuit breaking."""

import threading
import time
from types import TracebackType
from typing import Any

import httpx
import structlog

from src.features.client.circuit import Circuit, CircuitRegistry
from src.features.client.config import ClientConfig, is_valid_method
from src.features.client.dump import redact_url_credentials
from src.features.client.errors import (
    RequestCancelledError,
    RequestConstructionError,
    ResponseReadError,
    TransportError,
)
from src.features.client.metrics import ClientMetrics
from src.features.client.options import Option
from src.features.client.request import Request
from src.features.client.response import Response
from src.features.client.transport import (
    DeadlineStream,
    attempt_deadline,
    attempt_timeout,
    build_http_client,
)
from src.features.observability.logging import build_logger


logger = structlog.get_logger()


class Client:
    """HTTP client running every call through a fixed pipeline.

    A call (``do``) renders the body, runs the before-request hooks, builds
    the transport request, runs the request hooks and then enters the
    attempt loop. Each attempt goes through the request's circuit when one
    is registered, is turned into a ``Response``, and is put to the retry
    hooks. Response hooks run once on the final response.

    Configuration, hooks, the circuit registry and the pooled transport are
    fixed at construction and shared read-only by concurrent calls.
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; defaults apply when None.
        """
        self._config = config or ClientConfig()
        self._log = self._build_logger(self._config).bind(component="client")
        self._metrics = ClientMetrics()
        self._circuits = CircuitRegistry(self._config.circuit, log=self._log)
        for name in self._config.circuit_names():
            self._circuits.register(name)
        self._http = build_http_client(
            self._config.transport, self._config.http_transport
        )

    def __enter__(self) -> "Client":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def logger(self) -> Any:
        return self._log

    @property
    def metrics(self) -> ClientMetrics:
        return self._metrics

    @property
    def circuits(self) -> CircuitRegistry:
        return self._circuits

    def close(self) -> None:
        """Close pooled connections."""
        self._http.close()

    def new_request(self) -> Request:
        """Create an empty request to populate."""
        return Request()

    def do(self, request: Request, cancel: threading.Event | None = None) -> Response:
        """Execute a request.

        Args:
            request: Populated request. Consumed by this call.
            cancel: Cancellation token; once set, no further attempt starts
                and a pending backoff wait ends immediately.

        Returns:
            Final response, after every response hook succeeded.

        Raises:
            BodyConstructionError: If the body cannot be rendered.
            RequestConstructionError: If method or URL are malformed.
            TransportError: If the last attempt failed at the transport level.
            ResponseReadError: If a response body could not be read.
            RequestCancelledError: If ``cancel`` was set during the call.
            Exception: Whatever a before-request, request or response hook
                raised, unchanged.
        """
        start_time_ns = time.perf_counter_ns()
        try:
            return self._do(request, cancel)
        finally:
            duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
            self._metrics.record_call(duration_ms)

    def _do(self, request: Request, cancel: threading.Event | None) -> Response:
        body = request.body()

        for hook in self._config.before_request_hooks:
            hook(self, request)

        request.raw = self._build_raw_request(request, body)

        for hook in self._config.request_hooks:
            hook(self, request)

        response = self._execute_with_retry(request, cancel)

        for hook in self._config.response_hooks:
            try:
                hook(self, response)
            except Exception as e:
                self._log.error(
                    "response_hook_failed",
                    hook=getattr(hook, "__name__", repr(hook)),
                    error=str(e),
                )
                raise

        return response

    def _build_raw_request(self, request: Request, body: bytes) -> httpx.Request:
        """Build the transport request from base URL, path, method and body.

        Raises:
            RequestConstructionError: On an invalid method or URL.
        """
        if not is_valid_method(request.method):
            msg = f"Invalid HTTP method: {request.method!r}"
            raise RequestConstructionError(msg)

        target = self._config.base_url + request.path
        try:
            url = httpx.URL(target)
            if request.params:
                url = url.copy_merge_params(request.params)
            raw = httpx.Request(
                request.method,
                url,
                headers=request.headers,
                content=body,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            msg = f"Cannot build request for {redact_url_credentials(target)!r}: {e}"
            raise RequestConstructionError(msg) from e

        if raw.url.scheme not in ("http", "https") or not raw.url.host:
            msg = (
                "Request URL must be an absolute http(s) URL: "
                f"{redact_url_credentials(target)!r}"
            )
            raise RequestConstructionError(msg)
        return raw

    def _execute_with_retry(
        self, request: Request, cancel: threading.Event | None
    ) -> Response:
        """Run the attempt loop.

        Returns:
            Response of the last attempt.

        Raises:
            TransportError: If the last attempt failed at the transport level.
        """
        retry = self._config.retry
        backoff = self._config.backoff
        log = self._log.bind(
            method=request.method,
            url=redact_url_credentials(str(request.raw.url)) if request.raw else "",
        )
        count = 0
        error: TransportError | None = None
        response: Response | None = None

        while count <= retry:
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError("Call cancelled before attempt")

            if count >= 1:
                request.rewind()

            circuit_name = request.circuit_name or self._config.default_circuit_name
            circuit = self._circuits.get(circuit_name)

            deadline = attempt_deadline(self._config.transport)
            raw_response, error = self._attempt(request, circuit, deadline)
            count += 1
            self._metrics.record_attempt()

            try:
                response = self._build_response(request, raw_response, deadline)
            except TransportError as e:
                response, error = Response(request), e

            if error is not None:
                self._metrics.record_transport_failure()
                log.warning(
                    "attempt_failed",
                    attempt=count,
                    circuit=circuit_name or None,
                    error=str(error),
                )

            if circuit is not None and circuit.is_open():
                self._metrics.record_circuit_open_stop()
                log.warning("circuit_open_stop", attempt=count, circuit=circuit_name)
                break

            if not self._should_retry(response, error):
                break
            if count > retry or backoff is None:
                break

            delay = backoff(count)
            self._metrics.record_retry()
            log.debug(
                "retry_scheduled",
                attempt=count,
                delay_ms=round(delay * 1000, 2),
                max_retries=retry,
            )
            self._wait(delay, cancel)

        if error is not None:
            log.error("request_failed", attempts=count, error=str(error))
            raise error

        if response is None:
            msg = "Attempt loop ended without an attempt"
            raise RuntimeError(msg)
        return response

    def _attempt(
        self, request: Request, circuit: Circuit | None, deadline: float
    ) -> tuple[httpx.Response | None, TransportError | None]:
        """Send one attempt, guarded by ``circuit`` when given.

        Returns:
            Raw response (headers read, body unread) or the transport error.
        """
        raw_request = request.raw
        if raw_request is None:
            msg = "Transport request has not been built"
            raise RuntimeError(msg)

        def send() -> httpx.Response:
            raw_request.extensions = {
                **raw_request.extensions,
                "timeout": attempt_timeout(self._config.transport, deadline),
            }
            try:
                return self._http.send(raw_request, stream=True)
            except httpx.RequestError as e:
                raise TransportError(
                    f"{type(e).__name__}: {e}",
                    circuit_name=circuit.name if circuit else None,
                ) from e

        request.profile.mark_request_start()
        try:
            if circuit is None:
                return send(), None
            return circuit.execute(send), None
        except TransportError as e:
            return None, e
        finally:
            request.profile.mark_request_done()

    def _build_response(
        self,
        request: Request,
        raw_response: httpx.Response | None,
        deadline: float,
    ) -> Response:
        """Buffer the body of ``raw_response`` and close its stream.

        Raises:
            TransportError: If the body read times out or outlasts ``deadline``.
            ResponseReadError: If reading or closing the body fails otherwise.
        """
        if raw_response is None:
            return Response(request)

        request.profile.mark_receiving_start()
        raw_response.stream = DeadlineStream(raw_response.stream, deadline)
        try:
            body = raw_response.read()
        except httpx.TimeoutException as e:
            _close_quietly(raw_response)
            request.profile.mark_receiving_done()
            raise TransportError(f"{type(e).__name__}: {e}") from e
        except httpx.HTTPError as e:
            self._log.error("response_read_failed", error=str(e))
            _close_quietly(raw_response)
            msg = f"Failed to read response body: {e}"
            raise ResponseReadError(msg) from e
        try:
            raw_response.close()
        except httpx.HTTPError as e:
            self._log.error("response_close_failed", error=str(e))
            msg = f"Failed to close response body: {e}"
            raise ResponseReadError(msg) from e
        request.profile.mark_receiving_done()

        self._metrics.record_response(raw_response.status_code, len(body))
        return Response(
            request,
            raw=raw_response,
            body=body,
            status_code=raw_response.status_code,
        )

    def _should_retry(self, response: Response, error: TransportError | None) -> bool:
        """Evaluate retry hooks in order; the first vote to retry wins."""
        return any(hook(response, error) for hook in self._config.retry_hooks)

    @staticmethod
    def _wait(delay: float, cancel: threading.Event | None) -> None:
        """Block for ``delay`` seconds, ending early on cancellation.

        Raises:
            RequestCancelledError: If ``cancel`` is set during the wait.
        """
        if delay <= 0:
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError("Call cancelled during backoff")
            return
        if cancel is None:
            time.sleep(delay)
            return
        if cancel.wait(delay):
            raise RequestCancelledError("Call cancelled during backoff")

    @staticmethod
    def _build_logger(config: ClientConfig) -> Any:
        if config.logger is not None:
            return config.logger
        if config.log_level is not None:
            return build_logger(config.log_level)
        return logger


def _close_quietly(raw_response: httpx.Response) -> None:
    try:
        raw_response.close()
    except httpx.HTTPError:
        # The read failure is the error being reported.
        return


def new(*options: Option) -> Client:
    """Build a client from options applied in order.

    Args:
        *options: Construction options, e.g. ``with_retry(3)``.

    Returns:
        Configured client.

    Raises:
        ConfigError: If any option is invalid.
    """
    config = ClientConfig()
    for option in options:
        config = option(config)
    return Client(config)
