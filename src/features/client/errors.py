"""Error types raised by the HTTP client pipeline."""


class ClientError(Exception):
    """Base class for all client errors."""


class ConfigError(ClientError):
    """Invalid client option or configuration value."""


class BodyConstructionError(ClientError):
    """Request body could not be serialized."""


class HookError(ClientError):
    """A lifecycle hook rejected the call.

    Attributes:
        chain: Name of the hook chain (before_request, request, response).
        position: Index of the hook within its chain, if known.
    """

    def __init__(
        self, message: str, chain: str = "", position: int | None = None
    ) -> None:
        super().__init__(message)
        self.chain = chain
        self.position = position


class RequestConstructionError(ClientError):
    """Method, URL or target of the request is malformed."""


class TransportError(ClientError):
    """Network or connection level failure, potentially retryable.

    Attributes:
        circuit_name: Circuit the attempt ran through, if any.
    """

    def __init__(self, message: str, circuit_name: str | None = None) -> None:
        super().__init__(message)
        self.circuit_name = circuit_name


class ResponseReadError(ClientError):
    """Response body read or stream close failed. Never retried."""


class RequestCancelledError(ClientError):
    """The caller cancelled the call before it completed."""
