"""Error model shared by the connection pool, sniffer and transport."""

from enum import Enum
from typing import Any, Mapping, Optional


class ErrorKind(Enum):
    """Failure categories a request can end in."""
    INVALID_CONNECTION = "invalid-connection"
    NO_CONNECTIONS_AVAILABLE = "no-connections-available"
    REQUEST_ERROR = "request-error"
    INVALID_HTTP_RESPONSE = "invalid-http-response"
    INVALID_JSON_RESPONSE = "invalid-json-response"
    MISSING_REQUIRED_PARAMETER = "missing-required-parameter"
    EMPTY_REQUIRED_PARAMETER = "empty-required-parameter"
    API_ERROR = "api-error"
    UNKNOWN = "unknown"


# Kinds returned to the caller straight away, whatever the retry settings say.
TERMINAL_KINDS = frozenset({
    ErrorKind.INVALID_CONNECTION,
    ErrorKind.NO_CONNECTIONS_AVAILABLE,
    ErrorKind.API_ERROR,
    ErrorKind.MISSING_REQUIRED_PARAMETER,
    ErrorKind.EMPTY_REQUIRED_PARAMETER,
})


class TransportError(Exception):
    """
    A typed transport failure.

    One class tagged by ``kind`` rather than a subclass per failure, so callers
    can match on ``error.kind``. Extra fields are populated depending on kind.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        connection: Any = None,
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.connection = connection
        self.cause = cause
        self.status = status
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.kind not in TERMINAL_KINDS

    def __repr__(self) -> str:
        return f"TransportError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def invalid_connection(cls, connection: Any) -> "TransportError":
        return cls(
            ErrorKind.INVALID_CONNECTION,
            f"Attempted to add a connection without a usable address: {connection!r}",
            connection=connection,
        )

    @classmethod
    def no_connections_available(cls) -> "TransportError":
        return cls(ErrorKind.NO_CONNECTIONS_AVAILABLE, "No connections available")

    @classmethod
    def request_error(
        cls, cause: BaseException, body: Optional[bytes] = None, connection: Any = None
    ) -> "TransportError":
        return cls(
            ErrorKind.REQUEST_ERROR,
            f"Request error: {cause}",
            connection=connection,
            cause=cause,
            body=body,
        )

    @classmethod
    def invalid_http_response(
        cls, detail: str, cause: Optional[BaseException] = None, connection: Any = None
    ) -> "TransportError":
        return cls(
            ErrorKind.INVALID_HTTP_RESPONSE,
            f"Did not get a valid HTTP response: {detail}",
            connection=connection,
            cause=cause,
        )

    @classmethod
    def invalid_json_response(
        cls, body: Optional[bytes], cause: Optional[BaseException] = None
    ) -> "TransportError":
        return cls(
            ErrorKind.INVALID_JSON_RESPONSE,
            f"Invalid JSON response: {body[:200]!r}" if body else "Invalid JSON response",
            cause=cause,
            body=body,
        )

    @classmethod
    def api_error(cls, status: int, body: Any) -> "TransportError":
        return cls(
            ErrorKind.API_ERROR,
            f"API returned an error: {status}",
            status=status,
            body=body,
        )

    @classmethod
    def missing_required_parameter(cls, name: str) -> "TransportError":
        return cls(ErrorKind.MISSING_REQUIRED_PARAMETER, f"Missing a required parameter: {name}")

    @classmethod
    def empty_required_parameter(cls, name: str) -> "TransportError":
        return cls(
            ErrorKind.EMPTY_REQUIRED_PARAMETER,
            f"Required parameter is present but empty: {name}",
        )

    @classmethod
    def unknown(cls, cause: Optional[BaseException] = None) -> "TransportError":
        return cls(ErrorKind.UNKNOWN, f"Unknown transport error: {cause}", cause=cause)


def require_param(params: Mapping[str, Any], name: str) -> Any:
    """Return ``params[name]``, raising a parameter error if it is absent or empty."""
    if name not in params or params[name] is None:
        raise TransportError.missing_required_parameter(name)
    value = params[name]
    if isinstance(value, (str, list, tuple, dict)) and not value:
        raise TransportError.empty_required_parameter(name)
    return value
