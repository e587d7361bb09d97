"""Exceptions raised by the request client and the entity store.

All library errors inherit from ApiStoreError, so callers can catch any
failure of this package with a single except clause. HTTP failures are
ApiError instances classified by status at construction time; timeouts are
a separate AbortError so "took too long" can be told apart from "server
rejected".
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of an ApiError by its HTTP status."""

    CLIENT = "client"
    SERVER = "server"
    NETWORK = "network"


class ApiStoreError(Exception):
    """Base class for all api_store exceptions."""


class ApiError(ApiStoreError):
    """An HTTP request that ended with a non-success response.

    Attributes:
        message: Human-readable message, from the backend when available.
        status_code: HTTP status code (0 when no response was received).
        application_code: Backend application-level error code, if any.
        field: Name of the offending request field, if the backend reported one.
        kind: CLIENT for 4xx, SERVER for 5xx, NETWORK when there was no status.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        application_code: str | None = None,
        field: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.application_code = application_code
        self.field = field
        self.kind = self._classify(status_code)
        super().__init__(message)

    @staticmethod
    def _classify(status_code: int) -> ErrorKind:
        if 400 <= status_code < 500:
            return ErrorKind.CLIENT
        if status_code >= 500:
            return ErrorKind.SERVER
        return ErrorKind.NETWORK

    @property
    def is_client_error(self) -> bool:
        """Whether the backend rejected the request (4xx)."""
        return self.kind is ErrorKind.CLIENT

    @property
    def is_server_error(self) -> bool:
        """Whether the backend failed to serve the request (5xx)."""
        return self.kind is ErrorKind.SERVER

    @property
    def is_retryable(self) -> bool:
        """Whether another attempt may succeed."""
        return self.kind is not ErrorKind.CLIENT

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, status_code={self.status_code}, "
            f"application_code={self.application_code!r}, field={self.field!r})"
        )


class NetworkError(ApiError):
    """The request never produced an HTTP response (connection reset, DNS, ...)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message, status_code=0)


class AbortError(ApiStoreError):
    """The per-attempt timeout fired and the attempt was cancelled.

    Never retried.

    Attributes:
        timeout: The timeout that elapsed, in seconds.
        url: The request URL, when known.
    """

    def __init__(self, timeout: float, url: str | None = None) -> None:
        self.timeout = timeout
        self.url = url
        target = f" for {url}" if url else ""
        super().__init__(f"Request timed out after {timeout:g}s{target}")


class UnsupportedContentTypeError(ApiStoreError):
    """A success response declared a content type that cannot be decoded."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"Unsupported content type: {content_type}")


class MalformedResponseError(ApiStoreError):
    """A success response declared JSON but its body could not be parsed."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class EntityNotFoundError(ApiStoreError, LookupError):
    """The store holds no entity with the given identifier."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Item with id {item_id} not found")


CONNECTION_MESSAGE = "Unable to connect to the server. Please check your internet connection."
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again."


def describe_error(error: object) -> str:
    """Turn any failure into a user-facing message.

    Args:
        error: An exception, a message string, or anything else

    Returns:
        The backend message for API errors, a connectivity hint for network
        failures, or a generic fallback
    """
    if isinstance(error, NetworkError):
        return CONNECTION_MESSAGE
    if isinstance(error, ApiError):
        return error.message
    if isinstance(error, BaseException):
        return str(error) or UNEXPECTED_MESSAGE
    if isinstance(error, str):
        return error
    return UNEXPECTED_MESSAGE
