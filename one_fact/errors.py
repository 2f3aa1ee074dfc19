"""Typed errors surfaced by the fact and chat clients.

Every failure inside the clients resolves to exactly one of these; the
underlying httpx or pydantic exception is kept as ``__cause__``.
"""


class FactServiceError(Exception):
    """Base class for client errors."""

    pass


class InvalidRequestError(FactServiceError):
    """Raised when a request cannot be built (malformed URL or input)."""

    pass


class EmptyResultError(FactServiceError):
    """Raised when the server answers with a null, empty or empty-list payload."""

    pass


class DecodeError(FactServiceError):
    """Raised when a payload does not match any accepted shape."""

    pass


class ServerError(FactServiceError):
    """Raised for a non-2xx response.

    Attributes:
        status_code: HTTP status returned by the server.
        message: Error message from the body, or a generic description.
        attempts: Requests made before this error surfaced.
    """

    def __init__(
        self, status_code: int, message: str | None = None, attempts: int = 1
    ) -> None:
        self.status_code = status_code
        self.attempts = attempts
        self.message = message or f"Server returned status code {status_code}"
        super().__init__(self.message)


class NetworkError(FactServiceError):
    """Raised for transport-level failures (timeouts, connection errors).

    Attributes:
        cause: The underlying exception.
        attempts: Requests made before this error surfaced.
    """

    def __init__(self, cause: BaseException, attempts: int = 1) -> None:
        self.cause = cause
        self.attempts = attempts
        super().__init__(f"Network error: {cause}")

