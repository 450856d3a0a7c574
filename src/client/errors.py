"""Error types raised by the backend client layer.

Transport and timeout errors are normally absorbed by the chat controller
into user-visible state. They are raised directly only when a request cannot
be made at all.
"""


class ApiError(Exception):
    """Raised when a REST call fails or returns a non-2xx status.

    Attributes:
        status_code: HTTP status, or None when no response was received.
        message: Human-readable error from the backend.
        errors: Field-level errors reported by the backend, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class TransportError(Exception):
    """Raised when a reply stream cannot be opened."""

    pass


class ReplyTimeoutError(Exception):
    """Raised when no terminal stream event arrives within the reply timeout."""

    pass


class LoadError(Exception):
    """Raised when a session's history cannot be fetched."""

    pass


class MessageValidationError(ValueError):
    """Raised when a blank message would be sent."""

    pass
