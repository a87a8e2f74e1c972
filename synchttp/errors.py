from typing import Optional


class SyncHTTPError(Exception):
    """Base exception for the synchttp package."""


class RequestError(SyncHTTPError):
    """Raised when request building or sending fails."""


class SerializationError(RequestError):
    """Raised when a request payload cannot be encoded into a body."""


class ResponseError(SyncHTTPError):
    """Raised when response parsing fails."""


class InvalidResponse(ResponseError):
    """Raised when the transport completed but did not report an HTTP response."""

    def __init__(self, response: Optional[object] = None) -> None:
        super().__init__(f"Invalid response: {response!r}")
        self.response = response


class RequestTimeout(SyncHTTPError):
    """Raised when the transport does not complete before the configured deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No response within {timeout} seconds")
        self.timeout = timeout
