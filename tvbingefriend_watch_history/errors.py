"""Errors raised by the watch history client and server layers."""


class HistoryAPIError(Exception):
    """Base class for failures talking to the watch history API."""


class Unauthorized(HistoryAPIError):
    """The caller's session is missing or no longer valid (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(HistoryAPIError):
    """The requested resource no longer exists (HTTP 404)."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class TransportError(HistoryAPIError):
    """
    Any other failed request.

    `status` is the HTTP status code, or None when no response was received
    (connection refused, timeout, ...).
    """

    def __init__(self, status: int | None, message: str | None = None):
        self.status = status
        if message is None:
            message = f"Request failed: {status}" if status is not None else "Request failed"
        super().__init__(message)


class UnknownError(HistoryAPIError):
    """A non-network failure, e.g. a malformed response body."""

    def __init__(self, message: str = "Unknown error"):
        super().__init__(message)


class WatchedItemAlreadyExistsError(Exception):
    """The user already marked this movie/series as watched."""

    def __init__(self, message: str = "Already marked as watched"):
        super().__init__(message)


class InvalidCursorError(ValueError):
    """The pagination cursor does not point at an item of the user's history."""
