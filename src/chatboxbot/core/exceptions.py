"""Exceptions raised by the chatbox connector and its collaborators."""


class ChatboxError(RuntimeError):
    """Base class for chatbox communication failures."""


class ForumResponseError(ChatboxError):
    """Raised when a single exchange with the forum did not succeed.

    The retry ladder reacts to this by refreshing the session; it only
    escapes to callers wrapped in a ``TransferError``.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialize the error with an optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)


class TransferError(ChatboxError):
    """Raised when sending to or receiving from the chatbox failed for good."""

    def __init__(self, operation: str, attempts: int) -> None:
        """Initialize the error with the failed operation and attempt count."""
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} failed after {attempts} attempts")


class PageScrapeAnomaly(ForumResponseError):
    """Raised when the messages page did not yield any extractable rows."""
