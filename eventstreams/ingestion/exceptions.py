"""
Exceptions raised by the EventStreams client.
"""

from typing import Optional


class EventStreamError(Exception):
    """Base class for errors raised by this package."""


class ConnectionFailedError(EventStreamError):
    """The stream could not be opened (retries exhausted or non-retryable HTTP status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StreamInterruptedError(EventStreamError):
    """An established stream failed while reading."""
