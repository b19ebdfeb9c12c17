"""Errors raised on the event fetch path."""
from typing import Optional


class FetchError(Exception):
    """Base class for failures while loading events."""

    default_message = "Something went wrong loading events"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class InvalidRequest(FetchError):
    """Query was malformed before anything was dispatched."""

    default_message = "Invalid request"


class NetworkFailure(FetchError):
    """Transport-level failure talking to an upstream service."""

    default_message = "Could not reach the events service"


class DecodeFailure(FetchError):
    """Payload did not match the expected shape."""

    default_message = "Invalid server response"


class RateLimited(FetchError):
    """Upstream answered 429."""

    default_message = "Too many requests. Please try again in a moment."


class HTTPFailure(FetchError):
    """Upstream answered with a non-200 status other than 429."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Server error (code: {status_code})")


class NoResults(FetchError):
    """Successful response with nothing in it.

    Never raised by the fetch path; its message is the empty-state text.
    """

    default_message = "No events found in your area"
