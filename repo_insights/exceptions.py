"""Exceptions raised while fetching repository traffic statistics."""

from typing import Optional


class FetchError(Exception):
    """A traffic series could not be fetched."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NetworkError(FetchError):
    """Connection failure, timeout or unexpected HTTP status."""


class RateLimitError(FetchError):
    """GitHub API rate limit exhausted."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
    ):
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when the limit resets
        super().__init__(message, status_code)


class DeserializationError(FetchError):
    """Response body was not a valid traffic payload."""


class InvalidRepositoryError(ValueError):
    """Repository reference is missing its owner or name."""
