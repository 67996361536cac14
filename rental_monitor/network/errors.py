"""Typed errors raised by the listing source client."""

from typing import Optional


class ListingSourceError(Exception):
    """
    Base error for listing source calls.

    retryable tells the client's retry loop (and callers) whether the same
    request may succeed later.
    """

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientSourceError(ListingSourceError):
    """Timeout, connection failure, decompression/JSON failure, 429 or 5xx."""

    retryable = True


class ListingNotFoundError(ListingSourceError):
    """404 from the listing source."""


class BadRequestError(ListingSourceError):
    """400/422: the criteria were rejected by the listing source."""
