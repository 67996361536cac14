"""Explicit success/failure values for per-item operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a single operation that must not abort its batch.

    Persistence calls return a Result instead of raising so callers can
    collect the error string and move on to the next listing.

    Example:
        >>> result = gateway.upsert_listing(listing)
        >>> if not result.ok:
        ...     errors.append(result.error)
    """

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> Result[T]:
        return cls(error=error)
