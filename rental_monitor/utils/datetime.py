"""Time helpers shared by the persistence layer and the throttles."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    Used for found_at and updated_at columns so every stored timestamp is
    timezone-aware and in UTC.
    """
    return datetime.now(timezone.utc)


def ms_to_seconds(milliseconds: int) -> float:
    """Convert a millisecond setting (e.g. HD_IMAGE_DELAY_MS) to seconds, floored at zero."""
    return max(0, milliseconds) / 1000.0
