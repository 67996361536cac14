"""
In-memory token cache with TTL.

APNs provider tokens are signed JWTs that Apple accepts for up to an hour and
rejects when re-signed more often than every twenty minutes. Each signed token
is cached per signing key with a TTL so that every push in a run reuses it.
"""

from datetime import datetime, timedelta

from rental_monitor.utils.datetime import utc_now


class TokenCache:
    """
    In-memory token cache with time-to-live (TTL) expiration.

    Attributes:
        ttl: Time-to-live for cached tokens
        _cache: Internal storage mapping a key to (token, expires_at) tuples

    Example:
        >>> cache = TokenCache(ttl_seconds=3000)
        >>> cache.set("ABC123KEY", "eyJhbGciOi...")
        >>> token = cache.get("ABC123KEY")
        >>> cache.invalidate("ABC123KEY")
    """

    def __init__(self, ttl_seconds: int = 3000):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._cache: dict[str, tuple[str, datetime]] = {}

    def get(self, key: str) -> str | None:
        """
        Get cached token if not expired.

        Args:
            key: Cache key (APNs key id)

        Returns:
            Cached token string if found and not expired, None otherwise
        """
        if key in self._cache:
            token, expires_at = self._cache[key]
            if utc_now() < expires_at:
                return token
            del self._cache[key]
        return None

    def set(self, key: str, token: str) -> None:
        """Cache token with TTL."""
        self._cache[key] = (token, utc_now() + self.ttl)

    def invalidate(self, key: str) -> None:
        """
        Remove token from cache.

        Called when APNs rejects a token as expired so the next request signs a
        fresh one.
        """
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


# Global cache instance. 50 minutes keeps tokens inside Apple's one-hour
# validity window while staying well above the 20-minute re-sign floor.
token_cache = TokenCache(ttl_seconds=3000)
