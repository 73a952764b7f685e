"""
Short-lived cache for upstream responses.

Snapshot data goes stale within seconds, so the cache exists to collapse
bursts of identical requests (page reloads, several widgets asking for the
same chain) into one upstream walk:
1. Performance - avoid redundant pagination walks
2. Load - the terminal only serves a handful of concurrent requests
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional
import logging
import shutil

from diskcache import Cache

logger = logging.getLogger(__name__)


def make_key(data_type: str, symbol: str, **params) -> str:
    """
    Build a readable cache key.

    Examples:
    - quote:SPY:expiration=2025-09-19
    - expirations:AAPL
    """
    # Sort params for consistent keys
    parts = [data_type, symbol] + [f"{k}={v}" for k, v in sorted(params.items())]
    return ":".join(parts)


class TTLCache:
    """
    Thread-safe key/value cache with per-entry expiry.

    Expiry is checked lazily on read; there is no sweeper and no size bound.
    Without a directory the backing store lives in a fresh temporary
    directory, which close() removes again.
    """

    def __init__(self, default_ttl: float = 1.5, cache_dir: Optional[Path] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.default_ttl = default_ttl
        self.clock = clock
        self.cache = Cache(directory=str(cache_dir) if cache_dir else None)
        self.cache_dir = Path(self.cache.directory)
        self.owns_dir = not cache_dir
        logger.debug(f"Cache initialized at: {self.cache_dir}")

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value, or None on miss or expiry.

        Expired entries are deleted as a side effect.
        """
        try:
            cached = self.cache.get(key)
            if cached is None:
                logger.debug(f"Cache miss: {key}")
                return None

            if self.clock() > cached['expires']:
                logger.debug(f"Cache expired: {key}")
                self.cache.delete(key)
                return None

            logger.debug(f"Cache hit: {key}")
            return cached['data']

        except Exception as e:
            logger.error(f"Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store value under key, replacing any existing entry.

        Args:
            key: Cache key (see make_key)
            value: Anything picklable
            ttl: Time-to-live in seconds, defaults to the cache's default_ttl
        """
        ttl = self.default_ttl if ttl is None else ttl
        now = self.clock()

        try:
            self.cache.set(key, {
                'data': value,
                'expires': now + timedelta(seconds=ttl),
                'cached_at': now,
            })
            logger.debug(f"Cached: {key} (TTL: {ttl}s)")

        except Exception as e:
            logger.error(f"Cache set error for {key}: {e}")

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if something was removed."""
        return bool(self.cache.delete(key))

    def clear(self) -> None:
        """Clear all cached data."""
        self.cache.clear()
        logger.info("Cache cleared")

    def close(self) -> None:
        self.cache.close()
        if self.owns_dir:
            shutil.rmtree(self.cache_dir, ignore_errors=True)
            logger.debug(f"Removed temporary cache at: {self.cache_dir}")

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return {
            'size': len(self.cache),
            'directory': str(self.cache_dir),
        }
