"""
Upstream endpoint catalogue.

Every call goes through the same path:
1. Look in the TTL cache
2. On a miss, walk all pages with the PageFetcher
3. Cache the flattened result

Endpoints mirror the terminal's REST surface; the snapshot endpoints all take
the symbol plus an ISO expiration.
"""
from typing import Any, Dict, Optional
import logging

from .cache import TTLCache, make_key
from .page_fetcher import FetchResult, PageFetcher

logger = logging.getLogger(__name__)

EXPIRATIONS_PATH = "/option/list/expirations"
SNAPSHOT_PATHS = {
    "quote": "/option/snapshot/quote",
    "open_interest": "/option/snapshot/open_interest",
    "volume": "/option/snapshot/ohlc",
    "implied_vol": "/option/snapshot/greeks/implied_volatility",
}
LEGACY_BULK_QUOTE_PATH = "/bulk_snapshot/option/quote"


class DataFetcher:
    """
    Cached access to the quote provider.

    The cache and page fetcher are injected so several components (and tests)
    can share them.
    """

    def __init__(self, base_url: str, cache: TTLCache, page_fetcher: PageFetcher,
                 legacy_base_url: Optional[str] = None, cache_ttl: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.legacy_base_url = (legacy_base_url or base_url).rstrip("/")
        self.cache = cache
        self.pages = page_fetcher
        self.cache_ttl = cache_ttl

    def _fetch(self, key: str, url: str, params: Dict[str, Any]) -> FetchResult:
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = self.pages.fetch_all(url, params)
        self.cache.set(key, result, self.cache_ttl)
        return result

    def list_expirations(self, symbol: str) -> FetchResult:
        """All listed expirations for an underlying."""
        return self._fetch(
            make_key("expirations", symbol),
            f"{self.base_url}{EXPIRATIONS_PATH}",
            {"symbol": symbol, "format": "json"},
        )

    def snapshot(self, source: str, symbol: str, expiration_iso: str) -> FetchResult:
        """
        Point-in-time snapshot for every contract of one expiration.

        Args:
            source: One of SNAPSHOT_PATHS (quote, open_interest, volume, implied_vol)
            symbol: Underlying root
            expiration_iso: Expiration as YYYY-MM-DD
        """
        if source not in SNAPSHOT_PATHS:
            raise KeyError(f"Unknown snapshot source: {source}")
        return self._fetch(
            make_key(source, symbol, expiration=expiration_iso),
            f"{self.base_url}{SNAPSHOT_PATHS[source]}",
            {"symbol": symbol, "expiration": expiration_iso, "format": "json"},
        )

    def snapshot_quote(self, symbol: str, expiration_iso: str) -> FetchResult:
        return self.snapshot("quote", symbol, expiration_iso)

    def snapshot_open_interest(self, symbol: str, expiration_iso: str) -> FetchResult:
        return self.snapshot("open_interest", symbol, expiration_iso)

    def snapshot_volume(self, symbol: str, expiration_iso: str) -> FetchResult:
        return self.snapshot("volume", symbol, expiration_iso)

    def snapshot_implied_vol(self, symbol: str, expiration_iso: str) -> FetchResult:
        return self.snapshot("implied_vol", symbol, expiration_iso)

    def bulk_quote_legacy(self, symbol: str, expiration_ymd: str) -> FetchResult:
        """Legacy bulk quote snapshot; items carry compact tick arrays."""
        return self._fetch(
            make_key("legacy_quote", symbol, exp=expiration_ymd),
            f"{self.legacy_base_url}{LEGACY_BULK_QUOTE_PATH}",
            {"root": symbol, "exp": expiration_ymd},
        )
