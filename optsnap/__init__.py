"""
Snapshot engine for option chains.

This package fetches paginated snapshots from the quote provider, caches them
briefly, and merges quotes, open interest, volume and implied volatility into
one row per strike.
"""

from .cache import TTLCache
from .data_fetcher import DataFetcher
from .errors import (
    OptionsDataError,
    UpstreamConnectionError,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamParseError,
    ValidationError,
)
from .expirations import Expiration, ExpirationFilter
from .options_chain import MergedRow, OptionsChain, SnapshotAggregator
from .page_fetcher import PageFetcher
from .service import OptionsService

__all__ = [
    "TTLCache",
    "DataFetcher",
    "PageFetcher",
    "ExpirationFilter",
    "Expiration",
    "SnapshotAggregator",
    "OptionsChain",
    "MergedRow",
    "OptionsService",
    "OptionsDataError",
    "ValidationError",
    "UpstreamError",
    "UpstreamHTTPError",
    "UpstreamParseError",
    "UpstreamConnectionError",
]
