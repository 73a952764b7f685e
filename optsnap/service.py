"""
Outbound service surface.

This is what a request layer, the demo script or the Streamlit viewer talks
to. It owns the shared pieces (HTTP session, cache) and validates input before
anything touches the network.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import requests

from config import ServiceConfig, UpstreamConfig, service_config, upstream_config
from .cache import TTLCache
from .data_fetcher import DataFetcher
from .expirations import Expiration, ExpirationFilter
from .fields import DOLLARS, LEGACY_STRIKE_POLICY, StrikeScalePolicy
from .legacy import build_legacy_chain
from .options_chain import OptionsChain, SnapshotAggregator
from .page_fetcher import PageFetcher
from .validation import clean_symbol

logger = logging.getLogger(__name__)


class OptionsService:
    """
    Expirations and merged chains for the outside world.

    Everything is injectable; with no arguments the module-level config is
    used and a fresh session and cache are created. Snapshot strikes arrive
    in dollars; legacy bulk strikes are in minor units and get their own policy.
    """

    def __init__(self, upstream: Optional[UpstreamConfig] = None,
                 settings: Optional[ServiceConfig] = None,
                 cache: Optional[TTLCache] = None,
                 session: Optional[requests.Session] = None,
                 strike_policy: StrikeScalePolicy = DOLLARS,
                 legacy_strike_policy: StrikeScalePolicy = LEGACY_STRIKE_POLICY):
        self.upstream = upstream or upstream_config
        self.settings = settings or service_config
        self.cache = cache or TTLCache(default_ttl=self.upstream.cache_ttl,
                                       cache_dir=self.upstream.cache_dir)
        self.legacy_strike_policy = legacy_strike_policy

        pages = PageFetcher(
            session=session,
            next_page_header=self.upstream.next_page_header,
            timeout=self.upstream.timeout,
            excerpt_chars=self.upstream.error_excerpt_chars,
        )
        self.fetcher = DataFetcher(
            base_url=self.upstream.base_url,
            legacy_base_url=self.upstream.legacy_base_url,
            cache=self.cache,
            page_fetcher=pages,
            cache_ttl=self.upstream.cache_ttl,
        )
        self.expirations = ExpirationFilter(self.fetcher)
        self.aggregator = SnapshotAggregator(
            self.fetcher,
            max_workers=self.settings.fetch_workers,
            partial_failure_policy=self.settings.partial_failure_policy,
            strike_policy=strike_policy,
        )
        logger.info(f"OptionsService ready (upstream: {self.upstream.base_url})")

    def health(self) -> Dict[str, Any]:
        return {'ok': True, 'time': datetime.now(timezone.utc).isoformat()}

    def get_expirations(self, symbol: str, tz: Optional[str] = None) -> List[Expiration]:
        """Upcoming expirations for symbol, labeled, ascending."""
        symbol = clean_symbol(symbol)
        return self.expirations.get_expirations(symbol, tz or self.settings.timezone)

    def get_options_chain(self, symbol: str, expiration: Any) -> OptionsChain:
        """Merged quote/OI/volume/IV chain for one expiration."""
        symbol = clean_symbol(symbol)
        return self.aggregator.get_options_chain(symbol, str(expiration or "").strip())

    def get_legacy_chain(self, symbol: str, expiration: Any, debug: bool = False) -> OptionsChain:
        """Bid/ask-only chain from the legacy bulk endpoint."""
        symbol = clean_symbol(symbol)
        expiration = str(expiration or "").strip()
        return build_legacy_chain(self.fetcher, symbol, expiration,
                                  self.legacy_strike_policy, debug=debug)

    def close(self) -> None:
        self.cache.close()
        self.fetcher.pages.session.close()
