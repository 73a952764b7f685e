"""
Pytest configuration and shared fixtures.

Nothing here talks to a network: FakeSession stands in for requests.Session
and serves scripted FakeResponse objects keyed by URL path.
"""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import pytest
from requests.structures import CaseInsensitiveDict

from config import ServiceConfig, UpstreamConfig
from optsnap.cache import TTLCache
from optsnap.data_fetcher import DataFetcher
from optsnap.page_fetcher import PageFetcher

BASE_URL = "http://terminal/v3"
LEGACY_URL = "http://terminal/v2"


class FakeResponse:
    def __init__(self, body: Any = "", status_code: int = 200,
                 headers: Optional[Dict[str, str]] = None, url: str = ""):
        self.text = body if isinstance(body, str) else json.dumps(body)
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.url = url

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


class FakeSession:
    """
    Scripted stand-in for requests.Session.

    routes maps a URL path (or full URL without query) to a response, a list
    of responses served in order (the last one repeats), or an exception
    instance to raise.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[tuple] = []
        self.closed = False

    def _lookup(self, url: str):
        if url in self.routes:
            return url
        path = urlparse(url).path
        if path in self.routes:
            return path
        for key in self.routes:
            if path.endswith(key):
                return key
        raise AssertionError(f"Unexpected request: {url}")

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        key = self._lookup(url)
        target = self.routes[key]
        if isinstance(target, list):
            target = target.pop(0) if len(target) > 1 else target[0]
        if isinstance(target, Exception):
            raise target
        if not target.url:
            target.url = url
        return target

    def calls_to(self, path: str) -> int:
        return sum(1 for url, _ in self.calls if urlparse(url).path.endswith(path))

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start: datetime = datetime(2025, 9, 15, 10, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    c = TTLCache(default_ttl=1.5, cache_dir=tmp_path / "cache", clock=clock)
    yield c
    c.close()


@pytest.fixture
def make_fetcher(cache):
    """Build a DataFetcher over a FakeSession with the given routes."""
    def _make(routes, **kwargs):
        session = FakeSession(routes)
        pages = PageFetcher(session=session, **kwargs)
        fetcher = DataFetcher(BASE_URL, cache, pages, legacy_base_url=LEGACY_URL, cache_ttl=1.5)
        return fetcher, session
    return _make


@pytest.fixture
def upstream_settings(tmp_path):
    return UpstreamConfig(
        base_url=BASE_URL,
        legacy_base_url=LEGACY_URL,
        cache_ttl=1.5,
        next_page_header="Next-Page",
        timeout=None,
        error_excerpt_chars=300,
        cache_dir=tmp_path / "svc-cache",
    )


@pytest.fixture
def service_settings():
    return ServiceConfig(timezone="America/New_York", fetch_workers=4,
                         partial_failure_policy="fail_fast")
