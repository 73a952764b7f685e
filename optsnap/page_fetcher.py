"""
Pagination walker for upstream resources.

Large snapshots come back in pages. The terminal tells us where the next page
lives either in an HTTP header or inside the body, so both are checked in a
fixed order after every page.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import urljoin
import logging

import requests

from .errors import UpstreamConnectionError, UpstreamHTTPError, excerpt
from .normalizer import ParsedPage, normalize_response

logger = logging.getLogger(__name__)

TERMINAL_CURSORS = ("", "null")


@dataclass
class FetchResult:
    """Flattened outcome of a pagination walk."""
    items: List[Any] = field(default_factory=list)
    header: Optional[Dict[str, Any]] = None
    pages: int = 0


def _usable_cursor(value: Any) -> Optional[str]:
    if value is None:
        return None
    cursor = str(value).strip()
    if cursor.lower() in TERMINAL_CURSORS:
        return None
    return cursor


class PageFetcher:
    """
    Retrieve every page of a paginated resource.

    Pages are fetched strictly one after another. Any non-success status
    aborts the walk and whatever was collected so far is thrown away.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 next_page_header: str = "Next-Page",
                 timeout: Optional[float] = None,
                 excerpt_chars: int = 300):
        self.session = session or requests.Session()
        self.next_page_header = next_page_header
        self.timeout = timeout
        self.excerpt_chars = excerpt_chars

        # Checked in order; the first usable cursor wins
        self.cursor_signals: List[Callable[[requests.Response, ParsedPage], Any]] = [
            self._cursor_from_http_header,
            self._cursor_from_body,
        ]

    def _cursor_from_http_header(self, resp: requests.Response, page: ParsedPage) -> Any:
        return resp.headers.get(self.next_page_header)

    @staticmethod
    def _cursor_from_body(resp: requests.Response, page: ParsedPage) -> Any:
        if page.header and page.header.get("next_page") is not None:
            return page.header.get("next_page")
        return page.next_page

    def next_url(self, resp: requests.Response, page: ParsedPage) -> Optional[str]:
        """Resolve the next page URL, or None when the walk is over."""
        for signal in self.cursor_signals:
            cursor = _usable_cursor(signal(resp, page))
            if cursor is not None:
                return urljoin(resp.url or "", cursor)
        return None

    def _get(self, url: str, params: Optional[Mapping[str, Any]]) -> requests.Response:
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Transport error fetching {url}: {e}")
            raise UpstreamConnectionError(f"{url} -> {e}", url=url) from e

        if not resp.ok:
            body = excerpt(resp.text, self.excerpt_chars)
            logger.error(f"Upstream returned {resp.status_code} for {resp.url or url}")
            raise UpstreamHTTPError(resp.status_code, resp.url or url, body)

        return resp

    def fetch_all(self, url: str, params: Optional[Mapping[str, Any]] = None) -> FetchResult:
        """
        Walk all pages starting at url.

        Args:
            url: First page URL
            params: Query parameters for the first request only; later pages
                use the cursor URL exactly as given

        Returns:
            FetchResult with items in fetch order and the first page's header
        """
        result = FetchResult()
        next_url: Optional[str] = url

        while next_url is not None:
            resp = self._get(next_url, params if result.pages == 0 else None)
            page = normalize_response(resp.text, resp.url or next_url, self.excerpt_chars)

            if result.pages == 0:
                result.header = page.header
            result.items.extend(page.items)
            result.pages += 1

            logger.debug(
                f"Page {result.pages} from {resp.url or next_url}: "
                f"{len(page.items)} items ({page.encoding.value})"
            )
            next_url = self.next_url(resp, page)

        logger.info(f"Fetched {len(result.items)} items in {result.pages} page(s) from {url}")
        return result
