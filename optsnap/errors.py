"""
Exceptions raised by the snapshot engine.

Every failure a caller can see is one of these, so the request layer only has
to catch OptionsDataError.
"""
from typing import Optional


class OptionsDataError(Exception):
    """Base class for all snapshot engine failures."""
    pass


class ValidationError(OptionsDataError, ValueError):
    """Malformed symbol, expiration or timezone. Raised before any network call."""
    pass


class UpstreamError(OptionsDataError):
    """
    The quote provider could not give us usable data.

    `source` names the logical upstream call (quote, open_interest, ...) and is
    filled in by whoever knows it, usually the aggregator.
    """

    def __init__(self, message: str, url: Optional[str] = None,
                 source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.source = source

    def __str__(self) -> str:
        prefix = f"[{self.source}] " if self.source else ""
        return f"{prefix}{self.message}"


class UpstreamHTTPError(UpstreamError):
    """Non-success HTTP status from the provider."""

    def __init__(self, status_code: int, url: str, body_excerpt: str = "",
                 source: Optional[str] = None):
        super().__init__(f"{url} -> {status_code}: {body_excerpt}", url=url, source=source)
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class UpstreamParseError(UpstreamError):
    """Body was neither a JSON envelope nor newline-delimited JSON records."""

    def __init__(self, url: Optional[str], body_excerpt: str = "",
                 source: Optional[str] = None):
        super().__init__(f"unparseable response from {url}: {body_excerpt}", url=url, source=source)
        self.body_excerpt = body_excerpt


class UpstreamConnectionError(UpstreamError):
    """Transport-level failure (refused connection, reset, timeout)."""
    pass


def excerpt(text: Optional[str], limit: int = 300) -> str:
    """Bound a response body for error messages."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
