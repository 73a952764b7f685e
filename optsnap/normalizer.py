"""
Response body normalization.

The terminal answers either with one JSON envelope or with newline-delimited
JSON records depending on endpoint and version. Both are reduced here to the
same (items, header) pair, tagged with the encoding that was recognized.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from .errors import UpstreamParseError, excerpt

logger = logging.getLogger(__name__)

HEADER_MARKER = "header"
CONTRACT_MARKER = "contract"
RESULT_FIELDS = ("response", "data")


class PayloadEncoding(str, Enum):
    ENVELOPE = "envelope"
    LINES = "lines"


@dataclass
class ParsedPage:
    """One page of an upstream response."""
    items: List[Any] = field(default_factory=list)
    header: Optional[Dict[str, Any]] = None
    encoding: PayloadEncoding = PayloadEncoding.ENVELOPE
    next_page: Optional[str] = None  # top-level body cursor, if the envelope had one


def _is_columnar(obj: Dict[str, Any]) -> bool:
    return any(isinstance(v, list) for v in obj.values())


def _parse_envelope(doc: Any) -> Optional[ParsedPage]:
    """Interpret a fully parsed JSON document, or None if it has no usable shape."""
    if isinstance(doc, list):
        return ParsedPage(items=doc)

    if not isinstance(doc, dict):
        return None

    header = doc.get(HEADER_MARKER)
    header = header if isinstance(header, dict) else None
    next_page = doc.get("next_page")

    for name in RESULT_FIELDS:
        if isinstance(doc.get(name), list):
            return ParsedPage(items=doc[name], header=header, next_page=next_page)

    if CONTRACT_MARKER in doc:
        # A single-record body is indistinguishable from a one-line stream
        return ParsedPage(items=[doc], header=header, next_page=next_page)

    body = {k: v for k, v in doc.items() if k not in (HEADER_MARKER, "next_page")}
    if _is_columnar(body):
        return ParsedPage(items=[body], header=header, next_page=next_page)

    if header is not None:
        return ParsedPage(items=[], header=header, next_page=next_page)

    return None


def _parse_lines(text: str, url: Optional[str], excerpt_chars: int) -> ParsedPage:
    page = ParsedPage(encoding=PayloadEncoding.LINES)
    header: Optional[Dict[str, Any]] = None
    parsed_any = False
    dropped = 0

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        try:
            record = json.loads(line)
        except ValueError:
            dropped += 1
            continue

        parsed_any = True
        if not isinstance(record, dict):
            dropped += 1
            continue

        # A later header line replaces the earlier one
        if isinstance(record.get(HEADER_MARKER), dict):
            header = record[HEADER_MARKER]
        if CONTRACT_MARKER in record:
            page.items.append(record)
        elif HEADER_MARKER not in record:
            dropped += 1

    if not parsed_any:
        raise UpstreamParseError(url, excerpt(text, excerpt_chars))

    if dropped:
        logger.debug(f"Dropped {dropped} unusable line(s) from {url}")

    page.header = header
    return page


def normalize_response(text: str, url: Optional[str] = None,
                       excerpt_chars: int = 300) -> ParsedPage:
    """
    Parse one raw response body into a ParsedPage.

    Args:
        text: Raw response body
        url: Request URL, only used for error messages
        excerpt_chars: Bound on the body excerpt carried by errors

    Raises:
        UpstreamParseError: if the body is neither encoding, or is a bare
            JSON scalar
    """
    if not text or not text.strip():
        return ParsedPage()

    try:
        doc = json.loads(text)
    except ValueError:
        return _parse_lines(text, url, excerpt_chars)

    page = _parse_envelope(doc)
    if page is not None:
        return page
    if isinstance(doc, dict):
        # A lone record with neither marker, same as such a line in a stream
        logger.debug(f"Dropped shapeless object body from {url}")
        return ParsedPage(encoding=PayloadEncoding.LINES)
    raise UpstreamParseError(url, excerpt(text, excerpt_chars))
