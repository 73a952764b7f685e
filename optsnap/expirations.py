"""
Expiration listing for an underlying.

Only present and future expirations are useful for a live chain, and each one
is labeled so the UI can tell monthlies from weeklies at a glance.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from .data_fetcher import DataFetcher
from .dates import label_for_expiration, parse_expiration, today_in_timezone
from .tables import ColumnTable

logger = logging.getLogger(__name__)

# Column names the listing has been seen under
EXPIRATION_COLUMNS = ("expiration", "expirationDates", "expirations", "date")


@dataclass(frozen=True)
class Expiration:
    date: date
    label: str

    @property
    def yyyymmdd(self) -> str:
        return self.date.strftime("%Y%m%d")

    def to_dict(self) -> Dict[str, str]:
        return {
            'date': self.date.isoformat(),
            'yyyymmdd': self.yyyymmdd,
            'label': self.label,
        }


def extract_dates(items: Iterable[Any]) -> List[date]:
    """Pull every parseable date out of a listing, in any supported shape."""
    items = list(items)
    raw: List[Any] = [item for item in items if not isinstance(item, dict)]

    table = ColumnTable.from_items(item for item in items if isinstance(item, dict))
    for i in range(table.row_count):
        raw.append(table.value(i, *EXPIRATION_COLUMNS))

    dates = []
    for value in raw:
        parsed = parse_expiration(value)
        if parsed is not None:
            dates.append(parsed)
    return dates


class ExpirationFilter:
    """List, filter and label expirations for a symbol."""

    def __init__(self, fetcher: DataFetcher,
                 today: Optional[Callable[[str], date]] = None):
        self.fetcher = fetcher
        self.today = today or today_in_timezone

    def get_expirations(self, symbol: str, tz: str) -> List[Expiration]:
        """
        Expirations on or after today (in tz), ascending, with labels.

        Args:
            symbol: Validated underlying symbol
            tz: IANA timezone name used to decide what "today" is
        """
        cutoff = self.today(tz)
        listing = self.fetcher.list_expirations(symbol)

        upcoming = sorted({d for d in extract_dates(listing.items) if d >= cutoff})
        logger.info(f"{symbol}: {len(upcoming)} expirations on or after {cutoff}")

        return [Expiration(d, label_for_expiration(d)) for d in upcoming]
