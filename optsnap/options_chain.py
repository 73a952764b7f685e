"""
Options chain assembly from snapshot sources.

One expiration's chain is stitched together from four independent snapshots:
1. Quotes (bid/ask) - defines which strikes exist
2. Open interest
3. Traded volume (from the OHLC snapshot)
4. Implied volatility (also carries the underlying price)

They are fetched concurrently and merged into one row per strike, calls on the
left and puts on the right, the way a chain is usually displayed.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

import pandas as pd

from .data_fetcher import DataFetcher
from .dates import canonicalize_expiration
from .errors import OptionsDataError, UpstreamError, ValidationError
from .fields import (
    DOLLARS,
    Right,
    StrikeScalePolicy,
    normalize_right,
    normalize_strike,
    num_or_none,
)
from .tables import ColumnTable
from .validation import validate_symbol

logger = logging.getLogger(__name__)

SOURCES = ("quote", "open_interest", "volume", "implied_vol")

FAIL_FAST = "fail_fast"
BEST_EFFORT = "best_effort"
POLICIES = (FAIL_FAST, BEST_EFFORT)

# Value column (plus aliases) read from each auxiliary source
AUX_COLUMNS = {
    "open_interest": ("open_interest", "oi", "openInterest"),
    "volume": ("volume",),
    "implied_vol": ("implied_vol", "implied_volatility", "iv", "impliedVol"),
}
# MergedRow attribute suffix filled by each auxiliary source
AUX_SUFFIX = {"open_interest": "oi", "volume": "vol", "implied_vol": "iv"}

ContractKey = Tuple[Decimal, Right]


@dataclass
class MergedRow:
    """One strike of the chain. Every field stays None until a source fills it."""
    strike: Decimal
    call_bid: Optional[float] = None
    call_ask: Optional[float] = None
    call_oi: Optional[float] = None
    call_vol: Optional[float] = None
    call_iv: Optional[float] = None
    put_bid: Optional[float] = None
    put_ask: Optional[float] = None
    put_oi: Optional[float] = None
    put_vol: Optional[float] = None
    put_iv: Optional[float] = None

    def merge(self, right: Right, name: str, value: Optional[float]) -> None:
        """Sparse last-write-wins: a later value replaces, a None never does."""
        if value is None:
            return
        side = "call" if right is Right.CALL else "put"
        setattr(self, f"{side}_{name}", value)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['strike'] = float(self.strike)
        return out


@dataclass
class Underlying:
    price: Optional[float] = None
    timestamp: Any = None


@dataclass
class OptionsChain:
    """Merged chain for one (symbol, expiration)."""
    symbol: str
    expiration: str
    expiration_iso: str
    rows: List[MergedRow] = field(default_factory=list)
    underlying: Optional[Underlying] = None
    missing_sources: List[str] = field(default_factory=list)
    debug: Optional[Dict[str, Any]] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def get_strikes(self) -> List[float]:
        """Sorted list of strikes."""
        return [float(r.strike) for r in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'symbol': self.symbol,
            'expiration': self.expiration,
            'expiration_iso': self.expiration_iso,
            'row_count': self.row_count,
            'underlying': asdict(self.underlying) if self.underlying else None,
            'rows': [r.to_dict() for r in self.rows],
            'missing_sources': list(self.missing_sources),
        }
        if self.debug is not None:
            out['debug'] = self.debug
        return out

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame, one line per strike, missing values as NaN."""
        columns = [f.name for f in fields(MergedRow)]
        df = pd.DataFrame([r.to_dict() for r in self.rows], columns=columns)
        return df.astype(float)


class SnapshotAggregator:
    """
    Fetch the four snapshot sources for one expiration and merge them.

    Sources are independent, so they are requested in parallel; the merge only
    starts once all of them are back.
    """

    def __init__(self, fetcher: DataFetcher, max_workers: int = 4,
                 partial_failure_policy: str = FAIL_FAST,
                 strike_policy: StrikeScalePolicy = DOLLARS):
        if partial_failure_policy not in POLICIES:
            raise ValueError(f"partial_failure_policy must be one of {POLICIES}")
        self.fetcher = fetcher
        self.max_workers = max_workers
        self.partial_failure_policy = partial_failure_policy
        self.strike_policy = strike_policy

    def _contract_key(self, table: ColumnTable, i: int) -> Optional[ContractKey]:
        strike = normalize_strike(table.value(i, "strike"), self.strike_policy)
        right = normalize_right(table.value(i, "right"))
        if strike is None or right is None:
            return None
        return strike, right

    def _fetch_sources(self, symbol: str, expiration_iso: str) -> Tuple[Dict[str, ColumnTable], List[str]]:
        """Fan out to every source and join. Returns tables plus failed source names."""
        tables: Dict[str, ColumnTable] = {}
        failures: Dict[str, OptionsDataError] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                source: pool.submit(self.fetcher.snapshot, source, symbol, expiration_iso)
                for source in SOURCES
            }
            for source, future in futures.items():
                try:
                    tables[source] = ColumnTable.from_items(future.result().items)
                except OptionsDataError as e:
                    if isinstance(e, UpstreamError) and e.source is None:
                        e.source = source
                    logger.error(f"{symbol} {expiration_iso}: {source} snapshot failed: {e}")
                    failures[source] = e

        if failures:
            if self.partial_failure_policy == FAIL_FAST or "quote" in failures:
                first = next(s for s in SOURCES if s in failures)
                raise failures[first]
            for source in failures:
                logger.warning(f"{symbol} {expiration_iso}: continuing without {source}")
                tables[source] = ColumnTable()

        return tables, [s for s in SOURCES if s in failures]

    def build_lookup(self, table: ColumnTable, columns: Tuple[str, ...]) -> Dict[ContractKey, float]:
        """Map (strike, right) to a value; a later non-null value wins."""
        lookup: Dict[ContractKey, float] = {}
        for i in range(table.row_count):
            key = self._contract_key(table, i)
            if key is None:
                continue
            value = num_or_none(table.value(i, *columns))
            if value is not None:
                lookup[key] = value
        return lookup

    @staticmethod
    def extract_underlying(iv_table: ColumnTable) -> Optional[Underlying]:
        """Underlying price/timestamp, taken from the first IV record only."""
        if iv_table.row_count == 0:
            return None
        price = num_or_none(iv_table.value(0, "underlying_price", "underlyingPrice"))
        timestamp = iv_table.value(0, "underlying_timestamp", "underlyingTimestamp")
        if price is None and timestamp is None:
            return None
        return Underlying(price=price, timestamp=timestamp)

    def merge(self, tables: Dict[str, ColumnTable]) -> List[MergedRow]:
        """Merge source tables into one row per strike, ascending."""
        lookups = {
            source: self.build_lookup(tables.get(source, ColumnTable()), columns)
            for source, columns in AUX_COLUMNS.items()
        }

        quotes = tables["quote"]
        by_strike: Dict[Decimal, MergedRow] = {}
        skipped = 0

        for i in range(quotes.row_count):
            key = self._contract_key(quotes, i)
            if key is None:
                skipped += 1
                continue
            strike, right = key

            row = by_strike.get(strike)
            if row is None:
                row = by_strike[strike] = MergedRow(strike=strike)

            row.merge(right, "bid", num_or_none(quotes.value(i, "bid")))
            row.merge(right, "ask", num_or_none(quotes.value(i, "ask")))
            for source, suffix in AUX_SUFFIX.items():
                row.merge(right, suffix, lookups[source].get(key))

        if skipped:
            logger.warning(f"Skipped {skipped} quote row(s) with unusable strike or right")

        return [by_strike[s] for s in sorted(by_strike)]

    def get_options_chain(self, symbol: str, expiration: str) -> OptionsChain:
        """
        Build the merged chain for one expiration.

        Args:
            symbol: Underlying symbol (e.g. SPY)
            expiration: YYYYMMDD or YYYY-MM-DD

        Raises:
            ValidationError: bad symbol or expiration, before any request
            UpstreamError: a source failed (always for quotes, for any source
                under the fail_fast policy)
        """
        validate_symbol(symbol)
        if not expiration:
            raise ValidationError("Expiration is required (YYYYMMDD or YYYY-MM-DD)")
        exp = canonicalize_expiration(expiration)

        tables, missing = self._fetch_sources(symbol, exp.iso)
        rows = self.merge(tables)

        chain = OptionsChain(
            symbol=symbol,
            expiration=exp.ymd,
            expiration_iso=exp.iso,
            rows=rows,
            underlying=self.extract_underlying(tables["implied_vol"]),
            missing_sources=missing,
        )
        logger.info(f"Assembled {symbol} {exp.ymd} chain: {chain.row_count} strikes")
        return chain
