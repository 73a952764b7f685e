"""
Chain building from the legacy bulk quote endpoint.

Older terminals only expose a bulk quote snapshot where each contract carries
compact tick arrays instead of named fields. Tick layout is declared in the
response header, with a static fallback for headers that omit it. This path
only knows bid and ask; OI, volume and IV stay empty.
"""
from typing import Any, Dict, List, Optional
import logging

from .data_fetcher import DataFetcher
from .dates import canonicalize_expiration
from .fields import (
    LEGACY_STRIKE_POLICY,
    FieldIndexResolver,
    StrikeScalePolicy,
    normalize_right,
    normalize_strike,
    num_or_none,
)
from .options_chain import MergedRow, OptionsChain
from .validation import validate_symbol

logger = logging.getLogger(__name__)

# Quote tick layout: ms_of_day, bid_size, bid_exchange, bid, bid_condition,
# ask_size, ask_exchange, ask, ask_condition, date
DEFAULT_BID_INDEX = 3
DEFAULT_ASK_INDEX = 7

DEBUG_SAMPLE_ROWS = 5


def _tick_value(tick: Any, index: int) -> Optional[float]:
    if not isinstance(tick, list) or index >= len(tick):
        return None
    return num_or_none(tick[index])


def rows_from_tick_items(items: List[Any], header: Optional[Dict[str, Any]],
                         strike_policy: StrikeScalePolicy = LEGACY_STRIKE_POLICY) -> List[MergedRow]:
    """
    Decode {"contract": {...}, "ticks": [[...], ...]} items into merged rows.

    The last tick of each contract is the current quote.
    """
    resolver = FieldIndexResolver.from_header(header)
    bid_idx = resolver.resolve("bid", DEFAULT_BID_INDEX)
    ask_idx = resolver.resolve("ask", DEFAULT_ASK_INDEX)

    by_strike: Dict[Any, MergedRow] = {}
    skipped = 0

    for item in items:
        contract = item.get("contract") if isinstance(item, dict) else None
        if not isinstance(contract, dict):
            skipped += 1
            continue

        strike = normalize_strike(contract.get("strike"), strike_policy)
        right = normalize_right(contract.get("right"))
        if strike is None or right is None:
            skipped += 1
            continue

        ticks = item.get("ticks")
        tick = ticks[-1] if isinstance(ticks, list) and ticks else None

        row = by_strike.get(strike)
        if row is None:
            row = by_strike[strike] = MergedRow(strike=strike)
        row.merge(right, "bid", _tick_value(tick, bid_idx))
        row.merge(right, "ask", _tick_value(tick, ask_idx))

    if skipped:
        logger.warning(f"Skipped {skipped} legacy contract(s) with unusable strike or right")

    return [by_strike[s] for s in sorted(by_strike)]


def build_legacy_chain(fetcher: DataFetcher, symbol: str, expiration: str,
                       strike_policy: StrikeScalePolicy = LEGACY_STRIKE_POLICY,
                       debug: bool = False) -> OptionsChain:
    """
    Bid/ask-only chain for one expiration from the legacy bulk endpoint.

    With debug=True the chain also carries a decoding summary: the tick
    format the header declared, contracts in, strikes out and the first few
    rows.
    """
    validate_symbol(symbol)
    exp = canonicalize_expiration(expiration)

    result = fetcher.bulk_quote_legacy(symbol, exp.ymd)
    rows = rows_from_tick_items(result.items, result.header, strike_policy)

    logger.info(f"Assembled legacy {symbol} {exp.ymd} chain: {len(rows)} strikes")
    chain = OptionsChain(symbol=symbol, expiration=exp.ymd, expiration_iso=exp.iso, rows=rows)
    if debug:
        chain.debug = {
            'format': (result.header or {}).get("format"),
            'count_in': len(result.items),
            'count_out': len(rows),
            'sample_out': [r.to_dict() for r in rows[:DEBUG_SAMPLE_ROWS]],
        }
    return chain
