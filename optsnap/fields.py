"""
Field-level normalization for upstream records.

Contracts are merged across sources by (strike, right), so both must come out
of here in one canonical form no matter how the provider spelled them.
"""
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)


class Right(str, Enum):
    CALL = "C"
    PUT = "P"


_RIGHTS = {
    "C": Right.CALL,
    "CALL": Right.CALL,
    "P": Right.PUT,
    "PUT": Right.PUT,
}


def normalize_right(value: Any) -> Optional[Right]:
    """Map C/CALL/P/PUT (any case) to Right, anything else to None."""
    if isinstance(value, Right):
        return value
    if value is None:
        return None
    return _RIGHTS.get(str(value).strip().upper())


def num_or_none(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None for missing and non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


@dataclass(frozen=True)
class StrikeScalePolicy:
    """
    Convert raw strikes to dollars.

    Rules are (threshold, divisor) pairs checked in order; the first rule whose
    threshold is <= |raw| divides the value. A strike below every threshold is
    taken as dollars already, so the empty default leaves values untouched.
    """
    rules: Tuple[Tuple[float, int], ...] = ()

    def to_dollars(self, raw: Decimal) -> Decimal:
        magnitude = abs(raw)
        for threshold, divisor in self.rules:
            if magnitude >= threshold:
                return raw / divisor
        return raw


DOLLARS = StrikeScalePolicy()
# Legacy bulk strikes: thousandths from 100000 up (180000 -> 180.00),
# hundredths below (20000 -> 200.00)
LEGACY_STRIKE_POLICY = StrikeScalePolicy(rules=((100_000, 1000), (0, 100)))


def normalize_strike(value: Any,
                     policy: StrikeScalePolicy = DOLLARS) -> Optional[Decimal]:
    """Return the strike in dollars as a Decimal, or None if it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        raw = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not raw.is_finite():
        return None
    # Decimal equality and hashing make 100, 100.0 and 100.000 one key
    return policy.to_dollars(raw)


class FieldIndexResolver:
    """
    Locate a named field inside compact tick arrays.

    Legacy responses describe tick layout in header["format"], e.g.
    ["ms_of_day", "bid_size", "bid_exchange", "bid", ...]. When the header is
    missing or does not list the field, the caller's static index is used.
    """

    def __init__(self, field_order: Optional[Sequence[str]] = None):
        self.field_order = list(field_order or [])

    @classmethod
    def from_header(cls, header: Optional[dict]) -> 'FieldIndexResolver':
        order = (header or {}).get("format")
        return cls(order if isinstance(order, list) else None)

    def resolve(self, name: str, default: int) -> int:
        try:
            return self.field_order.index(name)
        except ValueError:
            return default
